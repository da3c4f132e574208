"""Request lists for each suite.

The method surface is fixed. Builders that take a ledger read earlier results
(mostly the transaction receipt) to fill in parameters no configuration can
supply safely, and fall back to the configured fixtures when those results are
missing.
"""

from rpcprobe.constants import CONFIRMED_TOKENS_PAGE, ZERO_STORAGE_KEY
from rpcprobe.errors import FormatError
from rpcprobe.ledger import ResultLedger
from rpcprobe.models import Fixtures, Request
from rpcprobe.validators import parse_quantity


def _req(method: str, *params) -> Request:
    return Request(method=method, params=list(params))


def located_tx(ledger: ResultLedger) -> dict | None:
    """Where the test transaction landed: receipt first, then the transaction itself."""
    for method in ("eth_getTransactionReceipt", "eth_getTransactionByHash"):
        found = ledger.latest_result(method)
        if isinstance(found, dict) and found.get("blockHash") and found.get("transactionIndex") is not None:
            return found
    return None


def touched_address(ledger: ResultLedger, fallback: str) -> str:
    """An address the test transaction interacted with, for log filters and calls."""
    receipt = ledger.latest_result("eth_getTransactionReceipt")
    if isinstance(receipt, dict):
        for entry in receipt.get("logs") or []:
            if isinstance(entry, dict) and entry.get("address"):
                return entry["address"]
        if receipt.get("to"):
            return receipt["to"]
        if receipt.get("contractAddress"):
            return receipt["contractAddress"]
    return fallback


def tx_block_number(ledger: ResultLedger, fallback: int) -> int:
    located = located_tx(ledger)
    if located is not None:
        try:
            return parse_quantity(located.get("blockNumber"))
        except FormatError:
            pass
    return fallback


def eth_requests(fx: Fixtures) -> list[Request]:
    """Base-chain calls that only need configured fixtures."""
    return [
        _req("eth_chainId"),
        _req("eth_blockNumber"),
        _req("eth_gasPrice"),
        _req("eth_syncing"),
        _req("eth_getBalance", fx.address, "latest"),
        _req("eth_getTransactionCount", fx.address, "latest"),
        _req("eth_getCode", fx.address, "latest"),
        _req("eth_getStorageAt", fx.address, "0x0", "latest"),
        _req("eth_call", {"to": fx.address, "data": "0x"}, "latest"),
        _req("eth_estimateGas", {"from": fx.address, "to": fx.address, "data": "0x"}),
        _req("eth_getBlockByNumber", fx.block_number, False),
        _req("eth_getBlockByHash", fx.block_hash, False),
        _req("eth_getTransactionByHash", fx.tx_hash),
        _req("eth_getTransactionReceipt", fx.tx_hash),
    ]


def eth_dependent_requests(fx: Fixtures, ledger: ResultLedger) -> list[Request]:
    """Lookups by block + index, block tx counts and log queries, derived from where the test tx landed."""
    located = located_tx(ledger)
    if located is not None:
        block_hash = located["blockHash"]
        block_number = located.get("blockNumber") or fx.block_number
        index = located["transactionIndex"]
    else:
        block_hash, block_number, index = fx.block_hash, fx.block_number, "0x0"

    address = touched_address(ledger, fx.address)
    return [
        _req("eth_getTransactionByBlockHashAndIndex", block_hash, index),
        _req("eth_getTransactionByBlockNumberAndIndex", block_number, index),
        _req("eth_getBlockTransactionCountByHash", block_hash),
        _req("eth_getBlockTransactionCountByNumber", block_number),
        _req("eth_getLogs", {"fromBlock": block_number, "toBlock": block_number, "address": address}),
        _req("eth_getLogs", {"blockHash": block_hash}),
    ]


def log_filter(fx: Fixtures, ledger: ResultLedger) -> dict:
    located = located_tx(ledger)
    start = located.get("blockNumber") if located else None
    return {
        "fromBlock": start or fx.block_number,
        "toBlock": "latest",
        "address": touched_address(ledger, fx.address),
    }


def debug_requests(fx: Fixtures, ledger: ResultLedger) -> list[Request]:
    tracer = {"tracer": fx.tracer}
    target = touched_address(ledger, fx.address)
    return [
        _req("debug_traceBlockByNumber", fx.block_number, tracer),
        _req("debug_traceBlockByHash", fx.block_hash, tracer),
        _req("debug_traceCall", {"to": target, "data": "0x"}, "latest", tracer),
        _req("debug_traceTransaction", fx.tx_hash, tracer),
    ]


def zks_requests(fx: Fixtures, ledger: ResultLedger) -> list[Request]:
    """Rollup calls. The message proof is added by the orchestrator when an address is known."""
    block = tx_block_number(ledger, fx.block_number_int)
    return [
        _req("zks_L1BatchNumber"),
        _req("zks_getL1BatchDetails", fx.l1_batch_number),
        _req("zks_getL1BatchBlockRange", fx.l1_batch_number),
        _req("zks_getBlockDetails", block),
        _req("zks_getRawBlockTransactions", block),
        _req("zks_getTransactionDetails", fx.tx_hash),
        _req("zks_getAllAccountBalances", fx.address),
        _req("zks_getBridgeContracts"),
        _req("zks_getTestnetPaymaster"),
        _req("zks_getMainContract"),
        _req("zks_L1ChainId"),
        _req("zks_getConfirmedTokens", *CONFIRMED_TOKENS_PAGE),
        _req("zks_getFeeParams"),
        _req("zks_getProtocolVersion"),
        _req("zks_estimateFee", {"from": fx.address, "to": fx.address, "data": "0x"}),
        _req("zks_getProof", fx.address, [ZERO_STORAGE_KEY], fx.l1_batch_number),
        _req("zks_getL2ToL1LogProof", fx.tx_hash, fx.message_index),
    ]


def message_proof_request(fx: Fixtures) -> Request:
    return _req("zks_getL2ToL1MsgProof", fx.message_proof_address, fx.l1_batch_number)

"""In-process stand-in for a JSON-RPC node, served through httpx.MockTransport."""

from __future__ import annotations

import json
from pathlib import Path

import httpx

from rpcprobe.config import ProbeConfig

TX_HASH = "0x" + "ab" * 32
ADDRESS = "0x" + "12" * 20
CONTRACT = "0x" + "34" * 20
BLOCK_HASH = "0x" + "cd" * 32
TX_BLOCK_HASH = "0x" + "ef" * 32
SENDER_A = "0x" + "aa" * 20
SENDER_B = "0x" + "bb" * 20
SENDER_C = "0x" + "cc" * 20


def result(value) -> dict:
    return {"result": value}


def error(code: int, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


class FakeNode:
    """Answers each method from `responses`.

    A response is a body fragment ({"result": ...} / {"error": ...}), a callable
    taking the params and returning one, an httpx.Response, or an exception to raise.
    Unknown methods get -32601.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = dict(responses or {})
        self.calls: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.calls.append(payload)
        reply = self.responses.get(payload["method"], error(-32601, "Method not found"))
        if callable(reply):
            reply = reply(payload["params"])
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], **reply})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def methods_called(self) -> list[str]:
        return [c["method"] for c in self.calls]

    def params_for(self, method: str) -> list[list]:
        return [c["params"] for c in self.calls if c["method"] == method]


def batch_details(number: int, *senders: str) -> dict:
    return {"number": number, "l2ToL1Messages": [{"sender": s, "isService": False} for s in senders]}


def healthy_responses(l1_batches: dict[int, list[str]] | None = None) -> dict:
    """A node that answers everything the suites send."""
    l1_batches = {100: [SENDER_A], 99: [], 98: [SENDER_B, SENDER_A], 97: [], 96: [SENDER_A]} if l1_batches is None else l1_batches
    latest_l1 = max(l1_batches) if l1_batches else 0

    def l1_details(params):
        n = params[0]
        return result(batch_details(n, *l1_batches.get(n, [])))

    receipt = {
        "transactionHash": TX_HASH,
        "blockHash": TX_BLOCK_HASH,
        "blockNumber": "0x1f4",
        "transactionIndex": "0x2",
        "to": CONTRACT,
        "logs": [{"address": CONTRACT, "topics": []}],
    }
    return {
        "eth_chainId": result("0x144"),
        "eth_blockNumber": result("0x3e8"),
        "eth_gasPrice": result("0xee6b280"),
        "eth_syncing": result(False),
        "eth_getBalance": result("0x0"),
        "eth_getTransactionCount": result("0x1"),
        "eth_getCode": result("0x"),
        "eth_getStorageAt": result("0x" + "00" * 32),
        "eth_call": result("0x"),
        "eth_estimateGas": result("0x5208"),
        "eth_getBlockByNumber": result({"number": "0x3e8", "hash": BLOCK_HASH}),
        "eth_getBlockByHash": result({"number": "0x3e8", "hash": BLOCK_HASH}),
        "eth_getBlockTransactionCountByNumber": result("0x3"),
        "eth_getBlockTransactionCountByHash": result("0x3"),
        "eth_getTransactionByHash": result({"hash": TX_HASH, "blockHash": TX_BLOCK_HASH,
                                            "blockNumber": "0x1f4", "transactionIndex": "0x2"}),
        "eth_getTransactionReceipt": result(receipt),
        "eth_getTransactionByBlockHashAndIndex": result({"hash": TX_HASH}),
        "eth_getTransactionByBlockNumberAndIndex": result({"hash": TX_HASH}),
        "eth_getLogs": result([]),
        "eth_newFilter": result("0x1"),
        "eth_newBlockFilter": result("0x2"),
        "eth_newPendingTransactionFilter": result("0x3"),
        "eth_getFilterChanges": result([]),
        "eth_getFilterLogs": result([]),
        "eth_uninstallFilter": result(True),
        "debug_traceBlockByNumber": result([]),
        "debug_traceBlockByHash": result([]),
        "debug_traceCall": result({"type": "CALL"}),
        "debug_traceTransaction": result({"type": "CALL"}),
        "zks_L1BatchNumber": result(hex(latest_l1)),
        "zks_getL1BatchDetails": l1_details,
        "zks_getL1BatchBlockRange": result(["0x1", "0x5"]),
        "zks_getBlockDetails": result({"number": 500}),
        "zks_getRawBlockTransactions": result([]),
        "zks_getTransactionDetails": result({"status": "included"}),
        "zks_getAllAccountBalances": result({}),
        "zks_getBridgeContracts": result({}),
        "zks_getTestnetPaymaster": result(ADDRESS),
        "zks_getMainContract": result(ADDRESS),
        "zks_L1ChainId": result("0x1"),
        "zks_getConfirmedTokens": result([]),
        "zks_getFeeParams": result({}),
        "zks_getProtocolVersion": result({"version_id": 24}),
        "zks_estimateFee": result({"gas_limit": "0x1"}),
        "zks_getProof": result({"address": ADDRESS, "storageProof": []}),
        "zks_getL2ToL1LogProof": result({"id": 0, "proof": []}),
        "zks_getL2ToL1MsgProof": result({"id": 0, "proof": []}),
    }


def make_config(log_dir: Path | str = "logs", **overrides) -> ProbeConfig:
    values = dict(
        rpc_url="http://node.test:3050",
        tx_hash=TX_HASH,
        address=ADDRESS,
        l1_batch_number=100,
        batch_size=10,
        batch_delay_ms=0,
        log_dir=Path(log_dir),
    )
    values.update(overrides)
    return ProbeConfig(**values)

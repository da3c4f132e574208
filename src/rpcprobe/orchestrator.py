import logging

from rpcprobe import suites
from rpcprobe.batch import BatchQueueProcessor
from rpcprobe.config import ProbeConfig
from rpcprobe.constants import (
    FILTER_NOT_CREATED,
    NEEDS_SIGNER,
    NEEDS_STREAM,
    NO_PROOF_ADDRESS,
    SIGNING_METHODS,
    STREAMING_METHODS,
    Suite,
)
from rpcprobe.discovery import AddressDiscoveryEngine
from rpcprobe.dispatcher import RequestDispatcher
from rpcprobe.errors import OrchestrationError, ProbeError
from rpcprobe.ledger import ResultLedger
from rpcprobe.models import BatchReport, Fixtures, Outcome, Request, Summary
from rpcprobe.sink import Sink
from rpcprobe.validators import validate_block_hash, validate_block_number

log = logging.getLogger("rpcprobe.orchestrator")

# filter constructor -> polls issued against the created filter id
FILTER_SEQUENCES = {
    "eth_newFilter": ("eth_getFilterChanges", "eth_getFilterLogs"),
    "eth_newBlockFilter": ("eth_getFilterChanges",),
    "eth_newPendingTransactionFilter": ("eth_getFilterChanges",),
}


class Orchestrator:
    """Runs the Ethereum, Debug and ZKsync suites against one node, in that order.

    Owns the request queue (inside the BatchQueueProcessor) and the ResultLedger.
    Each suite is built, queued and fully drained before the next one is built, so
    later suites can read results of earlier ones from the ledger.
    """

    def __init__(self, config: ProbeConfig, dispatcher: RequestDispatcher, sink: Sink | None = None):
        self.config = config
        self.dispatcher = dispatcher
        self.ledger = ResultLedger()
        self.processor = BatchQueueProcessor(
            dispatcher,
            self.ledger,
            sink,
            batch_size=config.batch_size,
            batch_delay_ms=config.batch_delay_ms,
            max_requests_per_second=config.max_requests_per_second,
        )
        self.discovery = AddressDiscoveryEngine(dispatcher)
        self.fixtures: Fixtures | None = None
        self.reports: dict[Suite, list[BatchReport]] = {}

    # =========================================================================
    # Fixture resolution
    # =========================================================================

    async def resolve_base_block(self) -> tuple[str, str]:
        """Block number and hash the suites run against.

        Configured values win; whatever is missing comes from the node's head block.
        """
        cfg = self.config
        if cfg.has_block_override:
            return validate_block_number(cfg.block_number), validate_block_hash(cfg.block_hash)

        log.info("Fetching latest block information...")
        head = await self.dispatcher.dispatch("eth_blockNumber", [])
        if not head.success:
            raise OrchestrationError(f"Failed to fetch latest block number: {head.error}")
        latest = validate_block_number(head.result)
        log.info("Latest block number: %s", latest)

        block_number = validate_block_number(cfg.block_number) if cfg.block_number else latest
        block = await self.dispatcher.dispatch("eth_getBlockByNumber", [block_number, False])
        if not block.success or not isinstance(block.result, dict):
            raise OrchestrationError(f"Failed to fetch block details: {block.error}")

        block_hash = cfg.block_hash or block.result.get("hash")
        return block_number, validate_block_hash(block_hash)

    async def resolve_message_proof_address(self) -> str | None:
        """A message-proof address the node knows about, or None to skip the proof test."""
        address = self.config.message_proof_address
        if not address:
            log.info("No message proof address provided, suggesting valid addresses...")
            await self.discovery.suggest()
            return None

        log.info("Validating message proof address...")
        try:
            resolved = await self.discovery.validate_message_proof_address(address)
        except ProbeError as e:
            log.warning("Message proof address validation failed, skipping L2 to L1 message proof tests: %s", e)
            return None
        log.info("Using validated message proof address: %s", resolved)
        return resolved

    async def prepare(self) -> Fixtures:
        cfg = self.config
        try:
            block_number, block_hash = await self.resolve_base_block()
        except ProbeError as e:
            raise OrchestrationError(f"Error validating block information: {e}") from e
        log.info("Using block number: %s", block_number)
        log.info("Using block hash: %s\n", block_hash)

        self.fixtures = Fixtures(
            tx_hash=cfg.tx_hash,
            address=cfg.address,
            block_number=block_number,
            block_hash=block_hash,
            l1_batch_number=cfg.l1_batch_number,
            message_index=cfg.message_index,
            message_proof_address=await self.resolve_message_proof_address(),
            tracer=cfg.tracer,
        )
        return self.fixtures

    # =========================================================================
    # Suites
    # =========================================================================

    async def drain(self, requests: list[Request]) -> list[BatchReport]:
        self.processor.enqueue(*requests)
        return await self.processor.process_queue()

    async def run_filter_sequence(self, constructor: str, params: list) -> list[Outcome]:
        """Create a filter, poll it, remove it. Polls and removal need a created filter."""
        created = await self.dispatcher.dispatch(constructor, params)
        self.processor.record(created)
        outcomes = [created]
        if not created.success:
            log.info("✗ %s - %s; not polling or uninstalling", constructor, FILTER_NOT_CREATED)
            return outcomes

        filter_id = created.result
        for poll in FILTER_SEQUENCES[constructor]:
            outcome = await self.dispatcher.dispatch(poll, [filter_id])
            self.processor.record(outcome)
            outcomes.append(outcome)

        removed = await self.dispatcher.dispatch("eth_uninstallFilter", [filter_id])
        self.processor.record(removed)
        outcomes.append(removed)
        for o in outcomes:
            log.info("%s %s - %s (%s)", "✓" if o.success else "✗", o.method, o.status, o.duration_text())
        return outcomes

    async def run_eth_suite(self, fx: Fixtures) -> list[BatchReport]:
        log.info("\nRunning %s RPC Tests:\n%s", Suite.ETH, "-" * 26)
        reports = await self.drain(suites.eth_requests(fx))
        reports += await self.drain(suites.eth_dependent_requests(fx, self.ledger))

        await self.run_filter_sequence("eth_newFilter", [suites.log_filter(fx, self.ledger)])
        await self.run_filter_sequence("eth_newBlockFilter", [])
        await self.run_filter_sequence("eth_newPendingTransactionFilter", [])

        for method in SIGNING_METHODS:
            self.processor.skip(method, NEEDS_SIGNER)
        for method in STREAMING_METHODS:
            self.processor.skip(method, NEEDS_STREAM)
        return reports

    async def run_debug_suite(self, fx: Fixtures) -> list[BatchReport]:
        log.info("\nRunning %s RPC Tests:\n%s", Suite.DEBUG, "-" * 22)
        return await self.drain(suites.debug_requests(fx, self.ledger))

    async def run_zks_suite(self, fx: Fixtures) -> list[BatchReport]:
        log.info("\nRunning %s RPC Tests:\n%s", Suite.ZKS, "-" * 24)
        requests = suites.zks_requests(fx, self.ledger)
        if fx.message_proof_address:
            requests.append(suites.message_proof_request(fx))
        else:
            self.processor.skip("zks_getL2ToL1MsgProof", NO_PROOF_ADDRESS)
        return await self.drain(requests)

    async def run(self) -> Summary:
        cfg = self.config
        log.info("Starting ZKsync RPC tests...")
        log.info("RPC URL: %s", cfg.rpc_url)
        log.info("Test Transaction Hash: %s", cfg.tx_hash)
        log.info("Test Address: %s", cfg.address)
        log.info("Test L1 Batch Number: %s", cfg.l1_batch_number)
        log.info("Rate limit: %s requests/second", cfg.max_requests_per_second)
        log.info("Batch size: %s", cfg.batch_size)
        log.info("Batch delay: %sms\n", cfg.batch_delay_ms)

        fx = await self.prepare()
        self.reports[Suite.ETH] = await self.run_eth_suite(fx)
        self.reports[Suite.DEBUG] = await self.run_debug_suite(fx)
        self.reports[Suite.ZKS] = await self.run_zks_suite(fx)
        return self.ledger.summary()

"""Request-batch processing.

A "batch" here is a chunk of queued JSON-RPC calls sent together, not a rollup
L1 batch. The queue is drained `batch_size` requests at a time; every request in
a chunk is dispatched concurrently and the chunk completes only when all of them
have settled. Chunks are separated by `batch_delay_ms`, which is the whole of the
rate limiting: throughput ~ batch_size / (dispatch time + delay).
"""

import asyncio
import logging
from collections import deque

from rpcprobe.constants import UNKNOWN_ERROR
from rpcprobe.dispatcher import RequestDispatcher
from rpcprobe.ledger import ResultLedger
from rpcprobe.models import BatchReport, Outcome, Request
from rpcprobe.sink import Sink

log = logging.getLogger("rpcprobe.batch")


class BatchQueueProcessor:
    def __init__(
        self,
        dispatcher: RequestDispatcher,
        ledger: ResultLedger,
        sink: Sink | None = None,
        *,
        batch_size: int = 10,
        batch_delay_ms: int = 1000,
        max_requests_per_second: int | None = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.dispatcher = dispatcher
        self.ledger = ledger
        self.sink = sink
        self.batch_size = batch_size
        self.batch_delay_ms = batch_delay_ms
        self.queue: deque[Request] = deque()
        self.batches_processed = 0

        if max_requests_per_second and batch_delay_ms > 0:
            ceiling = batch_size / (batch_delay_ms / 1000)
            if ceiling > max_requests_per_second:
                log.warning(
                    "batch_size=%s with %sms delay can exceed %s requests/second; pacing is approximate",
                    batch_size, batch_delay_ms, max_requests_per_second,
                )

    def enqueue(self, *requests: Request) -> None:
        """Queue `requests`; each gets its wire id from the dispatcher here."""
        self.queue.extend(self.dispatcher.assign_id(req) for req in requests)

    def enqueue_call(self, method: str, params: list | None = None) -> None:
        self.queue.append(self.dispatcher.new_request(method, params))

    def drain_batch(self) -> list[Request]:
        """Remove and return the first `batch_size` requests (fewer if the queue is shorter)."""
        n = min(self.batch_size, len(self.queue))
        return [self.queue.popleft() for _ in range(n)]

    async def _dispatch_all(self, batch: list[Request]) -> list[Outcome]:
        results = await asyncio.gather(
            *(self.dispatcher.send(req) for req in batch),
            return_exceptions=True,
        )
        outcomes = []
        for req, res in zip(batch, results):
            if isinstance(res, BaseException):
                if isinstance(res, asyncio.CancelledError):
                    raise res
                log.error("dispatch of %s raised %s: %s", req.method, type(res).__name__, res)
                res = Outcome.transport(req.method, str(res) or type(res).__name__, UNKNOWN_ERROR,
                                        details=type(res).__name__)
            outcomes.append(res)
        return outcomes

    async def process_queue(self) -> list[BatchReport]:
        """Drain the queue batch by batch. Returns one report per batch sent."""
        reports: list[BatchReport] = []
        while self.queue:
            batch = self.drain_batch()
            self.batches_processed += 1
            number = self.batches_processed
            log.info("\nProcessing batch %s (%s requests)...", number, len(batch))

            outcomes = await self._dispatch_all(batch)
            for outcome in outcomes:
                self.record(outcome)

            report = BatchReport(number=number, outcomes=outcomes)
            reports.append(report)
            self._log_batch(report)

            if self.queue:
                log.info("Waiting %sms before next batch...", self.batch_delay_ms)
                await asyncio.sleep(self.batch_delay_ms / 1000)
        return reports

    def record(self, outcome: Outcome) -> None:
        """Append `outcome` to the ledger and each sink stream. Never raises.

        A failure on one stream does not stop the others.
        """
        try:
            self.ledger.append(outcome)
        except Exception:
            log.exception("Failed to record outcome for %s", outcome.method)
        if self.sink is None:
            return
        writes = [self.sink.write_result]
        if not outcome.success:
            writes.append(self.sink.write_error)
        for write in writes:
            try:
                write(outcome)
            except Exception:
                log.exception("Failed to write %s for %s", write.__name__, outcome.method)

    def skip(self, method: str, reason: str) -> Outcome:
        """Record a method deliberately not exercised, without a network call."""
        outcome = Outcome.skipped(method, reason)
        self.record(outcome)
        log.info("- %s - Skipped: %s", method, reason)
        return outcome

    def _log_batch(self, report: BatchReport) -> None:
        log.info(
            "Batch %s complete: %s successful, %s failed, %s skipped",
            report.number, report.succeeded, report.failed, report.skipped,
        )
        for o in report.outcomes:
            if o.success:
                log.info("✓ %s - Success (%s)", o.method, o.duration_text())
            elif o.is_skip:
                log.info("- %s - Skipped (%s): %s", o.method, o.duration_text(), o.error)
            else:
                log.info("✗ %s - Failed (%s): %s", o.method, o.error_code, o.error)

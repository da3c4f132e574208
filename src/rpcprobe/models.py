"""Domain data structures shared across the harness."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from rpcprobe.constants import ErrorKind


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass(slots=True)
class Request:
    method: str
    params: list = field(default_factory=list)
    id: int | None = None

    def to_payload(self) -> dict:
        return {"jsonrpc": "2.0", "id": self.id, "method": self.method, "params": self.params}


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of one JSON-RPC call, or of a deliberate skip.

    `error_code` is the server's integer code for PROTOCOL errors, the HTTP status
    (or HTTP_ERROR marker) for TRANSPORT errors, and None otherwise.
    """

    method: str
    success: bool
    result: Any = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    error_code: int | str | None = None
    error_details: Any = None
    duration_ms: float | None = None
    timestamp: str = field(default_factory=_now)

    @classmethod
    def ok(cls, method: str, result: Any, duration_ms: float) -> "Outcome":
        return cls(method=method, success=True, result=result, duration_ms=duration_ms)

    @classmethod
    def transport(cls, method: str, error: str, code: int | str, details: Any = None,
                  duration_ms: float | None = None) -> "Outcome":
        return cls(method=method, success=False, error=error, error_kind=ErrorKind.TRANSPORT,
                   error_code=code, error_details=details, duration_ms=duration_ms)

    @classmethod
    def protocol(cls, method: str, error_obj: dict, duration_ms: float | None = None) -> "Outcome":
        return cls(
            method=method,
            success=False,
            error=str(error_obj.get("message", "")),
            error_kind=ErrorKind.PROTOCOL,
            error_code=error_obj.get("code"),
            error_details=error_obj,
            duration_ms=duration_ms,
        )

    @classmethod
    def skipped(cls, method: str, reason: str, duration_ms: float | None = None) -> "Outcome":
        return cls(method=method, success=False, error=reason, error_kind=ErrorKind.SKIPPED,
                   error_details=reason, duration_ms=duration_ms)

    @property
    def is_skip(self) -> bool:
        return self.error_kind == ErrorKind.SKIPPED

    @property
    def is_failure(self) -> bool:
        return not self.success and not self.is_skip

    @property
    def status(self) -> str:
        if self.success:
            return "Success"
        return "Skipped" if self.is_skip else "Failed"

    def duration_text(self) -> str:
        return "n/a" if self.duration_ms is None else f"{self.duration_ms:.0f}ms"

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "success": self.success,
            "status": self.status,
            "result": self.result,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_code": self.error_code,
            "error_details": self.error_details,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
        }


@dataclass
class BatchReport:
    """Outcomes of one request batch (a chunk of the queue, not a rollup batch)."""

    number: int
    outcomes: list[Outcome]

    @property
    def size(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.is_failure)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.is_skip)


@dataclass(frozen=True)
class Summary:
    total: int
    succeeded: int
    failed: int
    skipped: int

    @property
    def success_rate(self) -> float:
        return (self.succeeded / self.total * 100.0) if self.total else 0.0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "success_rate": round(self.success_rate, 2),
        }


@dataclass(frozen=True)
class Fixtures:
    """Validated inputs the suites are built from."""

    tx_hash: str
    address: str
    block_number: str  # 0x hex
    block_hash: str
    l1_batch_number: int
    message_index: int = 0
    message_proof_address: str | None = None
    tracer: str = "callTracer"

    @property
    def block_number_int(self) -> int:
        return int(self.block_number, 16)

"""Text streams the run writes its outcomes to.

Two streams: every outcome goes to the results stream; failures and skips are
duplicated, with full error details, to the errors stream.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from rpcprobe.models import Outcome

log = logging.getLogger("rpcprobe.sink")

RESULTS_FILE = "test_results.log"
ERRORS_FILE = "errors.log"


class Sink(Protocol):
    def write_result(self, outcome: Outcome) -> None: ...
    def write_error(self, outcome: Outcome) -> None: ...
    def write_fatal(self, message: str) -> None: ...


def format_result(outcome: Outcome) -> str:
    entry = f"[{outcome.timestamp}] {outcome.method} - {outcome.status} ({outcome.duration_text()})\n"
    if outcome.is_skip:
        entry += f"Reason: {outcome.error}\n"
    elif not outcome.success:
        entry += f"Error Code: {outcome.error_code}\nError: {outcome.error}\n"
    return entry


def format_error(outcome: Outcome) -> str:
    details = json.dumps(outcome.error_details, default=str)
    return (
        f"[{outcome.timestamp}] {outcome.method} - {outcome.error_kind} Error Code: {outcome.error_code}\n"
        f"Error: {outcome.error}\n"
        f"Details: {details}\n"
    )


class FileSink:
    """Appends entries to `<log_dir>/test_results.log` and `<log_dir>/errors.log`."""

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        self.results_path = self.log_dir / RESULTS_FILE
        self.errors_path = self.log_dir / ERRORS_FILE

    def initialize(self) -> None:
        """Create the directory and start both streams empty for this run."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.results_path.write_text("")
        self.errors_path.write_text("")
        log.info("Log files initialized at:\n- %s\n- %s", self.results_path, self.errors_path)

    def _append(self, path: Path, text: str) -> None:
        with path.open("a", encoding="utf-8") as f:
            f.write(text)

    def write_result(self, outcome: Outcome) -> None:
        self._append(self.results_path, format_result(outcome))

    def write_error(self, outcome: Outcome) -> None:
        self._append(self.errors_path, format_error(outcome))

    def write_fatal(self, message: str) -> None:
        ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._append(self.errors_path, f"[{ts}] Fatal error: {message}\n")

import logging
from collections import Counter
from typing import Iterator

from rpcprobe.models import Outcome, Summary

log = logging.getLogger("rpcprobe.ledger")


class ResultLedger:
    """Append-only record of every outcome in the order it was recorded.

    Single writer (the orchestrating flow), so there is no lock; `append` is the
    only mutator.
    """

    def __init__(self) -> None:
        self._outcomes: list[Outcome] = []
        self.count_by_status: Counter[str] = Counter()

    def append(self, outcome: Outcome) -> None:
        self._outcomes.append(outcome)
        self.count_by_status[outcome.status] += 1
        log.debug("ledger[%d] %s %s", len(self._outcomes) - 1, outcome.method, outcome.status)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[Outcome]:
        return iter(list(self._outcomes))

    def outcomes(self) -> list[Outcome]:
        return list(self._outcomes)

    def latest_success(self, method: str) -> Outcome | None:
        """Most recently appended successful outcome for `method`, ignoring failures around it."""
        for outcome in reversed(self._outcomes):
            if outcome.method == method and outcome.success:
                return outcome
        return None

    def latest_result(self, method: str, default=None):
        outcome = self.latest_success(method)
        return default if outcome is None else outcome.result

    def for_method(self, method: str) -> list[Outcome]:
        return [o for o in self._outcomes if o.method == method]

    def failures(self) -> list[Outcome]:
        return [o for o in self._outcomes if o.is_failure]

    def skipped(self) -> list[Outcome]:
        return [o for o in self._outcomes if o.is_skip]

    def non_successes(self) -> list[Outcome]:
        return [o for o in self._outcomes if not o.success]

    def summary(self) -> Summary:
        return Summary(
            total=len(self._outcomes),
            succeeded=self.count_by_status["Success"],
            failed=self.count_by_status["Failed"],
            skipped=self.count_by_status["Skipped"],
        )

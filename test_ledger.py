"""Test ResultLedger lookups/tallies and the file sink formats."""

from __future__ import annotations

import tempfile
from pathlib import Path
from unittest import TestCase

from rpcprobe.ledger import ResultLedger
from rpcprobe.models import Outcome
from rpcprobe.sink import FileSink, format_error, format_result


def failed(method: str, code=-32000) -> Outcome:
    return Outcome.protocol(method, {"code": code, "message": "boom"}, duration_ms=3)


class TestLatestSuccess(TestCase):
    def test_most_recent_success_wins(self):
        ledger = ResultLedger()
        ledger.append(Outcome.ok("eth_getTransactionReceipt", {"n": 1}, 1))
        ledger.append(Outcome.ok("eth_getTransactionReceipt", {"n": 2}, 1))
        self.assertEqual(ledger.latest_success("eth_getTransactionReceipt").result, {"n": 2})

    def test_failures_before_and_after_are_ignored(self):
        ledger = ResultLedger()
        ledger.append(failed("eth_call"))
        ledger.append(Outcome.ok("eth_call", "0x01", 1))
        ledger.append(failed("eth_call"))
        ledger.append(Outcome.skipped("eth_call", "null result"))
        self.assertEqual(ledger.latest_success("eth_call").result, "0x01")
        self.assertEqual(ledger.latest_result("eth_call"), "0x01")

    def test_none_when_only_failures(self):
        ledger = ResultLedger()
        ledger.append(failed("eth_call"))
        self.assertIsNone(ledger.latest_success("eth_call"))
        self.assertIsNone(ledger.latest_success("never_called"))
        self.assertEqual(ledger.latest_result("eth_call", default="fallback"), "fallback")


class TestSummary(TestCase):
    def test_skips_counted_apart_from_failures(self):
        ledger = ResultLedger()
        ledger.append(Outcome.ok("a", 1, 1))
        ledger.append(Outcome.ok("b", 1, 1))
        ledger.append(failed("c"))
        ledger.append(Outcome.skipped("d", "null result"))
        s = ledger.summary()
        self.assertEqual((s.total, s.succeeded, s.failed, s.skipped), (4, 2, 1, 1))
        self.assertAlmostEqual(s.success_rate, 50.0)
        self.assertEqual([o.method for o in ledger.failures()], ["c"])
        self.assertEqual([o.method for o in ledger.skipped()], ["d"])
        self.assertEqual([o.method for o in ledger.non_successes()], ["c", "d"])

    def test_empty_ledger_rate_is_zero(self):
        self.assertEqual(ResultLedger().summary().success_rate, 0.0)

    def test_append_order_is_preserved(self):
        ledger = ResultLedger()
        for m in ("x", "y", "z"):
            ledger.append(Outcome.ok(m, None, 1))
        self.assertEqual([o.method for o in ledger], ["x", "y", "z"])
        self.assertEqual(len(ledger), 3)


class TestFileSink(TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.sink = FileSink(Path(self._tmp.name) / "logs")
        self.sink.initialize()

    def tearDown(self):
        self._tmp.cleanup()

    def test_initialize_truncates_both_streams(self):
        self.sink.results_path.write_text("stale\n")
        self.sink.errors_path.write_text("stale\n")
        self.sink.initialize()
        self.assertEqual(self.sink.results_path.read_text(), "")
        self.assertEqual(self.sink.errors_path.read_text(), "")

    def test_entries_append_in_order(self):
        self.sink.write_result(Outcome.ok("eth_chainId", "0x1", 12))
        self.sink.write_result(failed("eth_call"))
        text = self.sink.results_path.read_text()
        self.assertLess(text.index("eth_chainId - Success (12ms)"), text.index("eth_call - Failed (3ms)"))
        self.assertIn("Error Code: -32000", text)

    def test_skip_entry_has_reason(self):
        entry = format_result(Outcome.skipped("eth_sign", "requires an unlocked signing account"))
        self.assertIn("eth_sign - Skipped (n/a)", entry)
        self.assertIn("Reason: requires an unlocked signing account", entry)

    def test_error_entry_has_full_details(self):
        entry = format_error(failed("eth_call", code=3))
        self.assertIn("PROTOCOL Error Code: 3", entry)
        self.assertIn('Details: {"code": 3, "message": "boom"}', entry)

    def test_fatal_goes_to_error_stream(self):
        self.sink.write_fatal("OrchestrationError: head unreachable")
        self.assertIn("Fatal error: OrchestrationError: head unreachable", self.sink.errors_path.read_text())
        self.assertEqual(self.sink.results_path.read_text(), "")

"""End-to-end runs of the three suites against the fake node."""

from __future__ import annotations

import tempfile
from unittest import IsolatedAsyncioTestCase

import httpx

from fake_node import (
    ADDRESS,
    BLOCK_HASH,
    CONTRACT,
    SENDER_A,
    SENDER_C,
    TX_BLOCK_HASH,
    FakeNode,
    error,
    healthy_responses,
    make_config,
    result,
)
from rpcprobe.constants import NEEDS_SIGNER, NEEDS_STREAM, NO_PROOF_ADDRESS, SIGNING_METHODS, STREAMING_METHODS, Suite
from rpcprobe.dispatcher import RequestDispatcher
from rpcprobe.errors import OrchestrationError
from rpcprobe.orchestrator import Orchestrator
from rpcprobe.sink import FileSink


class OrchestratorTestCase(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)

    async def run_against(self, node: FakeNode, sink=None, **config) -> Orchestrator:
        cfg = make_config(self._tmp.name, **config)
        async with RequestDispatcher(cfg.rpc_url, transport=node.transport) as dispatcher:
            orch = Orchestrator(cfg, dispatcher, sink)
            self.summary = await orch.run()
        return orch


class TestHealthyRun(OrchestratorTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.node = FakeNode(healthy_responses())
        self.sink = FileSink(self._tmp.name)
        self.sink.initialize()
        self.orch = await self.run_against(self.node, self.sink)

    async def test_only_deliberate_skips_are_non_successes(self):
        self.assertEqual(self.summary.failed, 0)
        skipped = {o.method: o.error for o in self.orch.ledger.skipped()}
        expected = {m: NEEDS_SIGNER for m in SIGNING_METHODS} | {m: NEEDS_STREAM for m in STREAMING_METHODS}
        expected["zks_getL2ToL1MsgProof"] = NO_PROOF_ADDRESS
        self.assertEqual(skipped, expected)
        self.assertEqual(self.summary.total, len(self.orch.ledger))

    async def test_suites_run_in_order(self):
        methods = [o.method for o in self.orch.ledger]
        last_eth = max(i for i, m in enumerate(methods) if m.startswith("eth_"))
        first_debug = min(i for i, m in enumerate(methods) if m.startswith("debug_"))
        last_debug = max(i for i, m in enumerate(methods) if m.startswith("debug_"))
        first_zks = min(i for i, m in enumerate(methods) if m.startswith("zks_"))
        self.assertLess(last_eth, first_debug)
        self.assertLess(last_debug, first_zks)
        self.assertEqual(set(self.orch.reports), {Suite.ETH, Suite.DEBUG, Suite.ZKS})

    async def test_dependent_lookups_use_receipt_location(self):
        self.assertEqual(self.node.params_for("eth_getTransactionByBlockHashAndIndex"), [[TX_BLOCK_HASH, "0x2"]])
        self.assertEqual(self.node.params_for("eth_getTransactionByBlockNumberAndIndex"), [["0x1f4", "0x2"]])
        self.assertEqual(self.node.params_for("eth_getBlockTransactionCountByHash"), [[TX_BLOCK_HASH]])
        self.assertEqual(self.node.params_for("eth_getBlockTransactionCountByNumber"), [["0x1f4"]])
        logs_by_range, logs_by_hash = self.node.params_for("eth_getLogs")
        self.assertEqual(logs_by_range[0]["address"], CONTRACT)
        self.assertEqual(logs_by_hash[0], {"blockHash": TX_BLOCK_HASH})

    async def test_suites_use_head_block(self):
        self.assertEqual(self.orch.fixtures.block_number, "0x3e8")
        self.assertEqual(self.orch.fixtures.block_hash, BLOCK_HASH)
        self.assertIn(["0x3e8", {"tracer": "callTracer"}], self.node.params_for("debug_traceBlockByNumber"))
        # zks block lookups follow the transaction's block
        self.assertEqual(self.node.params_for("zks_getBlockDetails"), [[500]])

    async def test_filters_are_created_polled_and_removed(self):
        self.assertEqual(sorted(p[0] for p in self.node.params_for("eth_uninstallFilter")), ["0x1", "0x2", "0x3"])
        self.assertEqual(self.node.params_for("eth_getFilterLogs"), [["0x1"]])
        self.assertEqual(len(self.node.params_for("eth_getFilterChanges")), 3)

    async def test_no_proof_request_without_address(self):
        self.assertNotIn("zks_getL2ToL1MsgProof", self.node.methods_called())

    async def test_sink_mirrors_ledger(self):
        text = self.sink.results_path.read_text()
        self.assertEqual(text.count(" - Success ("), self.summary.succeeded)
        self.assertEqual(self.sink.errors_path.read_text().count(" - SKIPPED Error Code"), self.summary.skipped)


class TestFailurePaths(OrchestratorTestCase):
    async def test_filter_creation_failure_skips_polling(self):
        responses = healthy_responses()
        responses["eth_newFilter"] = error(-32000, "filter not supported")
        node = FakeNode(responses)
        orch = await self.run_against(node)
        self.assertNotIn(["0x1"], node.params_for("eth_getFilterLogs"))
        self.assertNotIn(["0x1"], node.params_for("eth_uninstallFilter"))
        self.assertEqual([o.error_code for o in orch.ledger.for_method("eth_newFilter")], [-32000])
        self.assertEqual(len(node.params_for("eth_uninstallFilter")), 2)

    async def test_head_block_unreachable_is_fatal(self):
        responses = healthy_responses()
        responses["eth_blockNumber"] = httpx.ConnectError("Connection refused")
        with self.assertRaises(OrchestrationError):
            await self.run_against(FakeNode(responses))

    async def test_block_overrides_skip_head_lookup(self):
        node = FakeNode(healthy_responses())
        override_hash = "0x" + "99" * 32
        orch = await self.run_against(node, block_number="42", block_hash=override_hash)
        self.assertEqual(orch.fixtures.block_number, "0x2a")
        self.assertEqual(node.params_for("eth_getBlockByHash"), [[override_hash, False]])
        # eth_blockNumber still runs once, as part of the suite
        self.assertEqual(node.methods_called().count("eth_blockNumber"), 1)

    async def test_missing_receipt_falls_back_to_fixture_block(self):
        responses = healthy_responses()
        responses["eth_getTransactionReceipt"] = result(None)
        responses["eth_getTransactionByHash"] = result(None)
        node = FakeNode(responses)
        await self.run_against(node)
        self.assertEqual(node.params_for("eth_getTransactionByBlockHashAndIndex"), [[BLOCK_HASH, "0x0"]])
        self.assertEqual(node.params_for("eth_getBlockTransactionCountByHash"), [[BLOCK_HASH]])
        self.assertEqual(node.params_for("eth_getBlockTransactionCountByNumber"), [["0x3e8"]])
        self.assertEqual(node.params_for("eth_getLogs")[0][0]["address"], ADDRESS)

    async def test_one_failing_method_leaves_the_rest(self):
        responses = healthy_responses()
        responses["debug_traceCall"] = error(-32601, "Method not found")
        node = FakeNode(responses)
        orch = await self.run_against(node)
        self.assertEqual([o.method for o in orch.ledger.failures()], ["debug_traceCall"])
        self.assertIn("zks_getProof", node.methods_called())


class TestMessageProof(OrchestratorTestCase):
    async def test_discovered_sender_enables_proof_request(self):
        node = FakeNode(healthy_responses())
        orch = await self.run_against(node, message_proof_address=SENDER_A)
        self.assertEqual(orch.fixtures.message_proof_address, SENDER_A)
        self.assertEqual(node.params_for("zks_getL2ToL1MsgProof"), [[SENDER_A, 100]])
        self.assertTrue(orch.ledger.latest_success("zks_getL2ToL1MsgProof"))

    async def test_unknown_sender_skips_proof_request(self):
        node = FakeNode(healthy_responses())
        orch = await self.run_against(node, message_proof_address=SENDER_C)
        self.assertIsNone(orch.fixtures.message_proof_address)
        self.assertNotIn("zks_getL2ToL1MsgProof", node.methods_called())
        [skip] = orch.ledger.for_method("zks_getL2ToL1MsgProof")
        self.assertEqual(skip.error, NO_PROOF_ADDRESS)

    async def test_no_senders_at_all_still_completes(self):
        node = FakeNode(healthy_responses(l1_batches={n: [] for n in range(96, 101)}))
        orch = await self.run_against(node)
        self.assertNotIn("zks_getL2ToL1MsgProof", node.methods_called())
        self.assertEqual(self.summary.failed, 0)
        self.assertTrue(orch.ledger.for_method("zks_getL2ToL1MsgProof")[0].is_skip)

import asyncio
import json
import tempfile
import time
import unittest
from pathlib import Path

from autoconf_agent.agent import DecisionLoop, DecisionPort, LoopState, RuleDecisionPort, StaticMetrics
from autoconf_agent.errors import DecisionError, InitializationError
from autoconf_agent.store import ThresholdStore
from autoconf_agent.tools.threshold import ThresholdToolService
from autoconf_agent.trace import TraceEmitterWriter, TraceWriter, read_events
from autoconf_agent.transport import LocalToolTransport, ToolTransport
from autoconf_agent.types import THRESHOLD_KEY, ActionProposal


class ScriptedDecisionPort(DecisionPort):
    """Replays one scripted reply per tick; an exception in the script is raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.contexts = []

    def decide(self, context, actions):
        self.contexts.append(context)
        reply = self.replies.pop(0) if self.replies else []
        if isinstance(reply, Exception):
            raise reply
        return list(reply)


class SlowDecisionPort(DecisionPort):
    def decide(self, context, actions):
        time.sleep(0.3)
        return [ActionProposal(name="adjust_threshold", arguments={"value": 10})]


class StalledTransport(ToolTransport):
    async def initialize(self):
        return None

    async def call(self, name, arguments):
        await asyncio.sleep(5)


class CountingTransport(LocalToolTransport):
    def __init__(self, *tools):
        super().__init__(*tools)
        self.initialize_calls = 0

    async def initialize(self):
        self.initialize_calls += 1
        await super().initialize()


class BrokenTransport(ToolTransport):
    async def initialize(self):
        raise InitializationError("handshake refused")

    async def call(self, name, arguments):
        raise AssertionError("call must not happen without a session")


def _adjust(value, call_id=None):
    return ActionProposal(name="adjust_threshold", arguments={"value": value}, call_id=call_id)


class TestDecisionLoop(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "config.json"
        self.service = ThresholdToolService(ThresholdStore(self.path))

    def tearDown(self):
        self._tmp.cleanup()

    def _persisted(self):
        return json.loads(self.path.read_text(encoding="utf-8"))[THRESHOLD_KEY]

    def _loop(self, port, transport=None, **kwargs):
        return DecisionLoop(
            metrics=StaticMetrics({"cpu_usage_percent": 90.0}),
            port=port,
            transport=transport or LocalToolTransport(self.service),
            interval_s=kwargs.pop("interval_s", 0.01),
            **kwargs,
        )

    async def test_end_to_end_high_cpu_raises_threshold(self):
        port = ScriptedDecisionPort([_adjust(90)])
        loop = self._loop(port)
        await loop.transport.initialize()
        outcome = await loop.tick()

        self.assertEqual(port.contexts[0].metric("cpu_usage_percent"), 90.0)
        self.assertEqual(len(outcome.dispatched), 1)
        result = outcome.dispatched[0].result
        self.assertEqual(result.to_dict(), {"old_value": 80.0, "new_value": 90.0, "status": "success"})
        self.assertEqual(self._persisted(), 90.0)
        self.assertEqual(loop.state, LoopState.IDLE)

    async def test_rule_oracle_end_to_end(self):
        port = RuleDecisionPort([{"name": "hot", "metric": "cpu_usage_percent", "above": 85, "set": 90}])
        loop = self._loop(port)
        ticks = await loop.run(max_ticks=1)
        self.assertEqual(ticks, 1)
        self.assertEqual(self._persisted(), 90.0)

    async def test_decision_error_skips_dispatch(self):
        loop = self._loop(ScriptedDecisionPort(DecisionError("oracle unreachable")))
        await loop.transport.initialize()
        with self.assertLogs("autoconf.loop", level="WARNING"):
            outcome = await loop.tick()
        self.assertIn("oracle unreachable", outcome.decision_error)
        self.assertEqual(outcome.dispatched, [])
        self.assertFalse(self.path.exists())
        self.assertEqual(loop.state, LoopState.IDLE)

    async def test_decision_timeout_is_recoverable(self):
        loop = self._loop(SlowDecisionPort(), decision_timeout_s=0.05)
        await loop.transport.initialize()
        outcome = await loop.tick()
        self.assertIsNotNone(outcome.decision_error)
        self.assertEqual(outcome.dispatched, [])

    async def test_unknown_actions_are_dropped(self):
        port = ScriptedDecisionPort([ActionProposal(name="reboot", arguments={}), _adjust(70)])
        loop = self._loop(port)
        await loop.transport.initialize()
        outcome = await loop.tick()
        self.assertEqual([p.name for p in outcome.dropped], ["reboot"])
        self.assertEqual(len(outcome.dispatched), 1)
        self.assertEqual(self._persisted(), 70.0)

    async def test_multiple_proposals_apply_in_order(self):
        loop = self._loop(ScriptedDecisionPort([_adjust(85), _adjust(95)]))
        await loop.transport.initialize()
        outcome = await loop.tick()
        results = [d.result for d in outcome.dispatched]
        self.assertEqual([(r.old_value, r.new_value) for r in results], [(80.0, 85.0), (85.0, 95.0)])
        self.assertEqual(self._persisted(), 95.0)

    async def test_rejections_are_reported_and_loop_continues(self):
        port = ScriptedDecisionPort([_adjust(150), _adjust("high")], [_adjust(60)])
        loop = self._loop(port)
        await loop.transport.initialize()
        first = await loop.tick()
        self.assertEqual([d.error_kind for d in first.dispatched], ["out_of_range", "invalid_argument"])
        self.assertFalse(self.path.exists())
        second = await loop.tick()
        self.assertTrue(second.dispatched[0].ok)
        self.assertEqual(self._persisted(), 60.0)

    async def test_stalled_tool_call_times_out(self):
        loop = self._loop(ScriptedDecisionPort([_adjust(90)]), transport=StalledTransport(), tool_timeout_s=0.05)
        await loop.transport.initialize()
        with self.assertLogs("autoconf.loop", level="ERROR"):
            outcome = await loop.tick()
        self.assertEqual(outcome.dispatched[0].error_kind, "transport_error")

    async def test_run_initializes_once_and_ticks_sequentially(self):
        transport = CountingTransport(self.service)
        port = ScriptedDecisionPort([_adjust(81)], [], [_adjust(82)])
        loop = self._loop(port, transport=transport)
        ticks = await loop.run(max_ticks=3)
        self.assertEqual(ticks, 3)
        self.assertEqual(loop.ticks, 3)
        self.assertEqual(transport.initialize_calls, 1)
        self.assertEqual(self._persisted(), 82.0)

    async def test_initialization_failure_is_fatal(self):
        loop = self._loop(ScriptedDecisionPort([_adjust(90)]), transport=BrokenTransport())
        with self.assertRaises(InitializationError):
            await loop.run(max_ticks=1)
        self.assertEqual(loop.ticks, 0)

    async def test_audit_trail(self):
        audit_path = str(Path(self._tmp.name) / "audit" / "events.jsonl")
        writer = TraceWriter(audit_path)
        loop = self._loop(
            ScriptedDecisionPort([_adjust(90), _adjust(900)]),
            trace=TraceEmitterWriter(writer),
            run_id="run-1",
        )
        await loop.transport.initialize()
        await loop.tick()
        writer.close()

        events = list(read_events(audit_path))
        self.assertEqual([e["type"] for e in events], ["tick.sampled", "decision", "dispatch", "dispatch"])
        self.assertTrue(all(e["run_id"] == "run-1" and e["tick"] == 1 for e in events))
        self.assertEqual(events[2]["payload"]["result"]["new_value"], 90.0)
        self.assertEqual(events[3]["status"], "error")
        self.assertEqual(events[3]["payload"]["error_kind"], "out_of_range")


if __name__ == "__main__":
    unittest.main()

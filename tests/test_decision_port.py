import json
import unittest
from unittest import mock

from autoconf_agent.agent import LLMDecisionPort, RuleDecisionPort, build_context, parse_tool_calls
from autoconf_agent.errors import DecisionError
from autoconf_agent.llm import LLMClient, LLMError, LLMMessage, LLMResponse, OpenAICompatibleClient
from autoconf_agent.tools.schemas import ADJUST_THRESHOLD_SPEC


def _tool_call(name, arguments, call_id="call-1"):
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


class RecordingLLM(LLMClient):
    def __init__(self, response=None, error=None):
        super().__init__(model="fake")
        self.response = response
        self.error = error
        self.calls = []

    def complete(self, messages, **kwargs):
        self.calls.append((messages, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


class TestParseToolCalls(unittest.TestCase):
    def test_parses_every_call(self):
        proposals = parse_tool_calls(
            [
                _tool_call("adjust_threshold", '{"value": 90}', "a"),
                _tool_call("adjust_threshold", {"value": 91}, "b"),
                _tool_call("restart_host", "{}", "c"),
            ]
        )
        self.assertEqual([p.name for p in proposals], ["adjust_threshold", "adjust_threshold", "restart_host"])
        self.assertEqual(proposals[0].arguments, {"value": 90})
        self.assertEqual(proposals[1].arguments, {"value": 91})
        self.assertEqual(proposals[0].call_id, "a")

    def test_skips_unparseable_arguments(self):
        with self.assertLogs("autoconf.decision", level="WARNING"):
            proposals = parse_tool_calls(
                [
                    _tool_call("adjust_threshold", "{value: 90", "bad"),
                    _tool_call("adjust_threshold", "[90]", "list"),
                    {"id": "x", "type": "function"},
                    _tool_call("adjust_threshold", '{"value": 88}', "good"),
                ]
            )
        self.assertEqual([p.call_id for p in proposals], ["good"])


class TestLLMDecisionPort(unittest.TestCase):
    def setUp(self):
        self.context = build_context({"cpu_usage_percent": 90.0})

    def test_declares_tools_and_returns_proposals(self):
        llm = RecordingLLM(
            LLMResponse(
                content="",
                model="fake",
                tool_calls=[_tool_call("adjust_threshold", json.dumps({"value": 90}))],
            )
        )
        port = LLMDecisionPort(llm, timeout_s=5)
        proposals = port.decide(self.context, [ADJUST_THRESHOLD_SPEC])
        self.assertEqual(len(proposals), 1)
        self.assertEqual(proposals[0].arguments, {"value": 90})

        messages, kwargs = llm.calls[0]
        self.assertEqual(messages[0].role, "user")
        self.assertIn("cpu_usage_percent: 90.0", messages[0].content)
        self.assertEqual(kwargs["tool_choice"], "auto")
        self.assertEqual(kwargs["tools"][0]["function"]["name"], "adjust_threshold")
        self.assertEqual(kwargs["timeout_s"], 5)

    def test_no_tool_calls_means_no_proposals(self):
        llm = RecordingLLM(LLMResponse(content="No change needed.", model="fake"))
        self.assertEqual(LLMDecisionPort(llm).decide(self.context, [ADJUST_THRESHOLD_SPEC]), [])

    def test_oracle_failures_become_decision_errors(self):
        for error in (LLMError("malformed"), OSError("connection refused"), TimeoutError("slow")):
            with self.subTest(error=error):
                port = LLMDecisionPort(RecordingLLM(error=error))
                with self.assertRaises(DecisionError):
                    port.decide(self.context, [ADJUST_THRESHOLD_SPEC])


class TestOpenAICompatibleClient(unittest.TestCase):
    def test_extracts_tool_calls(self):
        raw = {
            "choices": [
                {
                    "message": {
                        "role": "assistant",
                        "content": None,
                        "tool_calls": [_tool_call("adjust_threshold", '{"value": 90}')],
                    }
                }
            ]
        }
        client = OpenAICompatibleClient(model="qwen-turbo", api_key="k", base_url="https://example.invalid/")
        with mock.patch("autoconf_agent.llm.base._post_json", return_value=raw) as post:
            response = client.complete([LLMMessage(role="user", content="hi")], tools=[], tool_choice="auto")
        url, payload = post.call_args[0][0], post.call_args[0][1]
        self.assertEqual(url, "https://example.invalid/v1/chat/completions")
        self.assertEqual(payload["tool_choice"], "auto")
        self.assertEqual(response.content, "")
        self.assertEqual(response.tool_calls[0]["function"]["name"], "adjust_threshold")

    def test_missing_choices_is_an_error(self):
        client = OpenAICompatibleClient(model="qwen-turbo", api_key="k", base_url="https://example.invalid")
        with mock.patch("autoconf_agent.llm.base._post_json", return_value={"error": {"message": "quota"}}):
            with self.assertRaises(LLMError):
                client.complete([LLMMessage(role="user", content="hi")])

    def test_requires_api_key(self):
        client = OpenAICompatibleClient(model="qwen-turbo", api_key=None, base_url="https://example.invalid")
        with self.assertRaises(LLMError):
            client.complete([LLMMessage(role="user", content="hi")])


class TestRuleDecisionPort(unittest.TestCase):
    def setUp(self):
        self.port = RuleDecisionPort(
            [{"name": "hot", "metric": "cpu_usage_percent", "above": 85.0, "set": 90.0}]
        )

    def test_matching_rule_proposes_value(self):
        proposals = self.port.decide(build_context({"cpu_usage_percent": 92.0}), [ADJUST_THRESHOLD_SPEC])
        self.assertEqual(len(proposals), 1)
        self.assertEqual(proposals[0].name, "adjust_threshold")
        self.assertEqual(proposals[0].arguments, {"value": 90.0})
        self.assertEqual(proposals[0].call_id, "rule:hot")

    def test_no_match_or_undeclared_action(self):
        self.assertEqual(self.port.decide(build_context({"cpu_usage_percent": 85.0}), [ADJUST_THRESHOLD_SPEC]), [])
        self.assertEqual(self.port.decide(build_context({"cpu_usage_percent": 99.0}), []), [])
        self.assertEqual(self.port.decide(build_context({"memory": 99.0}), [ADJUST_THRESHOLD_SPEC]), [])


if __name__ == "__main__":
    unittest.main()

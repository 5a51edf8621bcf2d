from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from ..errors import DecisionError
from ..llm import LLMClient, LLMError, LLMMessage
from ..types import ADJUST_THRESHOLD, ActionProposal, ActionSpec, SituationalContext
from ..utils import setup_logger


logger = setup_logger("autoconf.decision")


class DecisionPort:
    """Oracle boundary: context plus declared actions in, proposals out.

    Proposals are untrusted; the tool service re-validates every one.
    """

    def decide(self, context: SituationalContext, actions: Sequence[ActionSpec]) -> List[ActionProposal]:
        raise NotImplementedError


class LLMDecisionPort(DecisionPort):
    def __init__(
        self,
        llm: LLMClient,
        *,
        max_tokens: int = 512,
        temperature: float = 0.2,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.llm = llm
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_s = timeout_s

    def decide(self, context: SituationalContext, actions: Sequence[ActionSpec]) -> List[ActionProposal]:
        messages = [LLMMessage(role="user", content=context.render())]
        kwargs: Dict[str, Any] = {
            "tools": [action.to_openai_tool() for action in actions],
            "tool_choice": "auto",
        }
        if self.timeout_s is not None:
            kwargs["timeout_s"] = self.timeout_s
        try:
            response = self.llm.complete(
                messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                **kwargs,
            )
        except (LLMError, OSError, ValueError) as exc:
            raise DecisionError(f"oracle call failed: {exc}") from exc
        return parse_tool_calls(response.tool_calls)


def parse_tool_calls(tool_calls: Sequence[Dict[str, Any]]) -> List[ActionProposal]:
    proposals: List[ActionProposal] = []
    for call in tool_calls:
        function = call.get("function")
        if not isinstance(function, dict) or not function.get("name"):
            logger.warning("Ignoring malformed tool call: %s", call)
            continue
        name = str(function["name"])
        raw_arguments = function.get("arguments")
        try:
            arguments = _decode_arguments(raw_arguments)
        except ValueError as exc:
            logger.warning("Failed to parse arguments for %s: %s", name, exc)
            continue
        proposals.append(ActionProposal(name=name, arguments=arguments, call_id=call.get("id")))
    return proposals


def _decode_arguments(raw: Any) -> Dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    if not isinstance(raw, str):
        raise ValueError(f"unsupported arguments type {type(raw).__name__}")
    decoded = json.loads(raw)
    if not isinstance(decoded, dict):
        raise ValueError("arguments must decode to an object")
    return decoded


class RuleDecisionPort(DecisionPort):
    """Deterministic oracle: the first matching rule proposes its value.

    Rule shape: {"name": str, "metric": str, "above": float, "below": float, "set": float}.
    """

    def __init__(self, rules: Optional[List[Dict[str, Any]]] = None, action: str = ADJUST_THRESHOLD) -> None:
        self.rules = list(rules or [])
        self.action = action

    def decide(self, context: SituationalContext, actions: Sequence[ActionSpec]) -> List[ActionProposal]:
        if self.action not in {spec.name for spec in actions}:
            return []
        for rule in self.rules:
            if not self._matches(rule, context):
                continue
            return [
                ActionProposal(
                    name=self.action,
                    arguments={"value": rule.get("set")},
                    call_id=f"rule:{rule.get('name') or 'rule_match'}",
                )
            ]
        return []

    def _matches(self, rule: Dict[str, Any], context: SituationalContext) -> bool:
        value = context.metric(str(rule.get("metric")))
        if value is None:
            return False
        above = _to_float(rule.get("above"))
        if above is not None and value <= above:
            return False
        below = _to_float(rule.get("below"))
        if below is not None and value >= below:
            return False
        return True


def _to_float(value: Any) -> float | None:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None

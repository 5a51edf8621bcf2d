from .decision_port import DecisionPort, LLMDecisionPort, RuleDecisionPort, parse_tool_calls
from .loop import DecisionLoop, DispatchOutcome, LoopState, TickOutcome
from .metrics import DEFAULT_RULE, MetricsSource, SimulatedCpuMetrics, StaticMetrics, build_context

__all__ = [
    "DecisionPort",
    "LLMDecisionPort",
    "RuleDecisionPort",
    "parse_tool_calls",
    "DecisionLoop",
    "DispatchOutcome",
    "LoopState",
    "TickOutcome",
    "DEFAULT_RULE",
    "MetricsSource",
    "SimulatedCpuMetrics",
    "StaticMetrics",
    "build_context",
]

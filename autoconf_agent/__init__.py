from .agent import DecisionLoop, DecisionPort, LLMDecisionPort, RuleDecisionPort
from .config import default_agent_config, load_agent_config
from .store import ThresholdStore
from .tools import ThresholdToolService
from .transport import LocalToolTransport, McpToolTransport
from .types import ActionProposal, ActionResult, AgentConfig, SituationalContext

__all__ = [
    "DecisionLoop",
    "DecisionPort",
    "LLMDecisionPort",
    "RuleDecisionPort",
    "default_agent_config",
    "load_agent_config",
    "ThresholdStore",
    "ThresholdToolService",
    "LocalToolTransport",
    "McpToolTransport",
    "ActionProposal",
    "ActionResult",
    "AgentConfig",
    "SituationalContext",
]

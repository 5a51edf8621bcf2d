from __future__ import annotations

import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional


THRESHOLD_KEY = "cpu_alert_threshold"
DEFAULT_THRESHOLD = 80.0
THRESHOLD_MIN = 0.0
THRESHOLD_MAX = 100.0

ADJUST_THRESHOLD = "adjust_threshold"
CPU_USAGE_METRIC = "cpu_usage_percent"

STATUS_SUCCESS = "success"

DEFAULT_LLM_BASE_URL = "https://dashscope.aliyuncs.com/compatible-mode"
DEFAULT_LLM_MODEL = "qwen-turbo"


@dataclass(frozen=True)
class SituationalContext:
    """Snapshot of the observed metrics handed to the oracle for one tick."""

    metrics: Mapping[str, float]
    rule: str
    captured_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    def metric(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return self.metrics.get(name, default)

    def render(self) -> str:
        lines = ["Current system status:"]
        for name, value in sorted(self.metrics.items()):
            lines.append(f"- {name}: {value:.1f}")
        lines.append("")
        lines.append(self.rule.strip())
        return "\n".join(lines)


@dataclass
class ActionSpec:
    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_openai_tool(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ActionProposal:
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    call_id: Optional[str] = None


@dataclass
class ActionResult:
    old_value: float
    new_value: float
    status: str = STATUS_SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_value": self.old_value,
            "new_value": self.new_value,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ActionResult":
        return cls(
            old_value=float(payload["old_value"]),
            new_value=float(payload["new_value"]),
            status=str(payload.get("status", STATUS_SUCCESS)),
        )


@dataclass
class LLMSettings:
    provider: str = "openai-compatible"  # openai-compatible, openai, rules, none
    model: str = DEFAULT_LLM_MODEL
    base_url: Optional[str] = DEFAULT_LLM_BASE_URL
    api_key_env: str = "LLM_API_KEY"
    timeout_s: float = 30.0
    max_tokens: int = 512
    temperature: float = 0.2


@dataclass
class ServiceSettings:
    host: str = "localhost"
    port: int = 9001
    path: str = "/mcp"
    state_file: Optional[str] = None
    server_name: str = "auto-config-agent"

    @property
    def endpoint(self) -> str:
        return f"http://{self.host}:{self.port}{self.path}"


@dataclass
class LoopSettings:
    interval_s: float = 5.0
    decision_timeout_s: float = 45.0
    tool_timeout_s: float = 10.0
    handshake_timeout_s: float = 10.0
    max_ticks: Optional[int] = None
    client_name: str = "auto-decision-agent"
    client_version: str = "1.0.0"


@dataclass
class AgentConfig:
    llm: LLMSettings = field(default_factory=LLMSettings)
    service: ServiceSettings = field(default_factory=ServiceSettings)
    loop: LoopSettings = field(default_factory=LoopSettings)
    rules: List[Dict[str, Any]] = field(default_factory=list)
    endpoint: Optional[str] = None
    audit_log: Optional[str] = None
    seed: Optional[int] = None

    @property
    def tool_endpoint(self) -> str:
        return self.endpoint or self.service.endpoint

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from .types import AgentConfig, LLMSettings, LoopSettings, ServiceSettings
from .utils import read_json


DEFAULT_RULES: List[Dict[str, Any]] = [
    {
        "name": "sustained-high-cpu",
        "metric": "cpu_usage_percent",
        "above": 85.0,
        "set": 90.0,
    }
]


def default_agent_config() -> AgentConfig:
    return AgentConfig(
        llm=LLMSettings(),
        service=ServiceSettings(),
        loop=LoopSettings(),
        rules=[dict(rule) for rule in DEFAULT_RULES],
    )


def _merge_dataclass(default_obj, payload: Dict[str, Any]):
    for key, value in payload.items():
        if hasattr(default_obj, key):
            setattr(default_obj, key, value)
    return default_obj


def load_agent_config(path: str) -> AgentConfig:
    payload = read_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"agent config must be a JSON object: {path}")

    llm = _merge_dataclass(LLMSettings(), payload.get("llm", {}))
    service = _merge_dataclass(ServiceSettings(), payload.get("service", {}))
    loop = _merge_dataclass(LoopSettings(), payload.get("loop", {}))

    rules = payload.get("rules")
    if not isinstance(rules, list) or not rules:
        rules = [dict(rule) for rule in DEFAULT_RULES]

    config = AgentConfig(
        llm=llm,
        service=service,
        loop=loop,
        rules=rules,
        endpoint=payload.get("endpoint"),
        audit_log=payload.get("audit_log"),
        seed=payload.get("seed"),
    )
    errors = validate_agent_config(config)
    if errors:
        raise ValueError(f"invalid agent config {path}: {', '.join(errors)}")
    return config


def validate_agent_config(config: AgentConfig) -> List[str]:
    errors: List[str] = []
    loop = config.loop
    for name in ("interval_s", "decision_timeout_s", "tool_timeout_s", "handshake_timeout_s"):
        value = getattr(loop, name)
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
            errors.append(f"loop.{name} must be > 0")
    if loop.max_ticks is not None and (not isinstance(loop.max_ticks, int) or loop.max_ticks < 1):
        errors.append("loop.max_ticks must be a positive integer")
    if not isinstance(config.service.port, int) or not (0 < config.service.port < 65536):
        errors.append("service.port must be in 1..65535")
    if not str(config.service.path).startswith("/"):
        errors.append("service.path must start with '/'")
    for rule in config.rules:
        if not isinstance(rule, dict) or "metric" not in rule or "set" not in rule:
            errors.append("rules entries need 'metric' and 'set'")
            break
    return errors


def config_to_dict(config: AgentConfig) -> Dict[str, Any]:
    payload = asdict(config)
    payload["tool_endpoint"] = config.tool_endpoint
    return payload

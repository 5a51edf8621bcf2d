from __future__ import annotations

from typing import Any, Dict, Mapping


class AgentError(RuntimeError):
    kind = "error"

    def __init__(self, message: str, *, kind: str | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "error", "kind": self.kind, "message": self.message}


class ArgumentError(AgentError):
    """Rejected tool input. Never mutates state."""

    kind = "invalid_argument"


class InvalidArgumentError(ArgumentError):
    kind = "invalid_argument"


class OutOfRangeError(ArgumentError):
    kind = "out_of_range"


class PersistenceError(AgentError):
    kind = "persistence_error"


class ToolCallError(AgentError):
    kind = "tool_error"


class TransportError(AgentError):
    kind = "transport_error"


class InitializationError(AgentError):
    kind = "initialization_error"


class DecisionError(AgentError):
    kind = "decision_error"


_ERRORS_BY_KIND = {
    InvalidArgumentError.kind: InvalidArgumentError,
    OutOfRangeError.kind: OutOfRangeError,
    PersistenceError.kind: PersistenceError,
}


def error_from_payload(payload: Mapping[str, Any]) -> AgentError:
    kind = str(payload.get("kind") or ToolCallError.kind)
    message = str(payload.get("message") or "tool call failed")
    error_cls = _ERRORS_BY_KIND.get(kind, ToolCallError)
    return error_cls(message, kind=kind)

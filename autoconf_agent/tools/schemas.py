from __future__ import annotations

import sys
from typing import Any, Dict, Mapping, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import InvalidArgumentError, OutOfRangeError
from ..types import ADJUST_THRESHOLD, THRESHOLD_MAX, THRESHOLD_MIN, ActionSpec


VALUE_DESCRIPTION = "New threshold percentage"

ADJUST_THRESHOLD_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "value": {
            "type": "number",
            "description": VALUE_DESCRIPTION,
            "minimum": THRESHOLD_MIN,
            "maximum": THRESHOLD_MAX,
        },
    },
    "required": ["value"],
}

ADJUST_THRESHOLD_SPEC = ActionSpec(
    name=ADJUST_THRESHOLD,
    description="Adjust the CPU alert threshold (0~100).",
    parameters=ADJUST_THRESHOLD_PARAMETERS,
)

_RANGE_ERROR_TYPES = {"greater_than_equal", "less_than_equal"}


class AdjustThresholdCommand(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    value: float = Field(ge=THRESHOLD_MIN, le=THRESHOLD_MAX, allow_inf_nan=False, description=VALUE_DESCRIPTION)

    @field_validator("value", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        # bool is an int subclass; strings would be coerced by lax mode.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        if isinstance(value, int) and abs(value) > sys.float_info.max:
            # beyond float range, but still a number: fail the range check
            return THRESHOLD_MAX + 1.0 if value > 0 else THRESHOLD_MIN - 1.0
        return value


COMMANDS: Dict[str, Type[BaseModel]] = {
    ADJUST_THRESHOLD: AdjustThresholdCommand,
}


def decode_command(name: str, arguments: Any) -> AdjustThresholdCommand:
    """Decode untyped tool arguments into a validated command.

    Raises InvalidArgumentError for unknown actions and absent, non-numeric or
    non-finite values, OutOfRangeError for numbers outside [0, 100].
    """
    model = COMMANDS.get(name)
    if model is None:
        raise InvalidArgumentError(f"unknown action: {name}")
    if not isinstance(arguments, Mapping):
        raise InvalidArgumentError("arguments must be an object")
    try:
        return model.model_validate(dict(arguments))
    except ValidationError as exc:
        errors = exc.errors()
        if errors and all(err.get("type") in _RANGE_ERROR_TYPES for err in errors):
            raise OutOfRangeError(
                f"'value' must be between {THRESHOLD_MIN:g} and {THRESHOLD_MAX:g}, got {arguments.get('value')!r}"
            ) from exc
        raise InvalidArgumentError(f"parameter 'value' must be a number, got {arguments.get('value')!r}") from exc

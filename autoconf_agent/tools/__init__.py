from .base import Tool
from .schemas import ADJUST_THRESHOLD_SPEC, AdjustThresholdCommand, decode_command
from .threshold import ThresholdServiceStats, ThresholdToolService

__all__ = [
    "Tool",
    "ADJUST_THRESHOLD_SPEC",
    "AdjustThresholdCommand",
    "decode_command",
    "ThresholdServiceStats",
    "ThresholdToolService",
]

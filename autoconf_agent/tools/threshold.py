from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..errors import ArgumentError, PersistenceError
from ..store import ThresholdStore
from ..types import ADJUST_THRESHOLD, ActionResult
from ..utils import setup_logger
from .base import Tool
from .schemas import ADJUST_THRESHOLD_SPEC, decode_command


logger = setup_logger("autoconf.service")


@dataclass
class ThresholdServiceStats:
    applied: int = 0
    rejected: int = 0
    failed: int = 0


class ThresholdToolService(Tool):
    """Validates and applies threshold changes; owns the single mutation lock."""

    name = ADJUST_THRESHOLD
    spec = ADJUST_THRESHOLD_SPEC

    def __init__(self, store: ThresholdStore) -> None:
        self.store = store
        self.stats = ThresholdServiceStats()
        self._lock = threading.Lock()

    def adjust_threshold(self, arguments: Mapping[str, Any]) -> ActionResult:
        command = decode_command(ADJUST_THRESHOLD, arguments)
        with self._lock:
            # load must happen under the lock so old_value is the committed value
            old_value = self.store.load()
            self.store.save(command.value)
            self.stats.applied += 1
        logger.info("Threshold updated from %.1f to %.1f", old_value, command.value)
        return ActionResult(old_value=old_value, new_value=command.value)

    def run(self, arguments: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            result = self.adjust_threshold(arguments)
        except ArgumentError as exc:
            self.stats.rejected += 1
            logger.info("Rejected %s(%s): %s", self.name, _attempted(arguments), exc)
            return exc.to_dict()
        except PersistenceError as exc:
            self.stats.failed += 1
            logger.error("Failed to persist %s(%s): %s", self.name, _attempted(arguments), exc)
            return exc.to_dict()
        return result.to_dict()


def _attempted(arguments: Any) -> Any:
    if isinstance(arguments, Mapping):
        return arguments.get("value")
    return arguments

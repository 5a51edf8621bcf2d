from __future__ import annotations

import math
import os
import sys
from pathlib import Path
from typing import Any, Optional

from .errors import PersistenceError
from .types import DEFAULT_THRESHOLD, THRESHOLD_KEY, THRESHOLD_MAX, THRESHOLD_MIN
from .utils import atomic_write_json, read_json, setup_logger


STATE_FILENAME = "config.json"
STATE_FILE_ENV = "AUTOCONF_STATE_FILE"

logger = setup_logger("autoconf.store")


def default_state_path(filename: str = STATE_FILENAME) -> Path:
    """Resolve the state file next to the running program, else under the cwd."""
    override = os.getenv(STATE_FILE_ENV)
    if override:
        return Path(override)
    program = sys.argv[0] if sys.argv else ""
    base: Optional[Path] = None
    if program:
        try:
            candidate = Path(program).resolve()
        except OSError:
            candidate = None
        if candidate is not None and candidate.is_file():
            base = candidate.parent
    if base is None:
        base = Path.cwd()
    return base / filename


class ThresholdStore:
    """Persisted CPU alert threshold, one JSON object in one file."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_state_path()

    def load(self) -> float:
        if not self.path.exists():
            try:
                self.save(DEFAULT_THRESHOLD)
            except PersistenceError as exc:
                logger.warning("Failed to create default state file %s: %s", self.path, exc)
                return DEFAULT_THRESHOLD
            logger.info("Created default state file at %s", self.path)
            return DEFAULT_THRESHOLD

        try:
            payload = read_json(self.path)
        except OSError as exc:
            logger.warning("Failed to read state file %s, using default %.1f: %s", self.path, DEFAULT_THRESHOLD, exc)
            return DEFAULT_THRESHOLD
        except ValueError as exc:
            logger.warning("Failed to parse state file %s, using default %.1f: %s", self.path, DEFAULT_THRESHOLD, exc)
            return DEFAULT_THRESHOLD

        value = _extract_threshold(payload)
        if value is None:
            logger.warning(
                "State file %s has no valid %s, using default %.1f",
                self.path,
                THRESHOLD_KEY,
                DEFAULT_THRESHOLD,
            )
            return DEFAULT_THRESHOLD
        return value

    def save(self, value: float) -> None:
        try:
            atomic_write_json(self.path, {THRESHOLD_KEY: float(value)})
        except OSError as exc:
            raise PersistenceError(f"failed to save threshold to {self.path}: {exc}") from exc


def _extract_threshold(payload: Any) -> Optional[float]:
    if not isinstance(payload, dict):
        return None
    raw = payload.get(THRESHOLD_KEY)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    value = float(raw)
    if not math.isfinite(value) or value < THRESHOLD_MIN or value > THRESHOLD_MAX:
        return None
    return value

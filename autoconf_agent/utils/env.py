from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional, Tuple


def load_env_file(path: str, override: bool = False) -> Dict[str, str]:
    """Apply ``KEY=VALUE`` lines from ``path`` to ``os.environ``.

    A missing file is not an error. Variables already set in the environment
    win unless ``override`` is true. Returns the variables that were applied.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return {}
    applied: Dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        entry = _parse_line(line)
        if entry is None:
            continue
        key, value = entry
        if not override and key in os.environ:
            continue
        os.environ[key] = value
        applied[key] = value
    return applied


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    raw = line.strip()
    if not raw or raw.startswith("#"):
        return None
    if raw.startswith("export "):
        raw = raw[len("export ") :].lstrip()
    key, sep, value = raw.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return key, value[1:-1]
    # unquoted values may carry a trailing comment
    value, _, _ = value.partition(" #")
    return key, value.rstrip()

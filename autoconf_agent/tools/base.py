from __future__ import annotations

from typing import Any, Dict, Mapping

from ..types import ActionSpec


class Tool:
    name = "tool"
    spec: ActionSpec

    def run(self, arguments: Mapping[str, Any]) -> Dict[str, Any]:
        """Execute one invocation and return the wire payload (success or error)."""
        raise NotImplementedError

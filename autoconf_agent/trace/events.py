from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional


SCHEMA_VERSION = "1.0"


@dataclass
class TraceEvent:
    event_id: str
    ts: float
    run_id: str
    tick: Optional[int]
    actor: str
    type: str
    payload: Dict[str, Any]
    status: str = "ok"
    duration_ms: Optional[float] = None
    error: Optional[str] = None
    schema_version: str = SCHEMA_VERSION

    @classmethod
    def now(
        cls,
        *,
        run_id: str,
        tick: Optional[int],
        actor: str,
        type: str,
        payload: Dict[str, Any],
        status: str = "ok",
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> "TraceEvent":
        return cls(
            event_id=str(uuid.uuid4()),
            ts=time.time(),
            run_id=run_id,
            tick=tick,
            actor=actor,
            type=type,
            payload=payload,
            status=status,
            duration_ms=duration_ms,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "schema_version": self.schema_version,
            "event_id": self.event_id,
            "ts": self.ts,
            "run_id": self.run_id,
            "tick": self.tick,
            "actor": self.actor,
            "type": self.type,
            "payload": self.payload,
            "status": self.status,
            "duration_ms": self.duration_ms,
        }
        if self.error:
            data["error"] = self.error
        return data

from __future__ import annotations

from typing import Any, Dict, Optional

from .events import TraceEvent
from .writer import TraceWriter


class TraceEmitter:
    def emit(self, event: TraceEvent) -> None:
        raise NotImplementedError

    def event(
        self,
        *,
        run_id: str,
        tick: Optional[int],
        actor: str,
        type: str,
        payload: Dict[str, Any],
        status: str = "ok",
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> None:
        self.emit(
            TraceEvent.now(
                run_id=run_id,
                tick=tick,
                actor=actor,
                type=type,
                payload=payload,
                status=status,
                duration_ms=duration_ms,
                error=error,
            )
        )


class NullTraceEmitter(TraceEmitter):
    def emit(self, event: TraceEvent) -> None:
        return


class TraceEmitterWriter(TraceEmitter):
    def __init__(self, writer: TraceWriter) -> None:
        self.writer = writer

    def emit(self, event: TraceEvent) -> None:
        self.writer.write_event(event)

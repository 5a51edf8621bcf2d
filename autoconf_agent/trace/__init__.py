from .events import SCHEMA_VERSION, TraceEvent
from .emitter import NullTraceEmitter, TraceEmitter, TraceEmitterWriter
from .writer import TraceWriter, read_events

__all__ = [
    "TraceEvent",
    "SCHEMA_VERSION",
    "TraceEmitter",
    "TraceEmitterWriter",
    "NullTraceEmitter",
    "TraceWriter",
    "read_events",
]

from .models import RenderEvent, RenderEventType, terminal_event
from .emitter import NullEventEmitter, RenderEventEmitter
from .memory_emitter import MemoryQueueEventEmitter

__all__ = [
    "RenderEvent",
    "RenderEventType",
    "RenderEventEmitter",
    "NullEventEmitter",
    "MemoryQueueEventEmitter",
    "terminal_event",
]

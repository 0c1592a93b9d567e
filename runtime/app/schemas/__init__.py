from .outcome import (
    FailureKind,
    RenderOutcome,
    RenderState,
    placeholder_message,
    state_for,
)

__all__ = [
    "FailureKind",
    "RenderOutcome",
    "RenderState",
    "placeholder_message",
    "state_for",
]

from __future__ import annotations

from typing import Protocol

from runtime.app.events.models import RenderEvent


class RenderEventEmitter(Protocol):
    """
    Interface for broadcasting render observations.

    Emission must never influence whether or how a document renders.
    """

    async def emit(self, event: RenderEvent) -> None:
        ...


class NullEventEmitter:
    """A safe no-op emitter for renders nobody is watching."""

    async def emit(self, event: RenderEvent) -> None:
        return

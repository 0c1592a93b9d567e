from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from runtime.app.schemas.outcome import RenderOutcome


# ----------------------------------------------------------------------
# Event Types (Finite and Versioned)
# ----------------------------------------------------------------------
class RenderEventType(str, Enum):
    """
    Progression events emitted during one render session.

    NOTE:
    This enum is finite and versioned.
    New entries must preserve observational semantics.
    """

    RENDER_STARTED = "render_started"
    RENDER_COMPLETED = "render_completed"
    RENDER_FAILED = "render_failed"

    TRANSPORT_READ = "transport_read"
    SIGNATURE_VERIFIED = "signature_verified"
    DOCUMENT_COMPILED = "document_compiled"
    ANOMALY_DETECTED = "anomaly_detected"
    DOCUMENT_MATERIALIZED = "document_materialized"


TERMINAL_EVENT_TYPES = frozenset(
    {RenderEventType.RENDER_COMPLETED, RenderEventType.RENDER_FAILED}
)


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class RenderEvent(BaseModel):
    """
    An immutable observation of a phase transition within a render.

    Events never carry failure detail or the failure kind; the
    user-visible state is the most specific thing an observer learns.
    Only the terminal event carries a document: the host document as the
    render left it, exactly what a non-streaming render returns.
    """

    event_id: UUID = Field(default_factory=uuid4)
    render_id: str = Field(..., description="The render session identifier")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: RenderEventType

    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    @property
    def is_terminal(self) -> bool:
        return self.event_type in TERMINAL_EVENT_TYPES

    def to_sse_payload(self) -> str:
        """Serialize as a single server-sent event frame."""
        data = json.dumps(self.model_dump(mode="json"), ensure_ascii=False)
        return f"event: {self.event_type.value}\ndata: {data}\n\n"


def terminal_event(outcome: RenderOutcome, *, document: str) -> RenderEvent:
    """
    Build the closing event of a render from its outcome.

    ``document`` is the serialized host document after rendering, either
    the materialized content or the placeholder.
    """
    event_type = (
        RenderEventType.RENDER_COMPLETED
        if outcome.rendered
        else RenderEventType.RENDER_FAILED
    )
    return RenderEvent(
        render_id=outcome.render_id,
        event_type=event_type,
        details={
            "state": outcome.state.value,
            "anomalies_count": len(outcome.anomalies),
            "document": document,
        },
    )

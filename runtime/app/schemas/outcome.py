"""
RenderOutcome schema.

The outcome of one render session: either the document rendered, or it
aborted with exactly one failure kind. Failure kinds are internal
diagnostics; the user-visible state collapses them so that an observer of
the page can not tell a tampered payload from a malformed one.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from markup import CompilerAnomaly


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------

class FailureKind(str, Enum):
    """Internal diagnostic for an aborted render."""

    MISSING_INPUT = "missing_input"
    MALFORMED_INPUT = "malformed_input"
    SIGNATURE_MISMATCH = "signature_mismatch"
    MATERIALIZATION_ERROR = "materialization_error"
    RUNTIME_ERROR = "runtime_error"


class RenderState(str, Enum):
    """
    User-visible state of the render target.

    Distinct failure kinds deliberately map onto the same abort state.
    """

    RENDERED = "rendered"
    MISSING_INPUT_ABORT = "missing_input_abort"
    INTEGRITY_ABORT = "integrity_abort"
    RUNTIME_ABORT = "runtime_abort"


_STATE_BY_KIND = {
    FailureKind.MISSING_INPUT: RenderState.MISSING_INPUT_ABORT,
    FailureKind.MALFORMED_INPUT: RenderState.INTEGRITY_ABORT,
    FailureKind.SIGNATURE_MISMATCH: RenderState.INTEGRITY_ABORT,
    FailureKind.MATERIALIZATION_ERROR: RenderState.RUNTIME_ABORT,
    FailureKind.RUNTIME_ERROR: RenderState.RUNTIME_ABORT,
}

PLACEHOLDER_MESSAGES = {
    RenderState.MISSING_INPUT_ABORT: (
        "FLO runtime: missing payload/signature/public key."
    ),
    RenderState.INTEGRITY_ABORT: (
        "FLO integrity check failed. Rendering aborted."
    ),
    RenderState.RUNTIME_ABORT: "FLO runtime error: see logs.",
}


def state_for(kind: FailureKind) -> RenderState:
    return _STATE_BY_KIND[kind]


def placeholder_message(kind: FailureKind) -> str:
    """Fixed user-visible text for a failure kind. Never includes detail."""
    return PLACEHOLDER_MESSAGES[state_for(kind)]


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------

class RenderOutcome(BaseModel):
    """
    Result of one render session.

    Invariants:
    - rendered=True  => no failure, html present
    - rendered=False => exactly one failure kind, no html
    """

    render_id: str = Field(..., min_length=1)
    rendered: bool
    failure: Optional[FailureKind] = None
    html: Optional[str] = Field(
        None,
        description="Compiled fragment attached to the render target",
    )
    anomalies: List[CompilerAnomaly] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def enforce_outcome_invariants(self) -> "RenderOutcome":
        if self.rendered:
            if self.failure is not None:
                raise ValueError("A rendered outcome can not carry a failure")
            if self.html is None:
                raise ValueError("A rendered outcome must carry its html")
        else:
            if self.failure is None:
                raise ValueError("An aborted outcome requires a failure kind")
            if self.html is not None or self.anomalies:
                raise ValueError(
                    "An aborted outcome can not carry compiled output"
                )
        return self

    @property
    def state(self) -> RenderState:
        if self.rendered:
            return RenderState.RENDERED
        return state_for(self.failure)

    @classmethod
    def success(
        cls,
        *,
        render_id: str,
        html: str,
        anomalies: Optional[List[CompilerAnomaly]] = None,
    ) -> "RenderOutcome":
        return cls(
            render_id=render_id,
            rendered=True,
            html=html,
            anomalies=list(anomalies or []),
        )

    @classmethod
    def aborted(cls, *, render_id: str, failure: FailureKind) -> "RenderOutcome":
        return cls(render_id=render_id, rendered=False, failure=failure)

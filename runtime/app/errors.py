"""
Render pipeline failure taxonomy.

Every failure carries exactly one FailureKind. The kind is an internal
diagnostic: several kinds collapse into the same user-visible abort state
(see schemas/outcome.py) so that failure modes are not leaked.
"""

from __future__ import annotations

from runtime.app.schemas.outcome import FailureKind


class RenderPipelineError(Exception):
    """Base class for all tagged render pipeline failures."""

    kind: FailureKind = FailureKind.RUNTIME_ERROR

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class MissingInputError(RenderPipelineError):
    """Source, signature or public key is absent from the transport."""

    kind = FailureKind.MISSING_INPUT


class MalformedInputError(RenderPipelineError):
    """Bad base64, bad key material, or undecodable source bytes."""

    kind = FailureKind.MALFORMED_INPUT


class SignatureMismatchError(RenderPipelineError):
    """The signature does not verify against the decoded source bytes."""

    kind = FailureKind.SIGNATURE_MISMATCH


class MaterializationError(RenderPipelineError):
    """The compiled fragment could not be attached to the render target."""

    kind = FailureKind.MATERIALIZATION_ERROR


_ERROR_BY_KIND = {
    FailureKind.MISSING_INPUT: MissingInputError,
    FailureKind.MALFORMED_INPUT: MalformedInputError,
    FailureKind.SIGNATURE_MISMATCH: SignatureMismatchError,
    FailureKind.MATERIALIZATION_ERROR: MaterializationError,
}


def error_for(kind: FailureKind, detail: str) -> RenderPipelineError:
    """Build the tagged error for a failure kind."""
    error_cls = _ERROR_BY_KIND.get(kind, RenderPipelineError)
    return error_cls(detail)

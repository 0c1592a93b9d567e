"""
Render pipeline coordinator.

IMPORTANT:
The pipeline is the single trust boundary of the consumer runtime.

Execution order (strict, no retries, no partial rendering):
    1. Read the transport triple    (MissingInput before any crypto)
    2. Decode the payload base64    (MalformedInput)
    3. Import key, verify signature (MalformedInput / SignatureMismatch)
    4. Decode UTF-8 and compile     (worker thread; anomalies are logged, never fatal)
    5. Materialize                  (MaterializationError)

Every failure is caught at exactly one place, ``run``, and replaced by
exactly one placeholder. Failure detail goes to the log only.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable, Optional

import anyio

from markup import CompiledFragment, compile_fragment

from runtime.app.config import RuntimeConfig
from runtime.app.errors import MaterializationError, RenderPipelineError, error_for
from runtime.app.events import (
    NullEventEmitter,
    RenderEvent,
    RenderEventEmitter,
    RenderEventType,
    terminal_event,
)
from runtime.app.render.materializer import (
    RenderTarget,
    materialize,
    render_placeholder,
)
from runtime.app.schemas.outcome import (
    FailureKind,
    RenderOutcome,
    placeholder_message,
    state_for,
)
from runtime.app.transport.shell_reader import (
    decode_base64,
    decode_source_text,
    read_transport_triple,
)
from runtime.app.verification.verifier import ClientVerifier

logger = logging.getLogger("runtime.pipeline")


class RenderPipeline:
    """
    Linear verify-then-render chain for one host document at a time.

    The pipeline holds no per-render state; each run gets its own
    verifier from ``verifier_factory``.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        verifier_factory: Callable[[], ClientVerifier] = ClientVerifier,
    ) -> None:
        self._config = config
        self._verifier_factory = verifier_factory

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> "RenderPipeline":
        return cls(config=config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        target: RenderTarget,
        *,
        render_id: str,
        emitter: Optional[RenderEventEmitter] = None,
    ) -> RenderOutcome:
        """
        Render one host document in place.

        Never raises for document content: every failure becomes an
        aborted RenderOutcome and a placeholder in the target.
        """
        emitter = emitter or NullEventEmitter()

        try:
            await self._emit(
                emitter,
                RenderEvent(
                    render_id=render_id,
                    event_type=RenderEventType.RENDER_STARTED,
                ),
            )
            outcome = await self._render(target, render_id, emitter)
        except RenderPipelineError as exc:
            failure = exc.kind
            logger.warning(
                "render_aborted",
                extra={
                    "render_id": render_id,
                    "failure": failure.value,
                    "detail": exc.detail,
                },
            )
        except Exception:
            failure = FailureKind.RUNTIME_ERROR
            logger.exception("render_runtime_error", extra={"render_id": render_id})
        else:
            await self._emit(
                emitter, terminal_event(outcome, document=target.to_html())
            )
            return outcome

        self._show_placeholder(target, failure, render_id)

        outcome = RenderOutcome.aborted(render_id=render_id, failure=failure)
        await self._emit(
            emitter, terminal_event(outcome, document=target.to_html())
        )
        return outcome

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _render(
        self,
        target: RenderTarget,
        render_id: str,
        emitter: RenderEventEmitter,
    ) -> RenderOutcome:
        triple = read_transport_triple(target.document, self._config)
        await self._emit(
            emitter,
            RenderEvent(
                render_id=render_id,
                event_type=RenderEventType.TRANSPORT_READ,
            ),
        )

        source_bytes = decode_base64(triple.payload_b64, what="Payload")

        verifier = self._verifier_factory()
        await verifier.import_public_key(triple.public_pem)
        check = await verifier.check(source_bytes, triple.signature_b64)
        if not check.accepted:
            raise error_for(check.failure, check.detail or "verification rejected")

        await self._emit(
            emitter,
            RenderEvent(
                render_id=render_id,
                event_type=RenderEventType.SIGNATURE_VERIFIED,
            ),
        )

        source = decode_source_text(source_bytes)
        fragment = await anyio.to_thread.run_sync(
            functools.partial(compile_fragment, source, self._config.BINDINGS)
        )
        await self._report_compilation(fragment, render_id, emitter)

        note_text = (
            self._config.VERIFIED_NOTE_TEXT
            if self._config.SHOW_VERIFIED_NOTE
            else None
        )
        materialize(target, fragment.html, note_text=note_text)

        await self._emit(
            emitter,
            RenderEvent(
                render_id=render_id,
                event_type=RenderEventType.DOCUMENT_MATERIALIZED,
            ),
        )

        return RenderOutcome.success(
            render_id=render_id,
            html=fragment.html,
            anomalies=fragment.anomalies,
        )

    # ------------------------------------------------------------------
    # Structural helpers
    # ------------------------------------------------------------------

    async def _report_compilation(
        self,
        fragment: CompiledFragment,
        render_id: str,
        emitter: RenderEventEmitter,
    ) -> None:
        for anomaly in fragment.anomalies:
            logger.info(
                "compiler_anomaly",
                extra={
                    "render_id": render_id,
                    "anomaly": anomaly.kind.value,
                    "tag": anomaly.tag,
                    "offset": anomaly.offset,
                },
            )
            await self._emit(
                emitter,
                RenderEvent(
                    render_id=render_id,
                    event_type=RenderEventType.ANOMALY_DETECTED,
                    details={
                        "anomaly": anomaly.kind.value,
                        "tag": anomaly.tag,
                        "offset": anomaly.offset,
                    },
                ),
            )

        await self._emit(
            emitter,
            RenderEvent(
                render_id=render_id,
                event_type=RenderEventType.DOCUMENT_COMPILED,
                details={"anomalies_count": len(fragment.anomalies)},
            ),
        )

    @staticmethod
    def _show_placeholder(
        target: RenderTarget, failure: FailureKind, render_id: str
    ) -> None:
        try:
            render_placeholder(target, placeholder_message(failure))
        except MaterializationError as exc:
            logger.error(
                "placeholder_unavailable",
                extra={
                    "render_id": render_id,
                    "state": state_for(failure).value,
                    "detail": exc.detail,
                },
            )

    @staticmethod
    async def _emit(emitter: RenderEventEmitter, event: RenderEvent) -> None:
        # Emission failures never change the outcome of a render
        try:
            await emitter.emit(event)
        except Exception:
            logger.warning(
                "render_event_emit_failed",
                extra={
                    "render_id": event.render_id,
                    "event_type": event.event_type.value,
                },
                exc_info=True,
            )

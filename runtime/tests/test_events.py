import json

import pytest

from runtime.app.events import (
    MemoryQueueEventEmitter,
    NullEventEmitter,
    RenderEvent,
    RenderEventType,
    terminal_event,
)
from runtime.app.schemas.outcome import FailureKind, RenderOutcome

pytestmark = pytest.mark.anyio


def test_sse_payload_frame():
    event = RenderEvent(
        render_id="r-1",
        event_type=RenderEventType.RENDER_FAILED,
        details={"state": "integrity_abort"},
    )

    frame = event.to_sse_payload()

    assert frame.startswith("event: render_failed\ndata: ")
    assert frame.endswith("\n\n")
    data = json.loads(frame.split("data: ", 1)[1])
    assert data["render_id"] == "r-1"
    assert data["details"] == {"state": "integrity_abort"}


async def test_memory_emitter_closes_on_terminal_event():
    emitter = MemoryQueueEventEmitter()

    await emitter.emit(RenderEvent(render_id="r", event_type=RenderEventType.RENDER_STARTED))
    await emitter.emit(RenderEvent(render_id="r", event_type=RenderEventType.RENDER_COMPLETED))
    await emitter.emit(RenderEvent(render_id="r", event_type=RenderEventType.TRANSPORT_READ))

    events = [event async for event in emitter.stream()]

    assert emitter.closed
    assert [event.event_type for event in events] == [
        RenderEventType.RENDER_STARTED,
        RenderEventType.RENDER_COMPLETED,
    ]


async def test_null_emitter_accepts_events():
    event = RenderEvent(render_id="r", event_type=RenderEventType.RENDER_STARTED)

    assert await NullEventEmitter().emit(event) is None


async def test_memory_emitter_keeps_the_terminal_document():
    emitter = MemoryQueueEventEmitter()
    outcome = RenderOutcome.aborted(
        render_id="r", failure=FailureKind.SIGNATURE_MISMATCH
    )

    assert emitter.document is None
    await emitter.emit(terminal_event(outcome, document="<html>placeholder</html>"))

    assert emitter.closed
    assert emitter.state == "integrity_abort"
    assert emitter.document == "<html>placeholder</html>"
    assert emitter.terminal_event.event_type == RenderEventType.RENDER_FAILED


def test_terminal_event_hides_the_failure_kind():
    outcome = RenderOutcome.aborted(render_id="r", failure=FailureKind.MALFORMED_INPUT)

    event = terminal_event(outcome, document="<html></html>")

    assert event.details["state"] == "integrity_abort"
    assert "malformed" not in event.to_sse_payload()


def test_terminal_event_for_successful_render():
    outcome = RenderOutcome.success(render_id="r", html="<main></main>")

    event = terminal_event(outcome, document="<html><main></main></html>")

    assert event.event_type == RenderEventType.RENDER_COMPLETED
    assert event.is_terminal
    assert event.details == {
        "state": "rendered",
        "anomalies_count": 0,
        "document": "<html><main></main></html>",
    }

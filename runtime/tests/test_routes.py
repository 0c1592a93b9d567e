import json

from bs4 import BeautifulSoup

from engine.app.services.shell import encode_source
from runtime.tests.fixtures.payload_factory import (
    host_document,
    signed_host_document,
    signed_payload,
)

HTML_HEADERS = {"Content-Type": "text/html; charset=utf-8"}


def _post(client, path: str, html: str):
    return client.post(path, content=html.encode("utf-8"), headers=HTML_HEADERS)


def test_render_returns_materialized_document(runtime_client):
    response = _post(runtime_client, "/render", signed_host_document())

    assert response.status_code == 200
    assert response.headers["x-flo-render-status"] == "rendered"
    assert response.headers["content-type"].startswith("text/html")

    body = BeautifulSoup(response.text, "html.parser").body
    assert body.select_one("header.flo-header").string == "Hi Scholar"
    assert body.select_one("div.flo-note") is not None


def test_render_reports_integrity_abort(runtime_client):
    payload = signed_payload()
    html = host_document(
        payload_b64=encode_source("<flo:main>forged</flo:main>"),
        signature_b64=payload.signature_b64,
        public_pem=payload.public_pem,
    )

    response = _post(runtime_client, "/render", html)

    assert response.status_code == 200
    assert response.headers["x-flo-render-status"] == "integrity_abort"
    assert "FLO integrity check failed. Rendering aborted." in response.text
    assert "forged" not in response.text


def test_render_reports_missing_input(runtime_client):
    response = _post(runtime_client, "/render", host_document())

    assert response.headers["x-flo-render-status"] == "missing_input_abort"
    assert "FLO runtime: missing payload/signature/public key." in response.text


def test_render_rejects_empty_body(runtime_client):
    response = _post(runtime_client, "/render", "")

    assert response.status_code == 400


def test_render_rejects_oversized_document(runtime_client, runtime_config):
    padding = "x" * (runtime_config.MAX_HOST_DOCUMENT_KB * 1024)
    html = host_document(body_content=f"<p>{padding}</p>")

    response = _post(runtime_client, "/render", html)

    assert response.status_code == 413


def test_render_rejects_non_utf8_body(runtime_client):
    response = runtime_client.post(
        "/render", content=b"\xff\xfe<html>", headers=HTML_HEADERS
    )

    assert response.status_code == 400


def test_render_stream_emits_sse_events(runtime_client):
    response = _post(runtime_client, "/render/stream", signed_host_document())

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert "event: render_started" in response.text
    assert "event: signature_verified" in response.text
    lines = response.text.rstrip().split("\n")
    assert lines[-2] == "event: render_completed"

    final = json.loads(lines[-1][len("data: "):])
    document = BeautifulSoup(final["details"]["document"], "html.parser")
    assert final["details"]["state"] == "rendered"
    assert document.body.select_one("header.flo-header").string == "Hi Scholar"
    assert document.find(id="flo-payload") is None


def test_render_stream_delivers_placeholder_document(runtime_client):
    response = _post(runtime_client, "/render/stream", host_document())

    lines = response.text.rstrip().split("\n")
    assert lines[-2] == "event: render_failed"

    final = json.loads(lines[-1][len("data: "):])
    assert final["details"]["state"] == "missing_input_abort"
    assert (
        "FLO runtime: missing payload/signature/public key."
        in final["details"]["document"]
    )


def test_health(runtime_client):
    response = runtime_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == "runtime"

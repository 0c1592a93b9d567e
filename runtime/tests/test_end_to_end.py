"""
Engine shell in, rendered document out.
"""

from pathlib import Path

import pytest
from bs4 import BeautifulSoup
from fastapi.testclient import TestClient

from engine.app.core.config import EngineSettings
from engine.app.main import create_app as create_engine_app
from engine.app.services.shell import encode_source
from engine.tests.fixtures.keys import rsa_pem_pair
from runtime.tests.fixtures.payload_factory import SAMPLE_SOURCE, key_material_for

HTML_HEADERS = {"Content-Type": "text/html; charset=utf-8"}


@pytest.fixture
def engine_client(tmp_path: Path):
    docs = tmp_path / "documents"
    docs.mkdir()
    (docs / "home.flo").write_text(SAMPLE_SOURCE, encoding="utf-8")

    private_pem, public_pem = rsa_pem_pair()
    (tmp_path / "private.pem").write_text(private_pem, encoding="utf-8")
    (tmp_path / "public.pem").write_text(public_pem, encoding="utf-8")

    settings = EngineSettings(
        _env_file=None,
        private_key_path=tmp_path / "private.pem",
        public_key_path=tmp_path / "public.pem",
        documents_dir=docs,
    )
    app = create_engine_app(settings=settings, key_material=key_material_for())
    with TestClient(app) as client:
        yield client


def test_engine_shell_renders_in_runtime(engine_client, runtime_client):
    shell = engine_client.get("/").text

    response = runtime_client.post(
        "/render", content=shell.encode("utf-8"), headers=HTML_HEADERS
    )

    assert response.headers["x-flo-render-status"] == "rendered"
    soup = BeautifulSoup(response.text, "html.parser")
    assert soup.body.select_one("div.flo-page")["data-title"] == "Home"
    assert soup.find(id="flo-payload") is None


def test_shell_edited_in_transit_is_rejected(engine_client, runtime_client):
    shell = engine_client.get("/").text
    soup = BeautifulSoup(shell, "html.parser")
    soup.find(id="flo-payload").string = encode_source(
        SAMPLE_SOURCE.replace("Home", "Away")
    )

    response = runtime_client.post(
        "/render", content=str(soup).encode("utf-8"), headers=HTML_HEADERS
    )

    assert response.headers["x-flo-render-status"] == "integrity_abort"

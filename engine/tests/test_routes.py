import base64

import pytest
from bs4 import BeautifulSoup
from fastapi.testclient import TestClient

from engine.app.main import create_app
from engine.tests.conftest import HOME_SOURCE


def _payload(response) -> str:
    soup = BeautifulSoup(response.text, "html.parser")
    return soup.find(id="flo-payload").string


def test_root_serves_signed_master_shell(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert response.headers["x-source-hash"].startswith("SHA-256:")
    assert base64.b64decode(_payload(response)).decode("utf-8") == HOME_SOURCE


def test_flocode_serves_named_document(client):
    response = client.get("/flocode/about.flo")

    assert response.status_code == 200
    assert b"flo:link" in base64.b64decode(_payload(response))


def test_flocode_rejects_non_flo_names(client):
    response = client.get("/flocode/secret.pem")

    assert response.status_code == 404
    assert response.text == "Not a FLO file"


def test_flocode_unknown_document_is_404(client):
    assert client.get("/flocode/missing.flo").status_code == 404


def test_flocode_rejects_traversal(client):
    assert client.get("/flocode/..%2Fprivate.flo").status_code == 404


def test_ssr_uses_ssr_bindings(client):
    response = client.get("/ssr")

    assert response.status_code == 200
    assert (
        '<div class="flo-page" data-title="Home">'
        '<header class="flo-header">Hi Scholar (SSR)</header></div>'
    ) in response.text


def test_documents_listing(client):
    response = client.get("/documents")

    assert response.json() == {
        "master": "home.flo",
        "documents": ["about.flo", "home.flo"],
    }


def test_healthz(client):
    assert client.get("/healthz").json()["status"] == "ok"


def test_startup_fails_without_master_document(settings, key_material, documents_dir):
    (documents_dir / "home.flo").unlink()
    app = create_app(settings=settings, key_material=key_material)

    with pytest.raises(RuntimeError):
        with TestClient(app):
            pass


def test_startup_loads_keys_from_settings(settings):
    app = create_app(settings=settings)

    with TestClient(app) as test_client:
        assert test_client.get("/").status_code == 200

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from engine.app.core.config import EngineSettings
from engine.app.core.keys import KeyMaterial, build_key_material
from engine.app.main import create_app
from engine.tests.fixtures.keys import rsa_pem_pair

HOME_SOURCE = (
    '<flo:page title="Home"><flo:header>Hi {{user}}</flo:header></flo:page>\n'
)


@pytest.fixture
def key_material() -> KeyMaterial:
    private_pem, public_pem = rsa_pem_pair()
    return build_key_material(private_pem=private_pem, public_pem=public_pem)


@pytest.fixture
def documents_dir(tmp_path: Path) -> Path:
    docs = tmp_path / "documents"
    docs.mkdir()
    (docs / "home.flo").write_text(HOME_SOURCE, encoding="utf-8")
    (docs / "about.flo").write_text(
        '<flo:main><flo:link href="/">Back</flo:link></flo:main>',
        encoding="utf-8",
    )
    return docs


@pytest.fixture
def settings(tmp_path: Path, documents_dir: Path) -> EngineSettings:
    private_pem, public_pem = rsa_pem_pair()
    private_path = tmp_path / "private.pem"
    public_path = tmp_path / "public.pem"
    private_path.write_text(private_pem, encoding="utf-8")
    public_path.write_text(public_pem, encoding="utf-8")

    return EngineSettings(
        _env_file=None,
        private_key_path=private_path,
        public_key_path=public_path,
        documents_dir=documents_dir,
    )


@pytest.fixture
def client(settings: EngineSettings, key_material: KeyMaterial):
    app = create_app(settings=settings, key_material=key_material)
    with TestClient(app) as test_client:
        yield test_client

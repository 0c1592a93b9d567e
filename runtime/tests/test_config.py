import pytest
from pydantic import ValidationError

from runtime.app.config import RuntimeConfig


def test_defaults():
    config = RuntimeConfig()

    assert config.BINDINGS == {"user": "Scholar"}
    assert config.SHOW_VERIFIED_NOTE is True
    assert config.VERIFIED_NOTE_TEXT == "FLO verified ✔"
    assert (
        config.PAYLOAD_ELEMENT_ID,
        config.SIGNATURE_ELEMENT_ID,
        config.PUBLIC_KEY_ELEMENT_ID,
    ) == ("flo-payload", "flo-signature", "flo-public-pem")


def test_config_is_frozen():
    config = RuntimeConfig()

    with pytest.raises(ValidationError):
        config.SHOW_VERIFIED_NOTE = False


def test_non_string_binding_is_rejected():
    with pytest.raises(ValidationError):
        RuntimeConfig(BINDINGS={"user": 42})


def test_duplicate_element_ids_are_rejected():
    with pytest.raises(ValidationError):
        RuntimeConfig(SIGNATURE_ELEMENT_ID="flo-payload")


def test_from_env(monkeypatch):
    monkeypatch.setenv("FLO_RUNTIME_BINDINGS", '{"user": "Env"}')
    monkeypatch.setenv("FLO_RUNTIME_SHOW_VERIFIED_NOTE", "off")
    monkeypatch.setenv("FLO_RUNTIME_PAYLOAD_ELEMENT_ID", "payload")
    monkeypatch.setenv("FLO_RUNTIME_MAX_HOST_DOCUMENT_KB", "64")

    config = RuntimeConfig.from_env()

    assert config.BINDINGS == {"user": "Env"}
    assert config.SHOW_VERIFIED_NOTE is False
    assert config.PAYLOAD_ELEMENT_ID == "payload"
    assert config.MAX_HOST_DOCUMENT_KB == 64


def test_from_env_rejects_invalid_bindings_json(monkeypatch):
    monkeypatch.setenv("FLO_RUNTIME_BINDINGS", "{user: nope}")

    with pytest.raises(ValueError):
        RuntimeConfig.from_env()


def test_from_env_rejects_non_object_bindings(monkeypatch):
    monkeypatch.setenv("FLO_RUNTIME_BINDINGS", '["user"]')

    with pytest.raises(ValidationError):
        RuntimeConfig.from_env()

"""
Process-scope key material.

The key pair is read from key provisioning once at process start and
wrapped in an immutable value that is passed explicitly to the signer and
the shell packager. Nothing in the engine re-reads key files afterwards.

The private key never leaves this process. The public key travels inside
every shell next to the payload it authenticates; see DESIGN.md for the
channel-trust caveat this implies.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, SecretStr

from engine.app.core.config import EngineSettings

logger = logging.getLogger("engine.keys")

MIN_RSA_KEY_BITS = 2048


class KeyMaterialError(RuntimeError):
    """Raised when key provisioning supplies unusable key material."""


class KeyMaterial(BaseModel):
    """
    Immutable signing configuration.

    private_pem:
        PEM-encoded RSA private key. Redacted from repr and logs.
    public_pem:
        PEM-encoded SPKI public key, embedded verbatim in shells.

    The private key is parsed once on construction; ``private_key``
    returns that parsed key for every signature.
    """

    private_pem: SecretStr
    public_pem: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True, extra="forbid")

    _private_key: rsa.RSAPrivateKey = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        self._private_key = _load_private_key(self.private_key_bytes(), None)

    @property
    def private_key(self) -> rsa.RSAPrivateKey:
        return self._private_key

    def private_key_bytes(self) -> bytes:
        return self.private_pem.get_secret_value().encode("utf-8")


def _load_private_key(
    pem: bytes, passphrase: Optional[bytes]
) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(pem, password=passphrase)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyMaterialError(f"Private key could not be loaded: {exc}") from exc

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyMaterialError("Private key must be an RSA key")

    if key.key_size < MIN_RSA_KEY_BITS:
        raise KeyMaterialError(
            f"Signing key size below {MIN_RSA_KEY_BITS} bits is not allowed"
        )
    return key


def _load_public_key(pem: bytes) -> rsa.RSAPublicKey:
    try:
        key = serialization.load_pem_public_key(pem)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise KeyMaterialError(f"Public key could not be loaded: {exc}") from exc

    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyMaterialError("Public key must be an RSA key")
    return key


def build_key_material(
    *,
    private_pem: str,
    public_pem: str,
    passphrase: Optional[str] = None,
) -> KeyMaterial:
    """
    Validate a PEM key pair and wrap it as KeyMaterial.

    The public key must belong to the private key. A mismatched pair would
    publish shells that no consumer can ever verify.

    Encrypted private keys are decrypted here and stored unencrypted in
    memory so that signing needs no passphrase.
    """
    private_key = _load_private_key(
        private_pem.encode("utf-8"),
        passphrase.encode("utf-8") if passphrase else None,
    )
    public_key = _load_public_key(public_pem.encode("utf-8"))

    if private_key.public_key().public_numbers() != public_key.public_numbers():
        raise KeyMaterialError("Public key does not match the private key")

    unencrypted_private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")

    spki_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")

    return KeyMaterial(
        private_pem=SecretStr(unencrypted_private_pem),
        public_pem=spki_pem.strip(),
    )


def _read_pem(path: Path, label: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise KeyMaterialError(
            f"Failed to read {label} key from {path}: {exc}"
        ) from exc


def load_key_material(settings: EngineSettings) -> KeyMaterial:
    """
    Load and validate the configured key pair. Called once at startup.
    """
    passphrase = (
        settings.private_key_passphrase.get_secret_value()
        if settings.private_key_passphrase is not None
        else None
    )

    material = build_key_material(
        private_pem=_read_pem(settings.private_key_path, "private"),
        public_pem=_read_pem(settings.public_key_path, "public"),
        passphrase=passphrase,
    )

    logger.info(
        "key_material_loaded",
        extra={
            "private_key_path": str(settings.private_key_path),
            "public_key_path": str(settings.public_key_path),
        },
    )
    return material

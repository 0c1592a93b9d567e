"""
Detached signing of FLO Document Source.

The signature covers the raw UTF-8 bytes of the source exactly as it will
be transported. It is never computed over a compiled or normalized form:
bindings, whitespace and tag rewriting all happen after verification on
the consumer side.

Scheme: RSASSA-PKCS1-v1_5 over SHA-256, base64-encoded for transport.

Signing is synchronous, stateless and side-effect free. Concurrent calls
share no mutable state.
"""

import base64
import logging
from typing import Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from engine.app.utils.hashing import compute_source_hash

logger = logging.getLogger("engine.signing")


class SigningError(RuntimeError):
    """Raised when a document can not be signed."""


class MalformedInputError(SigningError):
    """Raised for empty source or unusable private key material."""


def load_private_key(private_key_pem: Union[str, bytes]) -> rsa.RSAPrivateKey:
    """
    Parse an unencrypted PEM private key and require RSA.
    """
    if isinstance(private_key_pem, str):
        private_key_pem = private_key_pem.encode("utf-8")

    if not private_key_pem.strip():
        raise MalformedInputError("Private key is empty")

    try:
        key = serialization.load_pem_private_key(private_key_pem, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise MalformedInputError(
            f"Private key could not be loaded: {exc}"
        ) from exc

    if not isinstance(key, rsa.RSAPrivateKey):
        raise MalformedInputError(
            f"Expected an RSA private key, got {type(key).__name__}"
        )
    return key


def sign_bytes(*, data: bytes, private_key: rsa.RSAPrivateKey) -> bytes:
    """Raw RSASSA-PKCS1-v1_5 / SHA-256 signature over ``data``."""
    return private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())


def _require_source(source: str) -> None:
    if not isinstance(source, str):
        raise MalformedInputError(
            f"Document Source must be text, got {type(source).__name__}"
        )
    if not source:
        raise MalformedInputError("Refusing to sign an empty Document Source")


def sign_source(*, source: str, private_key: rsa.RSAPrivateKey) -> str:
    """
    Compute the base64 detached signature with an already parsed key.

    Raises:
        MalformedInputError:
            If the source is empty or not text.
    """
    _require_source(source)
    source_bytes = source.encode("utf-8")

    signature = sign_bytes(data=source_bytes, private_key=private_key)

    logger.debug(
        "document_signed",
        extra={
            "source_hash": compute_source_hash(source_bytes),
            "source_bytes": len(source_bytes),
            "key_bits": private_key.key_size,
        },
    )

    return base64.b64encode(signature).decode("ascii")


def sign_document(
    *,
    source: str,
    private_key_pem: Union[str, bytes],
) -> str:
    """
    Compute the base64 detached signature for a Document Source.

    Raises:
        MalformedInputError:
            If the source is empty or the key can not be used.
    """
    _require_source(source)
    return sign_source(source=source, private_key=load_private_key(private_key_pem))

"""
Client-side signature verification.

The verifier is the trust gate of the consumer runtime: no byte of the
payload is interpreted before ``check`` has accepted the signature over
exactly those bytes.

Scheme: RSASSA-PKCS1-v1_5 over SHA-256, public key as SPKI.

Cryptographic work runs in a worker thread through anyio; key import and
signature verification are the only suspension points of a render.
"""

from __future__ import annotations

import functools
import logging
from typing import Optional

import anyio
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pydantic import BaseModel, ConfigDict, model_validator

from runtime.app.errors import MalformedInputError, MissingInputError
from runtime.app.schemas.outcome import FailureKind
from runtime.app.transport.shell_reader import decode_base64, pem_to_spki_der

logger = logging.getLogger("runtime.verifier")


class VerificationCheck(BaseModel):
    """
    Internal verification diagnostic.

    ``accepted`` is the only field callers may branch trust on. ``failure``
    and ``detail`` are for logs.
    """

    accepted: bool
    failure: Optional[FailureKind] = None
    detail: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def enforce_check_invariants(self) -> "VerificationCheck":
        if self.accepted and self.failure is not None:
            raise ValueError("An accepted check can not carry a failure")
        if not self.accepted and self.failure is None:
            raise ValueError("A rejected check requires a failure kind")
        return self

    @classmethod
    def rejected(cls, failure: FailureKind, detail: str) -> "VerificationCheck":
        return cls(accepted=False, failure=failure, detail=detail)


def _load_spki(der: bytes) -> rsa.RSAPublicKey:
    try:
        key = serialization.load_der_public_key(der)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise MalformedInputError(
            f"Public key could not be imported: {exc}"
        ) from exc

    if not isinstance(key, rsa.RSAPublicKey):
        raise MalformedInputError(
            f"Expected an RSA public key, got {type(key).__name__}"
        )
    return key


def _verify_pkcs1v15(
    public_key: rsa.RSAPublicKey, signature: bytes, data: bytes
) -> bool:
    try:
        public_key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature:
        return False
    return True


class ClientVerifier:
    """
    Verifies a detached signature against decoded payload bytes.

    One instance per render session. The public key is imported once; a
    session can never switch keys halfway through.
    """

    def __init__(self) -> None:
        self._public_key: Optional[rsa.RSAPublicKey] = None
        self._imported_pem: Optional[str] = None

    @property
    def public_key(self) -> Optional[rsa.RSAPublicKey]:
        return self._public_key

    async def import_public_key(self, public_pem: str) -> rsa.RSAPublicKey:
        """
        Import the SPKI public key from PEM text.

        Raises:
            MissingInputError: If the PEM text is empty.
            MalformedInputError: If the key can not be decoded or is not RSA.
            RuntimeError: If a different key was already imported.
        """
        if self._public_key is not None:
            if public_pem != self._imported_pem:
                raise RuntimeError(
                    "A public key was already imported for this session"
                )
            return self._public_key

        if not public_pem or not public_pem.strip():
            raise MissingInputError("Public key is empty")

        der = pem_to_spki_der(public_pem)
        key = await anyio.to_thread.run_sync(functools.partial(_load_spki, der))

        self._public_key = key
        self._imported_pem = public_pem
        logger.debug("public_key_imported", extra={"key_bits": key.key_size})
        return key

    async def check(
        self, source_bytes: bytes, signature_b64: str
    ) -> VerificationCheck:
        """
        Verify ``signature_b64`` over ``source_bytes``.

        Decoding problems are reported in the returned check, never raised.
        """
        if self._public_key is None:
            raise RuntimeError("import_public_key must be awaited first")

        if not source_bytes:
            return VerificationCheck.rejected(
                FailureKind.MISSING_INPUT, "Payload bytes are empty"
            )
        if not signature_b64 or not signature_b64.strip():
            return VerificationCheck.rejected(
                FailureKind.MISSING_INPUT, "Signature is empty"
            )

        try:
            signature = decode_base64(signature_b64, what="Signature")
        except MalformedInputError as exc:
            return VerificationCheck.rejected(
                FailureKind.MALFORMED_INPUT, exc.detail
            )

        valid = await anyio.to_thread.run_sync(
            functools.partial(
                _verify_pkcs1v15, self._public_key, signature, source_bytes
            )
        )
        if not valid:
            return VerificationCheck.rejected(
                FailureKind.SIGNATURE_MISMATCH,
                "Signature does not match payload bytes",
            )

        return VerificationCheck(accepted=True)

    async def verify(self, source_bytes: bytes, signature_b64: str) -> bool:
        """Return True only if the signature is valid for ``source_bytes``."""
        result = await self.check(source_bytes, signature_b64)
        return result.accepted

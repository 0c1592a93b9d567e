"""
Transport reader.

Reads the transport triple out of a host document and decodes its parts.
Nothing read here is trusted until the Client Verifier has accepted the
signature over the decoded payload bytes.

Decoding is strict: whitespace is dropped (as browsers do for ``atob``),
then anything outside the base64 alphabet or with bad padding is
malformed input, never silently repaired.
"""

from __future__ import annotations

import base64
import binascii
import re

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, ConfigDict

from runtime.app.config import RuntimeConfig
from runtime.app.errors import MalformedInputError, MissingInputError


PEM_ARMOUR_PATTERN = re.compile(r"-----(?:BEGIN|END) PUBLIC KEY-----")
WHITESPACE_PATTERN = re.compile(r"\s+")


class TransportTriple(BaseModel):
    """Trimmed text of the three transport elements."""

    payload_b64: str
    signature_b64: str
    public_pem: str

    model_config = ConfigDict(frozen=True, extra="forbid")


def _element_text(element: Tag) -> str:
    if element.string is not None:
        return str(element.string)
    return element.get_text()


def read_transport_triple(
    document: BeautifulSoup, config: RuntimeConfig
) -> TransportTriple:
    """
    Locate the transport elements by id and return their trimmed text.

    Raises:
        MissingInputError:
            If any element is absent or empty after trimming.
    """
    element_ids = {
        "payload_b64": config.PAYLOAD_ELEMENT_ID,
        "signature_b64": config.SIGNATURE_ELEMENT_ID,
        "public_pem": config.PUBLIC_KEY_ELEMENT_ID,
    }

    values = {}
    missing = []
    for field_name, element_id in element_ids.items():
        element = document.find(id=element_id)
        text = _element_text(element).strip() if element is not None else ""
        if not text:
            missing.append(element_id)
        values[field_name] = text

    if missing:
        raise MissingInputError(
            "Transport element(s) absent or empty: " + ", ".join(missing)
        )

    return TransportTriple(**values)


def decode_base64(value: str, *, what: str) -> bytes:
    """
    Strictly decode a base64 string.

    Raises:
        MalformedInputError:
            On characters outside the alphabet, bad padding, or
            an empty result.
    """
    compact = WHITESPACE_PATTERN.sub("", value)
    try:
        decoded = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedInputError(f"{what} is not valid base64: {exc}") from exc

    if not decoded:
        raise MalformedInputError(f"{what} decodes to zero bytes")
    return decoded


def pem_to_spki_der(public_pem: str) -> bytes:
    """
    Strip the PEM armour and whitespace and decode the SPKI DER body.
    """
    body = PEM_ARMOUR_PATTERN.sub("", public_pem)
    return decode_base64(body, what="Public key")


def decode_source_text(source_bytes: bytes) -> str:
    """Decode verified payload bytes as UTF-8."""
    try:
        return source_bytes.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedInputError(
            f"Payload is not valid UTF-8: {exc}"
        ) from exc

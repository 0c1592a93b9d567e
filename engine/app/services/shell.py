"""
Shell packaging.

Bundles a Document Source, its detached signature and the public key into
a host HTML document for transport. The shell carries three inert
``<script>`` data elements that the consumer runtime reads before anything
else happens:

    flo-payload      base64 of the UTF-8 Document Source
    flo-signature    base64 RSASSA-PKCS1-v1_5 / SHA-256 signature
    flo-public-pem   SPKI public key in PEM armour

The shell itself is NOT covered by the signature. Only the decoded payload
bytes are authenticated.
"""

import base64
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from pydantic import BaseModel, ConfigDict

from engine.app.core.config import EngineSettings
from engine.app.core.keys import KeyMaterial
from engine.app.services.signing import sign_source
from engine.app.utils.hashing import compute_source_hash


TEMPLATE_ROOT = Path(__file__).resolve().parent.parent / "templates"

_environment = Environment(
    loader=FileSystemLoader(TEMPLATE_ROOT),
    undefined=StrictUndefined,
    autoescape=select_autoescape(["html", "jinja"]),
    keep_trailing_newline=True,
)


class ShellPayload(BaseModel):
    """Transport triple plus an observational source digest."""

    source_b64: str
    signature_b64: str
    public_pem: str
    source_hash: str

    model_config = ConfigDict(frozen=True, extra="forbid")


def encode_source(source: str) -> str:
    """Base64 of the exact UTF-8 bytes of the Document Source."""
    return base64.b64encode(source.encode("utf-8")).decode("ascii")


def package_document(*, source: str, key_material: KeyMaterial) -> ShellPayload:
    """
    Sign a Document Source and bundle it with the public key.

    The signature is computed over the same bytes that are base64-encoded,
    so the consumer can verify exactly what it decodes.
    """
    signature_b64 = sign_source(
        source=source,
        private_key=key_material.private_key,
    )

    return ShellPayload(
        source_b64=encode_source(source),
        signature_b64=signature_b64,
        public_pem=key_material.public_pem,
        source_hash=compute_source_hash(source.encode("utf-8")),
    )


def render_shell(payload: ShellPayload, *, settings: EngineSettings) -> str:
    """Render the host document that carries the transport triple."""
    template = _environment.get_template("shell.html.jinja")
    return template.render(
        title=settings.shell_title,
        stylesheet_url=settings.stylesheet_url,
        runtime_script_url=settings.runtime_script_url,
        payload=payload,
    )


def render_ssr_page(html: str, *, settings: EngineSettings) -> str:
    """
    Wrap a compiled fragment for the unsigned server-side render route.

    Debug/SEO surface only: nothing here is verified.
    """
    template = _environment.get_template("ssr.html.jinja")
    return template.render(title=f"{settings.shell_title} (SSR)", body=html)

import base64
from unittest.mock import patch

from bs4 import BeautifulSoup
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from engine.app.services.shell import (
    encode_source,
    package_document,
    render_shell,
    render_ssr_page,
)
from engine.app.utils.hashing import compute_source_hash


def test_encode_source_round_trips_exact_bytes():
    source = "line one\r\nGrüße {{user}}\n"
    encoded = encode_source(source)

    assert base64.b64decode(encoded).decode("utf-8") == source
    assert base64.b64encode(base64.b64decode(encoded)).decode("ascii") == encoded


def test_package_document_bundles_the_triple(key_material):
    payload = package_document(source="<flo:main>x</flo:main>", key_material=key_material)

    assert payload.public_pem == key_material.public_pem
    assert base64.b64decode(payload.source_b64) == b"<flo:main>x</flo:main>"
    assert payload.source_hash == compute_source_hash(b"<flo:main>x</flo:main>")
    assert len(base64.b64decode(payload.signature_b64)) == 256


def test_shell_carries_three_data_elements(key_material, settings):
    payload = package_document(source="<flo:main>x</flo:main>", key_material=key_material)
    shell = render_shell(payload, settings=settings)

    soup = BeautifulSoup(shell, "html.parser")

    assert soup.find(id="flo-payload").string == payload.source_b64
    assert soup.find(id="flo-signature").string == payload.signature_b64
    assert soup.find(id="flo-public-pem").string == payload.public_pem
    assert soup.find(id="flo-payload")["type"] == "application/flo+base64"
    assert soup.find("script", src=settings.runtime_script_url) is not None
    assert "script-src 'self'" in shell


def test_ssr_page_embeds_compiled_html(settings):
    page = render_ssr_page('<main class="flo-main">x</main>', settings=settings)

    assert '<body><main class="flo-main">x</main></body>' in page
    assert "(SSR)" in page


def test_package_document_reuses_the_parsed_key(key_material):
    with patch("engine.app.services.signing.load_private_key") as load_key, patch(
        "engine.app.core.keys.serialization.load_pem_private_key"
    ) as load_pem:
        first = package_document(source="<flo:main>a</flo:main>", key_material=key_material)
        second = package_document(source="<flo:main>b</flo:main>", key_material=key_material)

    load_key.assert_not_called()
    load_pem.assert_not_called()

    public_key = serialization.load_pem_public_key(key_material.public_pem.encode("ascii"))
    for payload, source in ((first, b"<flo:main>a</flo:main>"), (second, b"<flo:main>b</flo:main>")):
        public_key.verify(
            base64.b64decode(payload.signature_b64),
            source,
            padding.PKCS1v15(),
            hashes.SHA256(),
        )

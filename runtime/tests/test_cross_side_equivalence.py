"""
Producer and consumer must render a verified source identically when
given the same bindings.
"""

import pytest
from bs4 import BeautifulSoup

from engine.app.core.config import EngineSettings
from engine.app.services.shell import render_ssr_page
from markup import compile_flo
from runtime.app.config import RuntimeConfig
from runtime.app.coordinator.pipeline import RenderPipeline
from runtime.app.render.materializer import RenderTarget
from runtime.tests.fixtures.payload_factory import SAMPLE_SOURCE, signed_host_document

pytestmark = pytest.mark.anyio

SOURCES = [
    SAMPLE_SOURCE,
    "<flo:card>{{missing}}</flo:card>",
    '<flo:nav><flo:logo>L</flo:logo><flo:link href="/x">X</flo:link></flo:nav>',
    "<flo:footer>{{user}} &amp; <em>friends</em></flo:footer>\n<p>plain</p>",
]


@pytest.fixture
def engine_settings() -> EngineSettings:
    return EngineSettings(
        _env_file=None,
        private_key_path="unused-private.pem",
        public_key_path="unused-public.pem",
        ssr_bindings={"user": "Shared"},
    )


@pytest.mark.parametrize("source", SOURCES)
async def test_server_and_client_bodies_match(source, engine_settings):
    server_page = render_ssr_page(
        compile_flo(source, engine_settings.ssr_bindings),
        settings=engine_settings,
    )
    server_body = BeautifulSoup(server_page, "html.parser").body

    config = RuntimeConfig(
        BINDINGS=dict(engine_settings.ssr_bindings),
        SHOW_VERIFIED_NOTE=False,
    )
    target = RenderTarget.from_html(signed_host_document(source))
    outcome = await RenderPipeline(config).run(target, render_id="equivalence")

    assert outcome.rendered
    assert outcome.html == compile_flo(source, {"user": "Shared"})
    assert target.body.decode_contents() == server_body.decode_contents()


async def test_bindings_differ_without_breaking_verification():
    config = RuntimeConfig(BINDINGS={"user": "Client"})
    target = RenderTarget.from_html(signed_host_document())

    outcome = await RenderPipeline(config).run(target, render_id="bindings")

    assert outcome.rendered
    assert outcome.html == compile_flo(SAMPLE_SOURCE, {"user": "Client"})
    assert outcome.html != compile_flo(SAMPLE_SOURCE, {"user": "Shared"})

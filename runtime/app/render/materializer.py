"""
DOM materialization.

Attaches a compiled fragment to the render target, the ``<body>`` of the
host document. The fragment is parsed BEFORE the target is touched, so a
fragment that can not be parsed leaves the existing content in place and
the caller can still show a placeholder.

Parsing uses BeautifulSoup's ``html.parser``; nothing is executed.
Materialization is not a sanitizer: whatever markup the verified author
wrote is attached as-is.
"""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup, Tag

from runtime.app.errors import MaterializationError


PARSER = "html.parser"


class RenderTarget:
    """
    The live content tree of one host document.

    Owned by the render session; mutated only by this module.
    """

    def __init__(self, document: BeautifulSoup) -> None:
        self.document = document

    @classmethod
    def from_html(cls, host_html: str) -> "RenderTarget":
        return cls(BeautifulSoup(host_html, PARSER))

    @property
    def body(self) -> Optional[Tag]:
        return self.document.body

    def require_body(self) -> Tag:
        body = self.body
        if body is None:
            raise MaterializationError("Host document has no <body> element")
        return body

    def to_html(self) -> str:
        return str(self.document)


def _parse_fragment(fragment_html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(fragment_html, PARSER)
    except Exception as exc:
        raise MaterializationError(
            f"Compiled fragment could not be parsed: {exc}"
        ) from exc


def _replace_children(body: Tag, fragment: BeautifulSoup) -> None:
    body.clear()
    for node in list(fragment.contents):
        body.append(node.extract())


def materialize(
    target: RenderTarget,
    fragment_html: str,
    *,
    note_text: Optional[str] = None,
) -> None:
    """
    Replace the target's content with the parsed fragment.

    When ``note_text`` is given, a ``div.flo-note`` success indicator is
    appended after the fragment. The note is cosmetic and carries no trust.
    """
    body = target.require_body()
    fragment = _parse_fragment(fragment_html)

    try:
        _replace_children(body, fragment)

        if note_text:
            note = target.document.new_tag("div", attrs={"class": "flo-note"})
            note.string = note_text
            body.append(note)
    except MaterializationError:
        raise
    except Exception as exc:
        raise MaterializationError(
            f"Compiled fragment could not be attached: {exc}"
        ) from exc


def render_placeholder(target: RenderTarget, message: str) -> None:
    """
    Replace the target's content with a single ``pre.flo-error`` element.

    ``message`` is inserted as text, never as markup.
    """
    body = target.require_body()
    body.clear()

    placeholder = target.document.new_tag("pre", attrs={"class": "flo-error"})
    placeholder.string = message
    body.append(placeholder)

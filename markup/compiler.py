"""
Deterministic FLO → HTML compiler.

Compilation is a pure function of (Document Source, Context Bindings) and
runs in two strictly ordered phases:

    1. Interpolation
       Every ``{{ identifier }}`` placeholder is replaced by its bound
       value, or the empty string. This runs exactly once. The character
       spans of substituted values are recorded so that phase 2 can treat
       them as opaque text.

    2. Structural substitution
       FLO tag tokens (``<flo:name ...>`` / ``</flo:name>``) are paired and
       rewritten through the rule table. Only tokens written by the
       document author are eligible: a token that starts or ends inside an
       interpolated value is never rewritten, so a binding can not inject
       structure.

Everything else passes through byte-for-byte. This is NOT a sanitizer:
literal HTML written by the document author is preserved.

The compiler is total. Unknown, unpaired or malformed tags are not errors;
they pass through literally and are reported as CompilerAnomaly entries.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .bindings import ContextBindings
from .rules import DEFAULT_RULES, FLO_NAMESPACE, RuleTable, StructuralRule


PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")

TAG_TOKEN_PATTERN = re.compile(
    r"<(?P<closing>/)?"
    + FLO_NAMESPACE
    + r":(?P<name>[A-Za-z][A-Za-z0-9_-]*)"
    r'(?P<attributes>(?:\s+[^\s<>"/=]+(?:\s*=\s*"[^"<]*")?)*)'
    r"\s*(?P<self_closing>/)?>"
)

ATTRIBUTE_PATTERN = re.compile(r'([^\s<>"/=]+)(?:\s*=\s*"([^"<]*)")?')

BindingsLike = Union[ContextBindings, Mapping[str, str], None]
Span = Tuple[int, int]


# ----------------------------------------------------------------------
# Diagnostics (non-fatal)
# ----------------------------------------------------------------------

class AnomalyKind(str, Enum):
    UNKNOWN_TAG = "unknown_tag"
    UNBALANCED_TAG = "unbalanced_tag"
    INVALID_ATTRIBUTES = "invalid_attributes"
    SELF_CLOSING_TAG = "self_closing_tag"


class CompilerAnomaly(BaseModel):
    """
    A FLO tag token that was left untransformed.

    Anomalies never change the compiled output. They exist so callers can
    log or display why a tag rendered literally.
    """

    kind: AnomalyKind
    tag: str = Field(..., description="FLO tag name without namespace")
    offset: int = Field(
        ...,
        ge=0,
        description="Character offset of the token in the interpolated text",
    )
    detail: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class CompiledFragment(BaseModel):
    """
    Output of a compilation: the HTML string plus diagnostics.

    Transient. Never persisted, never signed.
    """

    html: str
    anomalies: List[CompilerAnomaly] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")


# ----------------------------------------------------------------------
# Phase 1: interpolation
# ----------------------------------------------------------------------

def _interpolate_with_spans(
    source: str, bindings: ContextBindings
) -> Tuple[str, List[Span]]:
    parts: List[str] = []
    spans: List[Span] = []
    cursor = 0
    length = 0

    for match in PLACEHOLDER_PATTERN.finditer(source):
        literal = source[cursor:match.start()]
        parts.append(literal)
        length += len(literal)

        value = bindings.lookup(match.group(1))
        if value:
            spans.append((length, length + len(value)))
            parts.append(value)
            length += len(value)

        cursor = match.end()

    parts.append(source[cursor:])
    return "".join(parts), spans


def interpolate(source: str, bindings: BindingsLike = None) -> str:
    """Replace ``{{ name }}`` placeholders. Values are never rescanned."""
    text, _ = _interpolate_with_spans(
        _require_text(source), ContextBindings.coerce(bindings)
    )
    return text


# ----------------------------------------------------------------------
# Phase 2: structural substitution
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class _Token:
    start: int
    end: int
    name: str
    closing: bool
    rule: StructuralRule
    attributes: Dict[str, str]


class _SpanIndex:
    """Lookup of interpolated spans by position (spans are sorted)."""

    def __init__(self, spans: List[Span]) -> None:
        self._spans = spans
        self._starts = [start for start, _ in spans]

    def containing(self, position: int) -> Optional[Span]:
        idx = bisect.bisect_right(self._starts, position) - 1
        if idx < 0:
            return None
        start, end = self._spans[idx]
        if start <= position < end:
            return (start, end)
        return None


def _parse_attributes(raw: str) -> Dict[str, str]:
    attributes: Dict[str, str] = {}
    for name, value in ATTRIBUTE_PATTERN.findall(raw):
        # First occurrence wins
        attributes.setdefault(name, value)
    return attributes


def _scan_tokens(
    text: str,
    spans: _SpanIndex,
    rules: RuleTable,
    anomalies: List[CompilerAnomaly],
) -> List[_Token]:
    tokens: List[_Token] = []
    position = 0

    while True:
        match = TAG_TOKEN_PATTERN.search(text, position)
        if match is None:
            break

        start, end = match.span()

        enclosing = spans.containing(start)
        if enclosing is not None:
            position = enclosing[1]
            continue

        if spans.containing(end - 1) is not None:
            position = start + 1
            continue

        position = end
        name = match.group("name")
        closing = match.group("closing") is not None
        raw_attributes = match.group("attributes")
        rule = rules.get(name)

        if rule is None:
            anomalies.append(
                CompilerAnomaly(
                    kind=AnomalyKind.UNKNOWN_TAG, tag=name, offset=start
                )
            )
            continue

        if match.group("self_closing") is not None:
            anomalies.append(
                CompilerAnomaly(
                    kind=AnomalyKind.SELF_CLOSING_TAG, tag=name, offset=start
                )
            )
            continue

        if closing and raw_attributes.strip():
            anomalies.append(
                CompilerAnomaly(
                    kind=AnomalyKind.INVALID_ATTRIBUTES,
                    tag=name,
                    offset=start,
                    detail="closing tag carries attributes",
                )
            )
            continue

        tokens.append(
            _Token(
                start=start,
                end=end,
                name=name,
                closing=closing,
                rule=rule,
                attributes=_parse_attributes(raw_attributes),
            )
        )

    return tokens


def _pair_tokens(
    text: str,
    tokens: List[_Token],
    anomalies: List[CompilerAnomaly],
) -> Dict[int, str]:
    """
    Pair open/close tokens and return replacements keyed by token start.

    A closing token pairs with the nearest open token of the same name.
    Open tokens skipped over by that pairing are left unpaired.

    ``open_by_name`` indexes stack positions per tag name, so each token
    is pushed and popped at most once.
    """
    replacements: Dict[int, str] = {}
    stack: List[Tuple[_Token, str]] = []
    open_by_name: Dict[str, List[int]] = {}

    def unbalanced(token: _Token, detail: Optional[str] = None) -> None:
        anomalies.append(
            CompilerAnomaly(
                kind=AnomalyKind.UNBALANCED_TAG,
                tag=token.name,
                offset=token.start,
                detail=detail,
            )
        )

    for token in tokens:
        if not token.closing:
            rendered = token.rule.open_tag(token.attributes)
            if rendered is None:
                anomalies.append(
                    CompilerAnomaly(
                        kind=AnomalyKind.INVALID_ATTRIBUTES,
                        tag=token.name,
                        offset=token.start,
                    )
                )
                continue
            open_by_name.setdefault(token.name, []).append(len(stack))
            stack.append((token, rendered))
            continue

        positions = open_by_name.get(token.name)
        if not positions:
            unbalanced(token, "closing tag without opener")
            continue

        match_index = positions.pop()
        opener, rendered = stack[match_index]
        for skipped, _ in stack[match_index + 1:]:
            unbalanced(skipped, "opener left unclosed")
            open_by_name[skipped.name].pop()
        del stack[match_index:]

        if token.rule.inline and "\n" in text[opener.end:token.start]:
            unbalanced(opener, "inline tag spans multiple lines")
            unbalanced(token, "inline tag spans multiple lines")
            continue

        replacements[opener.start] = rendered
        replacements[token.start] = token.rule.close_tag()

    for opener, _ in stack:
        unbalanced(opener, "opener left unclosed")

    return replacements


def _substitute(
    text: str, spans: List[Span], rules: RuleTable
) -> CompiledFragment:
    anomalies: List[CompilerAnomaly] = []

    tokens = _scan_tokens(text, _SpanIndex(spans), rules, anomalies)
    replacements = _pair_tokens(text, tokens, anomalies)

    parts: List[str] = []
    cursor = 0
    for token in tokens:
        rendered = replacements.get(token.start)
        if rendered is None:
            continue
        parts.append(text[cursor:token.start])
        parts.append(rendered)
        cursor = token.end
    parts.append(text[cursor:])

    anomalies.sort(key=lambda anomaly: anomaly.offset)
    return CompiledFragment(html="".join(parts), anomalies=anomalies)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def _require_text(source: str) -> str:
    if not isinstance(source, str):
        raise TypeError(
            "FLO source must be decoded text, "
            f"got {type(source).__name__}"
        )
    return source


def compile_fragment(
    source: str,
    bindings: BindingsLike = None,
    *,
    rules: RuleTable = DEFAULT_RULES,
) -> CompiledFragment:
    """
    Compile FLO source into a Compiled Fragment with diagnostics.

    Identical inputs always yield identical output.
    """
    text, spans = _interpolate_with_spans(
        _require_text(source), ContextBindings.coerce(bindings)
    )
    return _substitute(text, spans, rules)


def compile_flo(
    source: str,
    bindings: BindingsLike = None,
    *,
    rules: RuleTable = DEFAULT_RULES,
) -> str:
    """Compile FLO source into an HTML string."""
    return compile_fragment(source, bindings, rules=rules).html

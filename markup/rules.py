"""
Structural rewrite rules for FLO tags.

The rule table is the single source of truth for how namespaced FLO tags
become HTML. Class names, element names and attribute handling here are
part of the signed-rendering contract: changing any of them changes what
every previously signed document renders to.

Each rule owns exactly one tag name. The table rejects duplicate names at
construction, so two rules can never compete for the same token.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Tuple


FLO_NAMESPACE = "flo"


@dataclass(frozen=True)
class StructuralRule:
    """
    Rewrite rule for one FLO tag name.

    Attributes:
        tag:
            FLO tag name without namespace (e.g. ``page``).
        element:
            HTML element emitted for the open/close pair.
        css_class:
            Fixed class attribute carried by the emitted element.
        title_attribute:
            Whether an optional ``title`` attribute is accepted and
            re-emitted as ``data-title``.
        href_attribute:
            Whether a required ``href`` attribute is re-emitted on the
            element (anchor rules).
        inline:
            Whether the open/close pair must sit on a single line.
    """

    tag: str
    element: str
    css_class: str
    title_attribute: bool = False
    href_attribute: bool = False
    inline: bool = False

    @property
    def accepts_attributes(self) -> bool:
        return self.title_attribute or self.href_attribute

    def open_tag(self, attributes: Mapping[str, str]) -> Optional[str]:
        """
        Render the opening HTML tag, or None if the attributes do not
        satisfy this rule (the token then passes through literally).
        """
        if not self.accepts_attributes:
            if attributes:
                return None
            return f'<{self.element} class="{self.css_class}">'

        if self.href_attribute:
            href = attributes.get("href")
            if not href:
                return None
            return f'<{self.element} href="{href}" class="{self.css_class}">'

        title = attributes.get("title")
        if title:
            return (
                f'<{self.element} class="{self.css_class}" '
                f'data-title="{title}">'
            )
        return f'<{self.element} class="{self.css_class}">'

    def close_tag(self) -> str:
        return f"</{self.element}>"


class RuleTable:
    """
    Ordered, immutable collection of structural rules keyed by tag name.
    """

    def __init__(self, rules: Tuple[StructuralRule, ...]) -> None:
        by_tag: Dict[str, StructuralRule] = {}
        for rule in rules:
            if rule.tag in by_tag:
                raise ValueError(
                    f"Duplicate structural rule for tag '{rule.tag}'"
                )
            by_tag[rule.tag] = rule

        self._rules = tuple(rules)
        self._by_tag = by_tag

    def __iter__(self) -> Iterator[StructuralRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, tag: object) -> bool:
        return tag in self._by_tag

    def get(self, tag: str) -> Optional[StructuralRule]:
        return self._by_tag.get(tag)

    @property
    def tags(self) -> Tuple[str, ...]:
        return tuple(rule.tag for rule in self._rules)


DEFAULT_RULES = RuleTable(
    (
        StructuralRule("page", "div", "flo-page", title_attribute=True),
        StructuralRule("header", "header", "flo-header"),
        StructuralRule("nav", "nav", "flo-nav"),
        StructuralRule("logo", "div", "flo-logo"),
        StructuralRule("main", "main", "flo-main"),
        StructuralRule("card", "section", "flo-card", title_attribute=True),
        StructuralRule("footer", "footer", "flo-footer"),
        StructuralRule(
            "link", "a", "flo-link", href_attribute=True, inline=True
        ),
    )
)

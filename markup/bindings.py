"""
Context bindings for FLO interpolation.

Bindings are NOT authenticated. The producer and the consumer may use
different bindings for the same signed source; only the substitution
rules must be identical.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ContextBindings(BaseModel):
    """
    Explicit string-to-string mapping supplied at compile time.

    Values are validated strictly: non-string values are rejected rather
    than stringified. Keys the document never references are ignored.
    """

    mapping: Dict[str, str] = Field(
        default_factory=dict,
        description="Variable name to substituted string value",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        strict=True,
    )

    @classmethod
    def coerce(
        cls,
        bindings: Union["ContextBindings", Mapping[str, str], None],
    ) -> "ContextBindings":
        if bindings is None:
            return cls()
        if isinstance(bindings, ContextBindings):
            return bindings
        return cls(mapping=dict(bindings))

    def lookup(self, name: str) -> str:
        """Return the bound value, or an empty string when unbound."""
        return self.mapping.get(name) or ""

    def get(self, name: str) -> Optional[str]:
        return self.mapping.get(name)

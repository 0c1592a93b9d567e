"""
Runtime configuration for the FLO consumer runtime.

This module centralizes environment-driven settings: the context bindings
applied after verification, the ids of the transport elements in the host
document, and resource limits.

Configuration is read-only at runtime. It can change WHAT bindings are
interpolated, never WHETHER verification gates compilation.
"""

from __future__ import annotations

import json
import os
from typing import Dict

from pydantic import BaseModel, Field, field_validator, model_validator


class RuntimeConfig(BaseModel):
    """
    Runtime configuration for the consumer runtime.

    Configuration is environment-driven, read-only at runtime, and parsed
    once at startup.
    """

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    BINDINGS: Dict[str, str] = Field(
        default_factory=lambda: {"user": "Scholar"},
        description=(
            "Context bindings applied after verification. Not "
            "authenticated; may legitimately differ from the producer's."
        ),
    )

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    SHOW_VERIFIED_NOTE: bool = Field(
        True,
        description="Append the cosmetic verification note after rendering",
    )

    VERIFIED_NOTE_TEXT: str = Field(
        "FLO verified ✔",
        description="Text of the cosmetic verification note",
    )

    # ------------------------------------------------------------------
    # Transport element ids
    # ------------------------------------------------------------------

    PAYLOAD_ELEMENT_ID: str = Field("flo-payload", min_length=1)
    SIGNATURE_ELEMENT_ID: str = Field("flo-signature", min_length=1)
    PUBLIC_KEY_ELEMENT_ID: str = Field("flo-public-pem", min_length=1)

    # ------------------------------------------------------------------
    # Safety and resource limits
    # ------------------------------------------------------------------

    MAX_HOST_DOCUMENT_KB: int = Field(
        2048,
        ge=1,
        description="Maximum accepted host document size in kilobytes",
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("BINDINGS", mode="before")
    @classmethod
    def bindings_must_be_strings(cls, v):
        if not isinstance(v, dict):
            raise ValueError("BINDINGS must be a JSON object")
        for key, value in v.items():
            if not isinstance(value, str):
                raise ValueError(
                    f"Binding '{key}' must be a string, "
                    f"got {type(value).__name__}"
                )
        return v

    @model_validator(mode="after")
    def element_ids_must_differ(self) -> "RuntimeConfig":
        ids = {
            self.PAYLOAD_ELEMENT_ID,
            self.SIGNATURE_ELEMENT_ID,
            self.PUBLIC_KEY_ELEMENT_ID,
        }
        if len(ids) != 3:
            raise ValueError("Transport element ids must be distinct")
        return self

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration from environment variables.

        All values are parsed once at startup and must remain immutable.
        """

        def env_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        values: Dict[str, object] = {
            "SHOW_VERIFIED_NOTE": env_bool(
                "FLO_RUNTIME_SHOW_VERIFIED_NOTE", True
            ),
            "MAX_HOST_DOCUMENT_KB": int(
                os.getenv("FLO_RUNTIME_MAX_HOST_DOCUMENT_KB", "2048")
            ),
        }

        bindings_raw = os.getenv("FLO_RUNTIME_BINDINGS")
        if bindings_raw is not None:
            try:
                values["BINDINGS"] = json.loads(bindings_raw)
            except json.JSONDecodeError as exc:
                raise ValueError(
                    f"FLO_RUNTIME_BINDINGS is not valid JSON: {exc}"
                ) from exc

        for field_name in (
            "VERIFIED_NOTE_TEXT",
            "PAYLOAD_ELEMENT_ID",
            "SIGNATURE_ELEMENT_ID",
            "PUBLIC_KEY_ELEMENT_ID",
        ):
            raw = os.getenv(f"FLO_RUNTIME_{field_name}")
            if raw is not None:
                values[field_name] = raw

        return cls(**values)

    model_config = {
        "frozen": True,
    }

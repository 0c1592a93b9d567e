"""
Centralized configuration management for the FLO document engine.

Pydantic v2 settings management to enforce strict validation, zero
secret leakage, and fast failure on invalid configuration. Settings are
parsed once at startup and are read-only thereafter; a process restart is
the only way to reload them.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Dict, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

# Bare .flo filename. Shared with the document registry.
DOCUMENT_NAME_PATTERN = r"^[A-Za-z0-9_.-]+\.flo$"

DocumentName = Annotated[
    str,
    Field(
        pattern=DOCUMENT_NAME_PATTERN,
        description="Bare .flo filename (no directory components)",
    ),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class EngineSettings(BaseSettings):
    """
    Application settings parsed from the environment.

    Fails fast at startup if key paths are missing or the master document
    name is malformed.
    """

    # ---------------------------------------------------------------------
    # Key provisioning (PEM / SPKI text)
    # ---------------------------------------------------------------------

    private_key_path: Annotated[
        Path,
        Field(description="PEM-encoded RSA private key used for signing"),
    ]
    public_key_path: Annotated[
        Path,
        Field(description="PEM-encoded SPKI public key shipped in the shell"),
    ]
    private_key_passphrase: Annotated[
        Optional[SecretStr],
        Field(
            default=None,
            description="Passphrase for an encrypted private key",
        ),
    ]

    # ---------------------------------------------------------------------
    # Documents
    # ---------------------------------------------------------------------

    documents_dir: Annotated[
        Path,
        Field(
            default=Path("documents"),
            description="Directory holding .flo source documents",
        ),
    ]
    master_document: Annotated[
        DocumentName,
        Field(
            default="home.flo",
            description="Document served at the root route",
        ),
    ]
    max_document_size_kb: Annotated[
        int,
        Field(
            default=512,
            ge=1,
            le=10_240,
            description="Upper bound on a single .flo source file",
        ),
    ]

    # ---------------------------------------------------------------------
    # Presentation (shell and SSR)
    # ---------------------------------------------------------------------

    shell_title: str = "FLO Master"
    stylesheet_url: str = "/styles.css"
    runtime_script_url: str = "/runtime.js"

    ssr_bindings: Annotated[
        Dict[str, str],
        Field(
            default_factory=lambda: {"user": "Scholar (SSR)"},
            description="Context bindings used by the unsigned SSR route",
        ),
    ]

    model_config = SettingsConfigDict(
        env_prefix="FLO_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @field_validator("documents_dir")
    @classmethod
    def resolve_documents_dir(cls, v: Path) -> Path:
        return v.expanduser().resolve()


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """
    Dependency provider for application settings.

    Explicit singleton within the process lifecycle.
    """
    return EngineSettings()  # singleton within process

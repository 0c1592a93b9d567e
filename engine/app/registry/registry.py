"""
FLO document registry.

Resolves public ``.flo`` names to source files inside the configured
documents directory. Only bare filenames are addressable; any name that
resolves outside the directory is rejected.
"""

import logging
import re
from pathlib import Path
from typing import List

from engine.app.core.config import DOCUMENT_NAME_PATTERN, EngineSettings

logger = logging.getLogger(__name__)

_DOCUMENT_NAME = re.compile(DOCUMENT_NAME_PATTERN)


class DocumentNotFoundError(LookupError):
    """Raised when a requested document is not registered."""


class DocumentRegistry:
    """Read-only view over the documents directory."""

    def __init__(self, *, documents_dir: Path, max_size_kb: int) -> None:
        self._root = documents_dir.expanduser().resolve()
        self._max_size_bytes = max_size_kb * 1024

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "DocumentRegistry":
        return cls(
            documents_dir=settings.documents_dir,
            max_size_kb=settings.max_document_size_kb,
        )

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, name: str) -> Path:
        """
        Return the path of a registered document.

        Raises DocumentNotFoundError for malformed names, names escaping
        the documents directory, and missing files alike.
        """
        if not _DOCUMENT_NAME.fullmatch(name) or name.startswith("."):
            raise DocumentNotFoundError(name)

        candidate = (self._root / name).resolve()

        try:
            candidate.relative_to(self._root)
        except ValueError:
            logger.warning("document_path_escape_rejected", extra={"document": name})
            raise DocumentNotFoundError(name) from None

        if not candidate.is_file():
            raise DocumentNotFoundError(name)

        return candidate

    def read_source(self, name: str) -> str:
        """Read a document's exact source text (UTF-8, no normalization)."""
        path = self.resolve(name)

        size = path.stat().st_size
        if size > self._max_size_bytes:
            raise ValueError(
                f"Document '{name}' exceeds maximum size "
                f"({size} > {self._max_size_bytes} bytes)"
            )

        # newline="" keeps CRLF bytes intact so the signed bytes equal the file
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()

    def list_documents(self) -> List[str]:
        if not self._root.is_dir():
            return []
        return sorted(
            p.name
            for p in self._root.iterdir()
            if p.is_file() and _DOCUMENT_NAME.fullmatch(p.name)
        )

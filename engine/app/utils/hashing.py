"""
Cryptographic hashing helpers for Document Source bytes.

This module hashes bytes, and bytes only. The digest is observational:
it identifies a source in logs and response headers and carries no
authority. Authority comes exclusively from the detached signature.
"""

import hashlib
from typing import Union


def compute_source_hash(source_bytes: Union[bytes, bytearray]) -> str:
    """
    Compute a human-readable SHA-256 digest of raw source bytes.

    Returns:
        A SHA-256 hash string with an explicit algorithm prefix.
        Example: ``SHA-256:3b7c0e4c...``
    """
    if not isinstance(source_bytes, (bytes, bytearray)):
        raise TypeError(
            "compute_source_hash expects bytes, "
            f"got {type(source_bytes).__name__}"
        )

    digest = hashlib.sha256(source_bytes).hexdigest()
    return f"SHA-256:{digest}"

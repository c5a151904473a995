"""Cache key generation — content-addressed by source identity."""

from __future__ import annotations

import hashlib


def hash_source(source: str) -> str:
    """Hash an image source identifier (URL, data URI or path) for cache use.

    The key depends on the source string only, never on the transcoded
    bytes, so an unchanged source always maps to the same entry.
    """
    return hashlib.sha256(source.encode("utf-8")).hexdigest()

"""Content addressing: opaque, deterministic item keys."""

import hashlib

ITEM_KEY_LENGTH = 12


def content_hash(identifier: str, length: int = ITEM_KEY_LENGTH) -> str:
    """Truncated SHA-256 hex digest of ``identifier``.

    Equal identifiers always map to the same key, across runs and across
    sources.
    """
    if not identifier:
        raise ValueError("cannot address an empty identifier")
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest()[:length]

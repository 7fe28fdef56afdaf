"""
Artifact fingerprints used for delivery deduplication.
"""

import hashlib

from notion_relay.constants import IDEMPOTENCY_DIGEST_CHARS


def digest(content: bytes, name: str) -> str:
    """SHA-256 fingerprint of an artifact's content and name.

    The content is length-prefixed so the (content, name) boundary is
    unambiguous: moving bytes between the two always changes the digest.

    Returns:
        64-character lowercase hex string
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    sha256_hash = hashlib.sha256()
    sha256_hash.update(len(content).to_bytes(8, "big"))
    sha256_hash.update(content)
    sha256_hash.update(name.encode("utf-8"))
    return sha256_hash.hexdigest()


def idempotency_key(file_digest: str, prefix: str) -> str:
    """Idempotency-Key header value: '<prefix>:<first 32 hex chars>'."""
    return f"{prefix}:{file_digest[:IDEMPOTENCY_DIGEST_CHARS]}"

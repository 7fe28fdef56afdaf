"""Tests for artifact digests and idempotency keys."""
from notion_relay.core import digest, idempotency_key


def test_digest_is_deterministic():
    assert digest(b"abc", "r.html") == digest(b"abc", "r.html")


def test_digest_is_sha256_hex():
    value = digest(b"abc", "r.html")
    assert len(value) == 64
    assert all(c in "0123456789abcdef" for c in value)


def test_digest_depends_on_name_and_content():
    base = digest(b"abc", "r.html")
    assert digest(b"abc", "s.html") != base
    assert digest(b"abd", "r.html") != base


def test_digest_boundary_is_unambiguous():
    """Shifting bytes between content and name changes the digest."""
    assert digest(b"ab", "c.html") != digest(b"abc", ".html")


def test_str_content_matches_utf8_bytes():
    assert digest("検査", "r.html") == digest("検査".encode("utf-8"), "r.html")


def test_idempotency_key_uses_first_32_chars():
    value = digest(b"abc", "r.html")
    assert idempotency_key(value, "report") == f"report:{value[:32]}"

"""Unit tests for content-based task identity."""

from taskvelocity.tracking.identity import IDENTITY_PREFIX_CHARS, identity_of, normalize_task_text


def test_identity_is_deterministic():
    """Test the same text always hashes to the same identity."""
    assert identity_of("1. Set up project structure") == identity_of("1. Set up project structure")


def test_identity_format():
    """Test identities are 16 lowercase hex characters."""
    identity = identity_of("Write the parser")

    assert len(identity) == 16
    assert all(c in "0123456789abcdef" for c in identity)


def test_identity_ignores_whitespace_layout():
    """Test reflowed or re-indented text keeps its identity."""
    assert identity_of("  Write   the\tparser ") == identity_of("Write the parser")


def test_different_text_different_identity():
    """Test distinct descriptions get distinct identities."""
    assert identity_of("Write the parser") != identity_of("Write the lexer")


def test_identity_uses_prefix_only():
    """Test text beyond the prefix length does not change the identity."""
    prefix = "x" * IDENTITY_PREFIX_CHARS

    assert identity_of(prefix + " first tail") == identity_of(prefix + " second tail")
    assert len(normalize_task_text(prefix + "tail")) == IDENTITY_PREFIX_CHARS

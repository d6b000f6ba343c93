"""Tests for thread helper utilities.

Tests subject normalization, participant extraction, and thread ID generation.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import patch

import pytest

from mailthread.engine.models import Message
from mailthread.engine.thread_utils import (
    SubjectNormalizer,
    build_prefix_pattern,
    extract_participants,
    generate_thread_id,
    normalize_subject,
)

# =============================================================================
# Test normalize_subject
# =============================================================================


class TestNormalizeSubject:
    """Tests for subject normalization."""

    def test_removes_re_prefix(self) -> None:
        """Test removal of Re: prefix."""
        assert normalize_subject("Re: Project Update") == "project update"
        assert normalize_subject("RE: Project Update") == "project update"
        assert normalize_subject("re:Project Update") == "project update"

    def test_removes_fwd_prefix(self) -> None:
        """Test removal of Fwd: and Fw: prefixes."""
        assert normalize_subject("Fwd: Project Update") == "project update"
        assert normalize_subject("FWD: Project Update") == "project update"
        assert normalize_subject("Fw: Project Update") == "project update"

    def test_removes_localized_prefixes(self) -> None:
        """Test removal of German AW:/WG: prefixes."""
        assert normalize_subject("AW: Rechnung") == "rechnung"
        assert normalize_subject("Aw: Rechnung") == "rechnung"
        assert normalize_subject("WG: Rechnung") == "rechnung"
        assert normalize_subject("wg: Rechnung") == "rechnung"

    def test_colon_is_optional(self) -> None:
        """Test that a prefix word without a colon is still stripped."""
        assert normalize_subject("Re Project Update") == "project update"

    def test_prefix_must_be_whole_word(self) -> None:
        """Test that words merely starting with a prefix are kept."""
        assert normalize_subject("Regarding the invoice") == "regarding the invoice"
        assert normalize_subject("Awesome news") == "awesome news"

    def test_prefix_needs_colon_or_whitespace(self) -> None:
        """Test that a prefix word glued to punctuation is subject content."""
        assert normalize_subject("Re-scheduled meeting") == "re-scheduled meeting"
        assert normalize_subject("Re-org plan") == "re-org plan"
        assert normalize_subject("Re's notes") == "re's notes"
        assert normalize_subject("Fw.: Budget") == "fw.: budget"

    def test_reply_to_hyphenated_subject(self) -> None:
        """Test a reply and its starter share a key."""
        assert normalize_subject("Re: Re-org plan") == normalize_subject("Re-org plan")

    def test_strips_only_one_prefix(self) -> None:
        """Test that repeated prefixes lose only the outer one."""
        assert normalize_subject("Re: Re: Hello") == "re: hello"
        assert normalize_subject("Fwd: Re: Hello") == "re: hello"

    def test_collapses_whitespace(self) -> None:
        """Test that whitespace runs become a single space."""
        assert normalize_subject("Project   \t Update\n") == "project update"
        assert normalize_subject("Re:    Project  Update  ") == "project update"

    def test_preserves_subject_content(self) -> None:
        """Test that subject content is preserved."""
        assert normalize_subject("Project Update") == "project update"

    def test_handles_empty_subject(self) -> None:
        """Test handling of empty subject."""
        assert normalize_subject("") == ""
        assert normalize_subject("   ") == ""
        assert normalize_subject(None) == ""

    def test_returns_lowercase(self) -> None:
        """Test that result is lowercase."""
        assert normalize_subject("URGENT MEETING") == "urgent meeting"

    @pytest.mark.parametrize(
        "subject",
        ["Project Update", "Re: Project Update", "AW:  Rechnung  2024", "  hello   world "],
    )
    def test_idempotent_for_single_prefix(self, subject: str) -> None:
        """Test that normalizing a normalized subject changes nothing."""
        once = normalize_subject(subject)
        assert normalize_subject(once) == once


# =============================================================================
# Test SubjectNormalizer
# =============================================================================


class TestSubjectNormalizer:
    """Tests for the configurable normalizer."""

    def test_clean_keeps_casing(self) -> None:
        """Test that clean() strips and collapses but keeps case."""
        normalizer = SubjectNormalizer()
        assert normalizer.clean("Re:  Project   Update") == "Project Update"

    def test_normalize_is_lowercased_clean(self) -> None:
        """Test that normalize() == clean().lower()."""
        normalizer = SubjectNormalizer()
        subject = "WG:  Quarterly   REPORT"
        assert normalizer.normalize(subject) == normalizer.clean(subject).lower()

    def test_custom_prefixes(self) -> None:
        """Test a normalizer with Scandinavian prefixes."""
        normalizer = SubjectNormalizer(prefixes=["SV", "VS"])
        assert normalizer.normalize("SV: Budget") == "budget"
        assert normalizer.normalize("VS: Budget") == "budget"
        # Re is not in this prefix set
        assert normalizer.normalize("Re: Budget") == "re: budget"

    def test_prefixes_property(self) -> None:
        """Test the configured prefixes are exposed."""
        assert SubjectNormalizer(prefixes=["Re"]).prefixes == ("Re",)

    def test_timeout_falls_back_to_whitespace_collapse(self) -> None:
        """Test fallback behaviour when the regex engine times out."""
        normalizer = SubjectNormalizer()
        with patch.object(normalizer, "_pattern") as pattern:
            pattern.sub.side_effect = TimeoutError("regex timeout")
            assert normalizer.clean("Re:  Hello   World") == "Re: Hello World"
            assert normalizer.normalize("Re:  Hello") == "re: hello"

    def test_empty_prefix_set_rejected(self) -> None:
        """Test that a normalizer needs at least one prefix."""
        with pytest.raises(ValueError):
            build_prefix_pattern(["", "  "])


# =============================================================================
# Test extract_participants
# =============================================================================


class TestExtractParticipants:
    """Tests for participant extraction."""

    def test_combines_from_to_cc(self, make_message: Callable[..., Message]) -> None:
        """Test union of sender and recipients."""
        message = make_message(
            "m1",
            from_address="alice@example.com",
            to=("bob@example.com",),
            cc=("carol@example.com",),
        )
        assert extract_participants(message) == {
            "alice@example.com",
            "bob@example.com",
            "carol@example.com",
        }

    def test_removes_exact_duplicates(self, make_message: Callable[..., Message]) -> None:
        """Test exact-string deduplication."""
        message = make_message(
            "m1",
            from_address="alice@example.com",
            to=("alice@example.com", "bob@example.com"),
            cc=("bob@example.com",),
        )
        assert extract_participants(message) == {"alice@example.com", "bob@example.com"}

    def test_is_case_sensitive(self, make_message: Callable[..., Message]) -> None:
        """Test that addresses are not canonicalized."""
        message = make_message("m1", from_address="Foo@x.com", to=("foo@x.com",))
        assert extract_participants(message) == {"Foo@x.com", "foo@x.com"}

    def test_skips_empty_sender(self, make_message: Callable[..., Message]) -> None:
        """Test that a missing sender does not add an empty participant."""
        message = make_message("m1", from_address="", to=("bob@example.com",))
        assert extract_participants(message) == {"bob@example.com"}


# =============================================================================
# Test generate_thread_id
# =============================================================================


class TestGenerateThreadId:
    """Tests for thread ID generation."""

    def test_has_prefix(self) -> None:
        """Test the default prefix."""
        assert generate_thread_id().startswith("thread-")

    def test_custom_prefix(self) -> None:
        """Test a custom prefix."""
        assert generate_thread_id("conv-").startswith("conv-")

    def test_unique(self) -> None:
        """Test that IDs are not reused."""
        ids = {generate_thread_id() for _ in range(1000)}
        assert len(ids) == 1000

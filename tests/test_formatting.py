"""Unit tests for TUI text formatting."""
from streamchat.ui.formatting import format_assistant_content, sidebar_label


class TestFormatAssistantContent:
    """Tests for answer tidy-up before display and copy."""

    def test_collapses_blank_line_runs(self):
        assert format_assistant_content("a\n\n\n\nb") == "a\n\nb"

    def test_keeps_single_blank_lines(self):
        assert format_assistant_content("a\n\nb\nc") == "a\n\nb\nc"

    def test_trims_surrounding_whitespace(self):
        assert format_assistant_content("\n\n  answer  \n\n") == "answer"

    def test_empty(self):
        assert format_assistant_content("") == ""


class TestSidebarLabel:
    """Tests for sidebar title labels."""

    def test_short_title_unchanged(self):
        assert sidebar_label("hello") == "hello"

    def test_whitespace_is_flattened(self):
        assert sidebar_label("two\nlines  here") == "two lines here"

    def test_long_title_gets_ellipsis(self):
        label = sidebar_label("x" * 40, width=10)
        assert label == "x" * 9 + "…"
        assert len(label) == 10

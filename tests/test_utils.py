"""Tests for vtail.utils -- width measurement, slicing and wrapping."""

from __future__ import annotations

import pytest

from vtail.utils import (
    AnsiCodeTracker,
    RESET,
    dim,
    extract_ansi_code,
    pad_to_width,
    slice_by_column,
    strip_ansi,
    truncate_to_width,
    visible_width,
    wrap_text,
)


# ---------------------------------------------------------------------------
# visible_width / strip_ansi
# ---------------------------------------------------------------------------


class TestVisibleWidth:
    """Visible columns ignore escape sequences and widen CJK."""

    def test_plain_ascii(self) -> None:
        assert visible_width("hello") == 5

    def test_empty(self) -> None:
        assert visible_width("") == 0

    def test_sgr_codes_are_zero_width(self) -> None:
        assert visible_width("\x1b[1mhi\x1b[0m") == 2

    def test_private_mode_csi_is_zero_width(self) -> None:
        assert visible_width("\x1b[?25hok") == 2

    def test_hyperlink_is_zero_width(self) -> None:
        assert visible_width("\x1b]8;;https://example.com\x07link\x1b]8;;\x07") == 4

    def test_wide_character(self) -> None:
        assert visible_width("A世B") == 4

    def test_tab_is_three_columns(self) -> None:
        assert visible_width("a\tb") == 5

    def test_box_drawing_is_narrow(self) -> None:
        assert visible_width("╭─╮│╰═╯") == 7

    def test_lone_escape_does_not_raise(self) -> None:
        assert visible_width("a\x1bb") == 2


class TestStripAnsi:
    def test_removes_sgr(self) -> None:
        assert strip_ansi("\x1b[2m#01\x1b[0m path") == "#01 path"

    def test_keeps_plain_text(self) -> None:
        assert strip_ansi("nothing here") == "nothing here"

    def test_dim_wraps_in_dim_codes(self) -> None:
        assert dim("x") == "\x1b[2mx\x1b[22m"
        assert strip_ansi(dim("x")) == "x"


class TestExtractAnsiCode:
    def test_code_at_position(self) -> None:
        assert extract_ansi_code("a\x1b[31mb", 1) == "\x1b[31m"

    def test_not_an_escape(self) -> None:
        assert extract_ansi_code("a\x1b[31mb", 0) is None

    def test_incomplete_sequence(self) -> None:
        assert extract_ansi_code("\x1bx", 0) is None

    def test_past_end(self) -> None:
        assert extract_ansi_code("ab", 5) is None


# ---------------------------------------------------------------------------
# AnsiCodeTracker
# ---------------------------------------------------------------------------


class TestAnsiCodeTracker:
    """Track active SGR attributes across line breaks."""

    def test_combined_params(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[1;31m")
        assert tracker.get_active_codes() == "\x1b[1m\x1b[31m"

    def test_normal_intensity_clears_bold_and_dim(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[1m")
        tracker.process("\x1b[2m")
        tracker.process("\x1b[31m")
        tracker.process("\x1b[22m")
        assert tracker.get_active_codes() == "\x1b[31m"

    def test_reset_clears_everything(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[4;32m")
        tracker.process(RESET)
        assert not tracker.has_active_codes()

    def test_extended_colors(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[38;5;208m")
        tracker.process("\x1b[48;2;1;2;3m")
        assert tracker.get_active_codes() == "\x1b[38;5;208m\x1b[48;2;1;2;3m"

    def test_non_sgr_is_ignored(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[2K")
        assert not tracker.has_active_codes()


# ---------------------------------------------------------------------------
# pad / truncate / slice
# ---------------------------------------------------------------------------


class TestPadToWidth:
    def test_pads_short_text(self) -> None:
        assert pad_to_width("ab", 5) == "ab   "

    def test_never_truncates(self) -> None:
        assert pad_to_width("abcdef", 3) == "abcdef"

    def test_pads_by_visible_width(self) -> None:
        padded = pad_to_width(dim("ab"), 4)
        assert visible_width(padded) == 4
        assert padded.startswith(dim("ab"))


class TestTruncateToWidth:
    def test_fits(self) -> None:
        assert truncate_to_width("hello", 10) == "hello"

    def test_truncates_with_ellipsis(self) -> None:
        assert truncate_to_width("hello world", 5) == "he..."

    def test_pad(self) -> None:
        assert truncate_to_width("hi", 5, pad=True) == "hi   "

    def test_truncated_and_padded_width(self) -> None:
        result = truncate_to_width("\x1b[7m" + "x" * 40, 20, pad=True)
        assert visible_width(result) == 20

    def test_zero_width(self) -> None:
        assert truncate_to_width("hello", 0) == ""

    def test_keeps_emoji_sequences_whole(self) -> None:
        assert truncate_to_width("☀️" * 5, 7) == "☀️☀️..."


class TestSliceByColumn:
    def test_plain_slice(self) -> None:
        assert slice_by_column("abcdef", 2, 3) == "cde"

    def test_keeps_codes_inside_and_after_window(self) -> None:
        assert slice_by_column("\x1b[1mabc\x1b[0m", 0, 2) == "\x1b[1mab\x1b[0m"

    def test_wide_char_straddling_end_is_dropped(self) -> None:
        assert slice_by_column("a世b", 0, 2) == "a"

    def test_zero_length(self) -> None:
        assert slice_by_column("abc", 0, 0) == ""

    @pytest.mark.parametrize("glyph", ["☀️", "👍🏽", "e\u0301"])
    def test_clusters_are_never_split(self, glyph: str) -> None:
        width = visible_width(glyph)
        assert slice_by_column("a" + glyph + "b", 0, 1 + width) == "a" + glyph
        assert slice_by_column("a" + glyph + "b", 1, width) == glyph


# ---------------------------------------------------------------------------
# wrap_text
# ---------------------------------------------------------------------------


class TestWrapText:
    """Greedy word wrap with ANSI preservation."""

    def test_fits_on_one_line(self) -> None:
        assert wrap_text("abc", 3) == ["abc"]

    def test_breaks_at_space(self) -> None:
        assert wrap_text("hello world foo", 11) == ["hello world", "foo"]

    def test_hard_cuts_long_word(self) -> None:
        assert wrap_text("abcdefghij", 4) == ["abcd", "efgh", "ij"]

    def test_hard_cut_counts_emoji_as_two_columns(self) -> None:
        assert wrap_text("☀️" * 3, 4) == ["☀️☀️", "☀️"]
        assert wrap_text("👍🏽" * 3, 5) == ["👍🏽👍🏽", "👍🏽"]

    def test_continuation_width(self) -> None:
        assert wrap_text("aaa bbb ccc", 5, continuation_width=3) == ["aaa", "bbb", "ccc"]

    def test_every_line_fits(self) -> None:
        text = "The quick brown fox jumps over the lazy dog " * 5
        for line in wrap_text(text, 17, continuation_width=13)[1:]:
            assert visible_width(line) <= 13

    def test_styles_reopen_on_each_line(self) -> None:
        assert wrap_text("\x1b[2mabc def\x1b[0m", 3) == [
            "\x1b[2mabc\x1b[0m",
            "\x1b[2mdef\x1b[0m",
        ]

    def test_reset_on_break_space_closes_line(self) -> None:
        assert wrap_text("\x1b[2mab\x1b[0m cd", 2) == ["\x1b[2mab\x1b[0m", "cd"]

    def test_non_positive_width_passes_through(self) -> None:
        assert wrap_text("anything", 0) == ["anything"]

    def test_empty_string(self) -> None:
        assert wrap_text("", 10) == [""]

"""Tests for vtail.collection.LineCollection.

Covers the lazily rebuilt display projection, vendor-group collapsing, trimming
and the scroll index translation used when presentation settings change.
"""

from __future__ import annotations

from vtail.collection import LineCollection
from vtail.formatter import LogFormatter
from vtail.line import Line
from vtail.utils import strip_ansi, visible_width


def make_line(
    index: int,
    rows: int = 1,
    *,
    full: int | None = None,
    group: int | None = None,
) -> Line:
    return Line(
        content=f"raw {index}",
        formatted_lines=[f"{index}:{row}" for row in range(rows)],
        original_index=index,
        full_wrap_count=full or rows,
        is_stack_frame=group is not None,
        is_vendor_frame=group is not None,
        vendor_group_id=group,
    )


def vendor_sample() -> LineCollection:
    """A(2) V1(1) V2(2) V3(1) B(1) C(1), where V* form group 1.

    Shown: A=0-1, V1=2, V2=3-4, V3=5, B=6, C=7 (8 lines).
    Hidden: A=0-1, marker=2, B=3, C=4 (5 lines).
    """
    collection = LineCollection(content_width=50)
    collection.set_lines([
        make_line(0, 2),
        make_line(1, 1, group=1),
        make_line(2, 2, group=1),
        make_line(3, 1, group=1),
        make_line(4, 1),
        make_line(5, 1),
    ])
    return collection


def wrap_sample(wrapped: bool) -> LineCollection:
    """A(3) B(1) C(2) D(1) wrapped, or one line each when truncated."""
    rows = [3, 1, 2, 1]
    collection = LineCollection()
    collection.set_lines([
        make_line(i, n if wrapped else 1, full=n) for i, n in enumerate(rows)
    ])
    return collection


# ---------------------------------------------------------------------------
# Dirty flag and caching
# ---------------------------------------------------------------------------


class TestDirtyFlag:
    def test_new_collection_is_dirty(self) -> None:
        assert LineCollection().is_dirty

    def test_read_cleans(self) -> None:
        collection = LineCollection()
        collection.display_line_count()
        assert not collection.is_dirty

    def test_unchanged_settings_stay_clean(self) -> None:
        collection = LineCollection(content_width=80)
        collection.display_line_count()
        collection.set_hide_vendor(False)
        collection.set_content_width(80)
        assert not collection.is_dirty

    def test_mutators_dirty(self) -> None:
        collection = LineCollection(content_width=80)
        for mutate in (
            lambda: collection.set_hide_vendor(True),
            lambda: collection.set_content_width(100),
            lambda: collection.add_line(make_line(0)),
            lambda: collection.append_lines([make_line(1)]),
            lambda: collection.trim_from_start(1),
            collection.clear,
        ):
            collection.display_line_count()
            mutate()
            assert collection.is_dirty

    def test_clean_read_returns_cached_projection(self) -> None:
        collection = vendor_sample()
        first = collection.get_all_display_lines()
        assert collection.get_all_display_lines() is first

        collection.set_hide_vendor(True)
        assert collection.get_all_display_lines() is not first


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


class TestProjection:
    def test_shown_flattens_every_line(self) -> None:
        collection = vendor_sample()
        assert collection.display_line_count() == 8
        assert collection.get_all_display_lines()[:3] == ["0:0", "0:1", "1:0"]

    def test_hidden_collapses_group_to_marker(self) -> None:
        collection = vendor_sample()
        collection.set_hide_vendor(True)
        lines = collection.get_all_display_lines()

        assert len(lines) == 5
        assert lines[:2] == ["0:0", "0:1"]
        assert strip_ansi(lines[2]).startswith(" │ #… (3 vendor frames)")
        assert visible_width(lines[2]) == 50
        assert lines[3:] == ["4:0", "5:0"]

    def test_groups_collapse_separately(self) -> None:
        collection = LineCollection(content_width=40, hide_vendor=True)
        collection.set_lines([
            make_line(0, group=1),
            make_line(1),
            make_line(2, group=2),
            make_line(3, group=2),
        ])
        markers = [strip_ansi(line) for line in collection.get_all_display_lines()]
        assert len(markers) == 3
        assert "(1 vendor frames)" in markers[0]
        assert markers[1] == "1:0"
        assert "(2 vendor frames)" in markers[2]

    def test_vendor_frame_without_group_is_kept(self) -> None:
        line = Line(content="#0", formatted_lines=["#0"], original_index=0, is_vendor_frame=True)
        collection = LineCollection(hide_vendor=True)
        collection.add_line(line)
        assert collection.get_all_display_lines() == ["#0"]

    def test_formatted_trace_hides_to_three_lines(self) -> None:
        raw = [f"#{i} /srv/vendor/pkg/File{i}.php({i}): call()" for i in range(5)]
        raw += ["#5 /app/Http/Controller.php(10): index()", "#6 {main}"]
        collection = LogFormatter(80).format_lines(raw)
        collection.set_hide_vendor(True)

        lines = [strip_ansi(line) for line in collection.get_all_display_lines()]
        assert len(lines) == 3
        assert "(5 vendor frames)" in lines[0]
        assert "/app/Http/Controller.php(10)" in lines[1]
        assert "(1 vendor frames)" in lines[2]

    def test_marker_width_follows_content_width(self) -> None:
        collection = vendor_sample()
        collection.set_hide_vendor(True)
        collection.set_content_width(70)
        assert visible_width(collection.get_all_display_lines()[2]) == 70


class TestDisplayWindow:
    def test_window(self) -> None:
        assert vendor_sample().get_display_lines(5, 2) == ["3:0", "4:0"]

    def test_window_past_end(self) -> None:
        assert vendor_sample().get_display_lines(6, 10) == ["4:0", "5:0"]

    def test_negative_start_clamps(self) -> None:
        assert vendor_sample().get_display_lines(-3, 1) == ["0:0"]

    def test_empty(self) -> None:
        collection = LineCollection()
        assert collection.display_line_count() == 0
        assert collection.get_display_lines(0, 10) == []


# ---------------------------------------------------------------------------
# Trimming
# ---------------------------------------------------------------------------


class TestTrimFromStart:
    def test_returns_display_lines_removed(self) -> None:
        collection = LineCollection()
        collection.set_lines([make_line(0, 2), make_line(1, 1), make_line(2, 3)])
        assert collection.trim_from_start(2) == 3
        assert len(collection) == 1
        assert collection.display_line_count() == 3

    def test_clamps_to_size(self) -> None:
        collection = LineCollection()
        collection.set_lines([make_line(0, 2), make_line(1, 1)])
        assert collection.trim_from_start(10) == 3
        assert len(collection) == 0

    def test_non_positive_is_noop(self) -> None:
        collection = LineCollection()
        collection.set_lines([make_line(0)])
        assert collection.trim_from_start(0) == 0
        assert collection.trim_from_start(-1) == 0
        assert len(collection) == 1


# ---------------------------------------------------------------------------
# Scroll preservation: vendor toggle
# ---------------------------------------------------------------------------


class TestVendorToggleScroll:
    """Scroll index translation when vendor frames are hidden or shown."""

    def test_no_change_or_top(self) -> None:
        collection = vendor_sample()
        assert collection.scroll_index_for_vendor_toggle(False, False, 6) == 6
        assert collection.scroll_index_for_vendor_toggle(False, True, 0) == 0

    def test_hide_keeps_line_below_group(self) -> None:
        # C sits at 7 when shown and at 4 when hidden
        assert vendor_sample().scroll_index_for_vendor_toggle(False, True, 7) == 4

    def test_hide_stops_at_line_reaching_index(self) -> None:
        # V3 ends exactly at 6, so the scan stops before counting it
        assert vendor_sample().scroll_index_for_vendor_toggle(False, True, 6) == 4

    def test_hide_inside_first_line(self) -> None:
        assert vendor_sample().scroll_index_for_vendor_toggle(False, True, 1) == 1

    def test_show_expands_groups_above(self) -> None:
        collection = vendor_sample()
        collection.set_hide_vendor(True)
        assert collection.scroll_index_for_vendor_toggle(True, False, 4) == 7

    def test_hidden_shown_hidden_round_trip(self) -> None:
        for hidden_index in range(1, 5):
            collection = vendor_sample()
            collection.set_hide_vendor(True)
            before = collection.display_line_count()

            shown_index = collection.scroll_index_for_vendor_toggle(True, False, hidden_index)
            collection.set_hide_vendor(False)
            back = collection.scroll_index_for_vendor_toggle(False, True, shown_index)
            collection.set_hide_vendor(True)

            assert back == hidden_index
            assert collection.display_line_count() == before


# ---------------------------------------------------------------------------
# Scroll preservation: wrap toggle
# ---------------------------------------------------------------------------


class TestWrapToggleScroll:
    """Scroll index translation when wrapping is switched off or on.

    Wrapped: A=0-2, B=3, C=4-5, D=6. Truncated: A=0, B=1, C=2, D=3.
    """

    def test_no_change_or_top(self) -> None:
        collection = wrap_sample(True)
        assert collection.scroll_index_for_wrap_toggle(True, True, 6) == 6
        assert collection.scroll_index_for_wrap_toggle(True, False, 0) == 0

    def test_disable_removes_continuation_lines_above(self) -> None:
        assert wrap_sample(True).scroll_index_for_wrap_toggle(True, False, 6) == 3
        assert wrap_sample(True).scroll_index_for_wrap_toggle(True, False, 4) == 2

    def test_enable_adds_hidden_continuations_above(self) -> None:
        assert wrap_sample(False).scroll_index_for_wrap_toggle(False, True, 3) == 6
        assert wrap_sample(False).scroll_index_for_wrap_toggle(False, True, 2) == 4

    def test_hidden_vendor_lines_count_once(self) -> None:
        collection = LineCollection(hide_vendor=True)
        collection.set_lines([
            make_line(0, 2, group=1),
            make_line(1, 2, group=1),
            make_line(2, 2),
            make_line(3, 1),
        ])
        # Hidden members are scanned one line each, unlike the single marker
        # line they project to: 0, 1, then line 2 at 2-3
        assert collection.scroll_index_for_wrap_toggle(True, False, 4) == 3

    def test_round_trip_with_formatter(self) -> None:
        raw = ["short", "word " * 10, "short2", "word " * 6, "end"]
        formatter = LogFormatter(20)
        wrapped = formatter.format_lines(raw)
        assert wrapped.display_line_count() == 8

        index = wrapped.scroll_index_for_wrap_toggle(True, False, 7)
        formatter.set_wrap_lines(False)
        truncated = formatter.format_lines(raw)
        assert index == 4
        assert truncated.get_display_lines(index, 1) == ["end"]
        assert truncated.display_line_count() == 5

        back = truncated.scroll_index_for_wrap_toggle(False, True, index)
        formatter.set_wrap_lines(True)
        rewrapped = formatter.format_lines(raw)
        assert back == 7
        assert rewrapped.display_line_count() == 8
        assert rewrapped.get_display_lines(back, 1) == ["end"]

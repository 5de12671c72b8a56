"""Ordered collection of formatted lines with a cached display projection.

The projection (the flat list of strings actually drawn) is rebuilt lazily:
mutators only mark the collection dirty and the next read rebuilds. Reads on a
clean collection return the cache untouched.

The ``scroll_index_for_*`` helpers translate a scroll offset across a
presentation toggle so the same content stays at the top of the viewport.
They must be called *before* the toggle is applied, while the collection still
reflects the old presentation.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from vtail.formatter import BORDER_WIDTH
from vtail.line import Line
from vtail.utils import dim, pad_to_width

logger = logging.getLogger(__name__)


class LineCollection:
    """Raw :class:`Line` records plus their flattened display lines."""

    def __init__(self, content_width: int = 80, hide_vendor: bool = False) -> None:
        self._lines: list[Line] = []
        self._display_lines: list[str] = []
        self._hide_vendor = hide_vendor
        self._content_width = content_width
        self._dirty = True

    # -- mutators -----------------------------------------------------------

    def add_line(self, line: Line) -> None:
        self._lines.append(line)
        self._dirty = True

    def append_lines(self, lines: Iterable[Line]) -> None:
        self._lines.extend(lines)
        self._dirty = True

    def set_lines(self, lines: Iterable[Line]) -> None:
        self._lines = list(lines)
        self._dirty = True

    def clear(self) -> None:
        self._lines = []
        self._display_lines = []
        self._dirty = True

    def trim_from_start(self, count: int) -> int:
        """Drop the oldest *count* lines.

        Returns the number of display lines they occupied so the caller can
        shift its scroll offset.
        """
        if count <= 0 or not self._lines:
            return 0

        count = min(count, len(self._lines))
        removed = sum(line.wrap_count for line in self._lines[:count])
        del self._lines[:count]
        self._dirty = True
        logger.debug("Trimmed %d lines (%d display lines)", count, removed)
        return removed

    def set_hide_vendor(self, hide: bool) -> None:
        if self._hide_vendor != hide:
            self._hide_vendor = hide
            self._dirty = True

    def set_content_width(self, width: int) -> None:
        if self._content_width != width:
            self._content_width = width
            self._dirty = True

    # -- readers ------------------------------------------------------------

    @property
    def hide_vendor(self) -> bool:
        return self._hide_vendor

    @property
    def content_width(self) -> int:
        return self._content_width

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def lines(self) -> list[Line]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def display_line_count(self) -> int:
        self._process_if_dirty()
        return len(self._display_lines)

    def get_display_lines(self, start: int, count: int) -> list[str]:
        self._process_if_dirty()
        start = max(0, start)
        return self._display_lines[start : start + max(0, count)]

    def get_all_display_lines(self) -> list[str]:
        self._process_if_dirty()
        return self._display_lines

    # -- projection ---------------------------------------------------------

    def _process_if_dirty(self) -> None:
        if self._dirty:
            self._display_lines = self._build_display_lines()
            self._dirty = False

    def _build_display_lines(self) -> list[str]:
        if not self._hide_vendor:
            return [text for line in self._lines for text in line.formatted_lines]

        group_sizes = Counter(
            line.vendor_group_id for line in self._lines if line.is_collapsible_vendor
        )
        seen: set[int] = set()
        display: list[str] = []

        for line in self._lines:
            if line.is_collapsible_vendor:
                if line.vendor_group_id not in seen:
                    seen.add(line.vendor_group_id)
                    display.append(self._collapsed_marker(group_sizes[line.vendor_group_id]))
            else:
                display.extend(line.formatted_lines)

        return display

    def _collapsed_marker(self, count: int) -> str:
        marker = f"#… ({count} vendor frames)"
        return dim(" │ ") + pad_to_width(marker, self._content_width - BORDER_WIDTH) + dim(" │")

    # -- scroll preservation ------------------------------------------------

    def scroll_index_for_vendor_toggle(
        self, was_hiding: bool, now_hiding: bool, current_index: int
    ) -> int:
        """Return the scroll index that keeps the view stable across a
        hide-vendor toggle."""
        if was_hiding == now_hiding or current_index == 0:
            return current_index
        if now_hiding:
            return self._scroll_for_hide_vendor(current_index)
        return self._scroll_for_show_vendor(current_index)

    def _scroll_for_hide_vendor(self, current_index: int) -> int:
        seen_display = 0
        adjustment = 0
        groups_seen: set[int] = set()

        for line in self._lines:
            wrap_count = line.wrap_count
            # Stop at the first entry that reaches the scroll index, including
            # a vendor group that straddles it.
            if seen_display + wrap_count >= current_index:
                break

            if line.is_collapsible_vendor:
                if line.vendor_group_id not in groups_seen:
                    # First member becomes the single marker line
                    groups_seen.add(line.vendor_group_id)
                    adjustment += wrap_count - 1
                else:
                    adjustment += wrap_count
            seen_display += wrap_count

        return max(0, current_index - adjustment)

    def _scroll_for_show_vendor(self, current_index: int) -> int:
        group_totals: Counter[int] = Counter()
        for line in self._lines:
            if line.is_collapsible_vendor:
                group_totals[line.vendor_group_id] += line.wrap_count

        seen_display = 0
        lines_to_add = 0
        groups_seen: set[int] = set()

        for line in self._lines:
            if line.is_collapsible_vendor:
                if line.vendor_group_id in groups_seen:
                    continue
                groups_seen.add(line.vendor_group_id)
                # Currently one marker line, expands to the whole group
                if seen_display + 1 >= current_index:
                    break
                lines_to_add += group_totals[line.vendor_group_id] - 1
                seen_display += 1
            else:
                if seen_display + line.wrap_count >= current_index:
                    break
                seen_display += line.wrap_count

        return current_index + lines_to_add

    def scroll_index_for_wrap_toggle(
        self, was_wrapping: bool, now_wrapping: bool, current_index: int
    ) -> int:
        """Return the scroll index that keeps the view stable across a
        wrap-mode toggle."""
        if was_wrapping == now_wrapping or current_index == 0:
            return current_index
        if was_wrapping:
            return self._scroll_for_disable_wrap(current_index)
        return self._scroll_for_enable_wrap(current_index)

    def _is_hidden_vendor(self, line: Line) -> bool:
        return self._hide_vendor and line.is_collapsible_vendor

    def _scroll_for_disable_wrap(self, current_index: int) -> int:
        seen_display = 0
        continuation_above = 0

        for line in self._lines:
            if self._is_hidden_vendor(line):
                seen_display += 1
                if seen_display >= current_index:
                    break
                continue

            wrap_count = line.wrap_count
            if seen_display + wrap_count >= current_index:
                # Only the continuation lines above the index disappear
                continuation_above += max(0, current_index - seen_display - 1)
                break

            seen_display += wrap_count
            continuation_above += wrap_count - 1

        return max(0, current_index - continuation_above)

    def _scroll_for_enable_wrap(self, current_index: int) -> int:
        seen_display = 0
        lines_to_add = 0

        for line in self._lines:
            if self._is_hidden_vendor(line):
                seen_display += 1
                if seen_display >= current_index:
                    break
                continue

            wrap_count = line.wrap_count
            # Only lines entirely above the index expand above it
            if seen_display + wrap_count > current_index:
                break

            seen_display += wrap_count
            lines_to_add += max(0, line.full_wrap_count - wrap_count)

        return current_index + lines_to_add

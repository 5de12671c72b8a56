"""Interactive log viewer: drives the formatter and collection and draws frames.

One asyncio task runs the whole viewer. Each frame drains new lines from the
tail feed, reformats and redraws only when something changed, then sleeps for
the frame interval. Keyboard input and resize notifications arrive through
terminal callbacks on the same loop and only mutate state and set the dirty
flag.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Callable

from vtail.collection import LineCollection
from vtail.formatter import LogFormatter
from vtail.keys import ViewerAction, ViewerKeybindings, split_sequences
from vtail.settings import ViewerSettings
from vtail.tail import TailFeed
from vtail.terminal import CLEAR_LINE, CLEAR_TO_EOL, Terminal
from vtail.utils import slice_by_column, truncate_to_width

logger = logging.getLogger(__name__)

_REVERSE = "\x1b[7m"
_REVERSE_OFF = "\x1b[27m"
_HOME = "\x1b[H"


class LogViewer:
    """Scrollable, follow-mode view over a tailed log file."""

    def __init__(
        self,
        path: str,
        terminal: Terminal,
        settings: ViewerSettings | None = None,
        keybindings: ViewerKeybindings | None = None,
        feed_factory: Callable[[str, int], TailFeed] | None = None,
    ) -> None:
        self.path = path
        self.terminal = terminal
        self.settings = settings or ViewerSettings()
        self.keybindings = keybindings or ViewerKeybindings()
        self._feed_factory = feed_factory or (lambda p, n: TailFeed(p, tail_lines=n))
        self.feed: TailFeed | None = None

        self.hide_vendor = self.settings.hide_vendor
        self.wrap_lines = self.settings.wrap_lines
        self.following = True
        self.running = False
        self.scroll_index = 0
        self.dirty = True

        self.raw_lines: list[str] = []
        self.formatter = LogFormatter(self.content_width, wrap_lines=self.wrap_lines)
        self.collection: LineCollection | None = None

        self._last_formatted_index = 0
        self._needs_rebuild = True
        self._last_content_width = self.content_width
        self._last_wrap_lines = self.wrap_lines

        self._actions: dict[ViewerAction, Callable[[], None]] = {
            "toggleVendor": self.toggle_vendor,
            "toggleWrap": self.toggle_wrap,
            "truncateFile": self.truncate_file,
            "toggleFollow": self.toggle_follow,
            "quit": self.quit,
            "scrollUp": self.scroll_up,
            "scrollDown": self.scroll_down,
            "pageUp": self.page_up,
            "pageDown": self.page_down,
            "scrollTop": self.scroll_to_top,
            "scrollBottom": self.scroll_to_bottom,
        }

    # -- geometry -----------------------------------------------------------

    @property
    def content_width(self) -> int:
        return self.terminal.columns

    @property
    def content_height(self) -> int:
        # Status bar on top, hotkey bar at the bottom
        return max(1, self.terminal.rows - 2)

    @property
    def display_line_count(self) -> int:
        return self.collection.display_line_count() if self.collection is not None else 0

    @property
    def max_scroll(self) -> int:
        return max(0, self.display_line_count - self.content_height)

    # -- ingesting and formatting -------------------------------------------

    def ingest(self, lines: list[str]) -> None:
        """Append raw lines, trimming the oldest once over the threshold."""
        if not lines:
            return
        self.raw_lines.extend(lines)
        if len(self.raw_lines) > self.settings.trim_threshold:
            self._trim_old_lines()
        self.dirty = True

    def _trim_old_lines(self) -> None:
        remove_count = len(self.raw_lines) - self.settings.max_lines
        if remove_count <= 0:
            return

        del self.raw_lines[:remove_count]

        removed_display = 0
        if self.collection is not None:
            removed_display = self.collection.trim_from_start(remove_count)

        self.scroll_index = max(0, self.scroll_index - removed_display)
        self._last_formatted_index = max(0, self._last_formatted_index - remove_count)
        # Group ids and original indexes must be recomputed from scratch
        self._needs_rebuild = True
        logger.debug("Trimmed %d raw lines", remove_count)

    def _needs_full_rebuild(self) -> bool:
        width_changed = self._last_content_width != self.content_width
        wrap_changed = self._last_wrap_lines != self.wrap_lines
        if self._needs_rebuild or self.collection is None or width_changed or wrap_changed:
            self._needs_rebuild = False
            self._last_content_width = self.content_width
            self._last_wrap_lines = self.wrap_lines
            return True
        return False

    def process_lines(self) -> None:
        """Bring the collection up to date with raw lines and settings."""
        self.formatter.set_content_width(self.content_width)
        self.formatter.set_wrap_lines(self.wrap_lines)

        if self._needs_full_rebuild():
            self.collection = self.formatter.format_lines(self.raw_lines)
            self._last_formatted_index = len(self.raw_lines)
            logger.debug("Rebuilt %d lines at width %d", len(self.raw_lines), self.content_width)
        elif self._last_formatted_index < len(self.raw_lines):
            assert self.collection is not None
            self.collection.append_lines(
                self.formatter.format_new_lines(self.raw_lines, self._last_formatted_index)
            )
            self._last_formatted_index = len(self.raw_lines)

        assert self.collection is not None
        self.collection.set_content_width(self.content_width)
        self.collection.set_hide_vendor(self.hide_vendor)

        if self.following:
            self.scroll_index = self.max_scroll

    # -- rendering ----------------------------------------------------------

    def status_bar(self) -> str:
        parts = [
            os.path.basename(self.path),
            f"Lines: {self.display_line_count}",
            "VENDOR: hidden" if self.hide_vendor else "VENDOR: shown",
            "WRAP: on" if self.wrap_lines else "WRAP: off",
        ]
        if self.following:
            parts.append("FOLLOWING")
        status = " " + " | ".join(parts) + " "
        return _REVERSE + truncate_to_width(status, self.terminal.columns, pad=True) + _REVERSE_OFF

    def hotkey_bar(self) -> str:
        keys = self.keybindings.get_keys
        hotkeys = [
            (keys("toggleVendor"), "show vendor" if self.hide_vendor else "hide vendor"),
            (keys("toggleWrap"), "disable wrapping" if self.wrap_lines else "enable wrapping"),
            (keys("truncateFile"), "truncate file"),
            (keys("toggleFollow"), "unfollow" if self.following else "follow"),
            (keys("quit"), "quit"),
        ]
        # First binding of each action; unbound actions are left off the bar
        bar = " " + "  ".join(f"{bound[0]} {label}" for bound, label in hotkeys if bound)
        return _REVERSE + truncate_to_width(bar, self.terminal.columns, pad=True) + _REVERSE_OFF

    def visible_lines(self) -> list[str]:
        if self.collection is None:
            return []
        return self.collection.get_display_lines(self.scroll_index, self.content_height)

    def render(self) -> None:
        cols = self.terminal.columns
        out = [_HOME, self.status_bar(), "\r\n"]

        visible = self.visible_lines()
        for line in visible:
            # Already sized by the formatter; clip only if the terminal shrank
            out.append(CLEAR_LINE + slice_by_column(line, 0, cols) + "\r\n")
        for _ in range(self.content_height - len(visible)):
            out.append(CLEAR_TO_EOL + "\r\n")

        self.terminal.write("".join(out))
        self.terminal.move_to(self.terminal.rows, 1)
        self.terminal.write(self.hotkey_bar())

    # -- input --------------------------------------------------------------

    def handle_input(self, data: str) -> None:
        for sequence in split_sequences(data):
            action = self.keybindings.action_for(sequence)
            if action is not None:
                self._actions[action]()

    def handle_resize(self) -> None:
        self.formatter.set_content_width(self.content_width)
        self.scroll_index = min(self.scroll_index, self.max_scroll)
        self.dirty = True

    # -- actions ------------------------------------------------------------

    def toggle_vendor(self) -> None:
        was_hiding = self.hide_vendor
        self.hide_vendor = not self.hide_vendor
        if self.collection is not None:
            self.scroll_index = self.collection.scroll_index_for_vendor_toggle(
                was_hiding, self.hide_vendor, self.scroll_index
            )
            self.collection.set_hide_vendor(self.hide_vendor)
        self.dirty = True

    def toggle_wrap(self) -> None:
        was_wrapping = self.wrap_lines
        self.wrap_lines = not self.wrap_lines
        if self.collection is not None:
            self.scroll_index = self.collection.scroll_index_for_wrap_toggle(
                was_wrapping, self.wrap_lines, self.scroll_index
            )
        self.dirty = True

    def truncate_file(self) -> None:
        try:
            Path(self.path).write_text("")
        except OSError as e:
            logger.error("Could not truncate %s: %s", self.path, e)
            return
        self.raw_lines = []
        if self.collection is not None:
            self.collection.clear()
        self.scroll_index = 0
        self._last_formatted_index = 0
        self._needs_rebuild = True
        self.dirty = True
        logger.info("Truncated %s", self.path)

    def toggle_follow(self) -> None:
        self.following = not self.following
        if self.following:
            self.scroll_to_bottom()
        self.dirty = True

    def scroll_up(self, lines: int = 1) -> None:
        self.following = False
        self.scroll_index = max(0, self.scroll_index - lines)
        self.dirty = True

    def scroll_down(self, lines: int = 1) -> None:
        max_scroll = self.max_scroll
        self.scroll_index = min(max_scroll, self.scroll_index + lines)
        if self.scroll_index >= max_scroll:
            self.following = True
        self.dirty = True

    def page_up(self) -> None:
        self.scroll_up(max(1, self.content_height - 1))

    def page_down(self) -> None:
        self.scroll_down(max(1, self.content_height - 1))

    def scroll_to_top(self) -> None:
        self.following = False
        self.scroll_index = 0
        self.dirty = True

    def scroll_to_bottom(self) -> None:
        self.scroll_index = self.max_scroll
        self.dirty = True

    def quit(self) -> None:
        self.running = False

    # -- main loop ----------------------------------------------------------

    def tick(self) -> None:
        """One frame: pull new lines, then reformat and redraw if needed."""
        if self.feed is not None:
            self.ingest(self.feed.drain())
        if self.dirty:
            self.process_lines()
            self.render()
            self.dirty = False

    async def run(self) -> int:
        if not self.terminal.is_interactive():
            print("Error: vtail requires an interactive terminal", file=sys.stderr)
            return 1

        Path(self.path).touch(exist_ok=True)

        self.running = True
        self.feed = self._feed_factory(self.path, self.settings.tail_lines)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.quit)
        try:
            self.terminal.start(self.handle_input, self.handle_resize)
            self.terminal.enter_alternate_screen()
            self.terminal.clear_screen()
            self.terminal.hide_cursor()
            await self.feed.start()

            while self.running:
                self.tick()
                await asyncio.sleep(self.settings.frame_interval)
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.feed.stop()
            self.terminal.stop()

        return 0

"""Terminal abstraction for the full-screen viewer.

``Terminal`` is the surface the viewer draws on. ``ProcessTerminal`` backs it
with the controlling tty: raw mode, the alternate screen and SIGWINCH resize
notifications. Keystrokes are read by a reader registered on the running
asyncio loop, so input handling stays on the viewer's single thread.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import termios
import tty
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Escape sequences
# ---------------------------------------------------------------------------

ALT_SCREEN_ON = "\x1b[?1049h"
ALT_SCREEN_OFF = "\x1b[?1049l"
CURSOR_HIDE = "\x1b[?25l"
CURSOR_SHOW = "\x1b[?25h"
CLEAR_LINE = "\x1b[2K"
CLEAR_TO_EOL = "\x1b[K"
CLEAR_SCREEN = "\x1b[2J\x1b[H"

_DEFAULT_SIZE = os.terminal_size((80, 24))
_READ_SIZE = 1024


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """What the viewer needs from a terminal."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    def is_interactive(self) -> bool: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def move_to(self, row: int, col: int) -> None: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_screen(self) -> None: ...

    def enter_alternate_screen(self) -> None: ...

    def exit_alternate_screen(self) -> None: ...


# ---------------------------------------------------------------------------
# ProcessTerminal
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal on the process's own stdin/stdout."""

    def __init__(self) -> None:
        self._on_input: Callable[[str], None] | None = None
        self._on_resize: Callable[[], None] | None = None
        self._input_fd: int | None = None
        self._saved_attrs: list | None = None
        self._saved_winch: signal.Handlers | None = None
        self._in_alt_screen = False

    # -- geometry -----------------------------------------------------------

    def _size(self) -> os.terminal_size:
        try:
            return os.get_terminal_size(sys.stdout.fileno())
        except (ValueError, OSError):
            return _DEFAULT_SIZE

    @property
    def columns(self) -> int:
        return self._size().columns

    @property
    def rows(self) -> int:
        return self._size().lines

    def is_interactive(self) -> bool:
        try:
            return sys.stdin.isatty() and sys.stdout.isatty()
        except (ValueError, AttributeError):
            return False

    # -- lifecycle ----------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
    ) -> None:
        """Switch the tty to raw mode and begin delivering input and resizes."""
        self._on_input = on_input
        self._on_resize = on_resize

        fd = sys.stdin.fileno()
        self._saved_attrs = termios.tcgetattr(fd)
        tty.setraw(fd)

        self._saved_winch = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, lambda signum, frame: self._resized())

        self._attach_input(fd)

    def stop(self) -> None:
        """Undo everything ``start`` and the viewer changed; idempotent."""
        self._detach_input()

        if self._saved_winch is not None:
            signal.signal(signal.SIGWINCH, self._saved_winch)
            self._saved_winch = None

        if self._in_alt_screen:
            self.show_cursor()
            self.exit_alternate_screen()

        if self._saved_attrs is not None:
            try:
                termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, self._saved_attrs)
            except termios.error:
                logger.warning("Could not restore terminal attributes")
            self._saved_attrs = None

        self._on_input = None
        self._on_resize = None

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        try:
            sys.stdout.write(data)
            sys.stdout.flush()
        except OSError:
            # The tty went away; nothing left to draw on
            pass

    def move_to(self, row: int, col: int) -> None:
        """Move the cursor to 1-based *row*, *col*."""
        self.write(f"\x1b[{row};{col}H")

    def hide_cursor(self) -> None:
        self.write(CURSOR_HIDE)

    def show_cursor(self) -> None:
        self.write(CURSOR_SHOW)

    def clear_screen(self) -> None:
        self.write(CLEAR_SCREEN)

    def enter_alternate_screen(self) -> None:
        self._in_alt_screen = True
        self.write(ALT_SCREEN_ON)

    def exit_alternate_screen(self) -> None:
        self._in_alt_screen = False
        self.write(ALT_SCREEN_OFF)

    # -- input --------------------------------------------------------------

    def _attach_input(self, fd: int) -> None:
        if self._input_fd is not None:
            return
        try:
            asyncio.get_running_loop().add_reader(fd, self._read_input)
        except RuntimeError:
            logger.warning("No running event loop; keyboard input disabled")
            return
        self._input_fd = fd

    def _detach_input(self) -> None:
        if self._input_fd is None:
            return
        try:
            asyncio.get_running_loop().remove_reader(self._input_fd)
        except (RuntimeError, ValueError):
            logger.debug("Input reader already gone")
        self._input_fd = None

    def _read_input(self) -> None:
        if self._input_fd is None:
            return
        try:
            data = os.read(self._input_fd, _READ_SIZE)
        except OSError as e:
            logger.debug("stdin read failed: %s", e)
            return
        if data and self._on_input is not None:
            self._on_input(data.decode("utf-8", errors="replace"))

    def _resized(self) -> None:
        if self._on_resize is not None:
            self._on_resize()

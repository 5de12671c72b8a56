"""Stateful log line classifier and formatter.

Turns raw log lines into :class:`~vtail.line.Line` records. Stack traces are
drawn as a box::

     ╭─Trace──────────────────────╮
     │ #00 /app/Http/Kernel.php(1) │
     ╰════════════════════════════╯

Consecutive vendor frames share a group id so the collection can collapse
them. The parser state that tracks trace and group membership lives in a
:class:`FormatterState` owned by the formatter and is only reset explicitly
(fresh file, truncation), never between incremental batches.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from vtail.line import Line
from vtail.utils import RESET, dim, pad_to_width, strip_ansi, visible_width, wrap_text

if TYPE_CHECKING:
    from vtail.collection import LineCollection

# ---------------------------------------------------------------------------
# Markers and patterns
# ---------------------------------------------------------------------------

EXCEPTION_MARKER = '{"exception":"[object] '
TRACE_MARKER = "[stacktrace]"
FOOTER_MARKER = '"}'

_FRAME_RE = re.compile(r"#[0-9]+ ")
_ORDINAL_PAD_RE = re.compile(r"^(\x1b\[0m)?#(\d)(?!\d)")
_FRAME_PARTS_RE = re.compile(r"^(\x1b\[0m)?(#\d+)(.*?)(:.*)?$")
_BOUND_METHOD_APP_RE = re.compile(r"BoundMethod\.php\([0-9]+\): App")

# " │ " + content + " │"
BORDER_WIDTH = 5
CONTINUATION_INDENT = 4

_ELLIPSIS = dim(" ...")
_ELLIPSIS_WIDTH = visible_width(_ELLIPSIS)


# ---------------------------------------------------------------------------
# Parser state and classification
# ---------------------------------------------------------------------------


@dataclass
class FormatterState:
    """Cross-line parser state for one formatter pass."""

    vendor_group_id: int = 0
    in_vendor_group: bool = False
    in_stack_trace: bool = False

    def enter_vendor_group(self) -> int:
        """Join the current vendor group, opening a new one if needed."""
        if not self.in_vendor_group:
            self.vendor_group_id += 1
            self.in_vendor_group = True
        return self.vendor_group_id

    def end_vendor_group(self) -> None:
        self.in_vendor_group = False

    @property
    def current_group(self) -> int | None:
        return self.vendor_group_id if self.in_vendor_group else None


class LineKind(enum.Enum):
    FOOTER = "footer"
    EXCEPTION_HEADER = "exception_header"
    TRACE_HEADER = "trace_header"
    FRAME = "frame"
    CONTINUATION = "continuation"
    PLAIN = "plain"


def _is_footer(raw: str, state: FormatterState) -> bool:
    return FOOTER_MARKER in raw and strip_ansi(raw).strip() == FOOTER_MARKER


def _is_exception_header(raw: str, state: FormatterState) -> bool:
    return EXCEPTION_MARKER in raw


def _is_trace_header(raw: str, state: FormatterState) -> bool:
    return TRACE_MARKER in raw


def _is_frame(raw: str, state: FormatterState) -> bool:
    return _FRAME_RE.search(raw) is not None


def _is_continuation(raw: str, state: FormatterState) -> bool:
    return state.in_stack_trace


# First match wins.
CLASSIFIERS: tuple[tuple[LineKind, Callable[[str, FormatterState], bool]], ...] = (
    (LineKind.FOOTER, _is_footer),
    (LineKind.EXCEPTION_HEADER, _is_exception_header),
    (LineKind.TRACE_HEADER, _is_trace_header),
    (LineKind.FRAME, _is_frame),
    (LineKind.CONTINUATION, _is_continuation),
)


def classify(raw: str, state: FormatterState) -> LineKind:
    """Return the kind of *raw* given the current parser *state*."""
    for kind, predicate in CLASSIFIERS:
        if predicate(raw, state):
            return kind
    return LineKind.PLAIN


def is_vendor_frame(line: str) -> bool:
    """Return ``True`` if the stack frame *line* belongs to vendor code.

    Paths under ``/vendor/`` are vendor unless the frame is the container's
    ``BoundMethod.php`` calling into ``App\\`` code. The ``{main}`` execution
    root is always vendor.
    """
    plain = strip_ansi(line)
    return (
        "/vendor/" in plain and _BOUND_METHOD_APP_RE.search(plain) is None
    ) or plain.endswith("{main}")


def _pad_ordinal(line: str) -> str:
    """Zero-pad a single-digit frame ordinal: ``#3`` becomes ``#03``."""
    return _ORDINAL_PAD_RE.sub(lambda m: f"{m.group(1) or ''}#0{m.group(2)}", line)


def _highlight_frame(line: str) -> str:
    """Dim the ordinal and the ``: call()`` suffix, leaving the path plain."""

    def _replace(m: re.Match[str]) -> str:
        return f"\x1b[2m{m.group(2)}{RESET}{m.group(3)}\x1b[2m{m.group(4) or ''}{RESET}"

    return _FRAME_PARTS_RE.sub(_replace, line, count=1)


# ---------------------------------------------------------------------------
# LogFormatter
# ---------------------------------------------------------------------------


class LogFormatter:
    """Classify, wrap and border raw log lines."""

    def __init__(self, content_width: int, wrap_lines: bool = True) -> None:
        self.content_width = content_width
        self.wrap_lines = wrap_lines
        self.state = FormatterState()
        self._handlers: dict[LineKind, Callable[[str, int], Line]] = {
            LineKind.FOOTER: self._format_footer,
            LineKind.EXCEPTION_HEADER: self._format_exception_header,
            LineKind.TRACE_HEADER: self._format_trace_header,
            LineKind.FRAME: self._format_frame,
            LineKind.CONTINUATION: self._format_continuation,
            LineKind.PLAIN: self._format_plain,
        }

    def set_content_width(self, width: int) -> None:
        self.content_width = width

    def set_wrap_lines(self, wrap_lines: bool) -> None:
        self.wrap_lines = wrap_lines

    def reset(self) -> None:
        """Forget trace and vendor-group state before a fresh pass."""
        self.state = FormatterState()

    # -- batches ------------------------------------------------------------

    def format_lines(self, raw_lines: list[str]) -> LineCollection:
        """Reset state and format every raw line into a new collection."""
        from vtail.collection import LineCollection

        self.reset()
        collection = LineCollection(content_width=self.content_width)
        collection.set_lines(
            [self.format_line(raw, index) for index, raw in enumerate(raw_lines)]
        )
        return collection

    def format_new_lines(self, raw_lines: list[str], start_index: int) -> list[Line]:
        """Format ``raw_lines[start_index:]`` without resetting state."""
        return [
            self.format_line(raw_lines[index], index)
            for index in range(max(0, start_index), len(raw_lines))
        ]

    # -- single line --------------------------------------------------------

    def format_line(self, raw: str, index: int) -> Line:
        return self._handlers[classify(raw, self.state)](raw, index)

    @property
    def trace_content_width(self) -> int:
        return self.content_width - BORDER_WIDTH

    def _format_footer(self, raw: str, index: int) -> Line:
        self.state.end_vendor_group()
        self.state.in_stack_trace = False
        border = " ╰" + "═" * (self.content_width - 3) + "╯"
        return Line(content=raw, formatted_lines=[dim(border)], original_index=index)

    def _format_exception_header(self, raw: str, index: int) -> Line:
        self.state.end_vendor_group()
        message, _, exception = raw.partition(EXCEPTION_MARKER)

        message_lines, message_count = self.wrap(message, self.content_width)
        exception_lines, exception_count = self.wrap(exception, self.content_width - 1)

        return Line(
            content=raw,
            formatted_lines=message_lines + [" " + line for line in exception_lines],
            original_index=index,
            full_wrap_count=message_count + exception_count,
        )

    def _format_trace_header(self, raw: str, index: int) -> Line:
        self.state.end_vendor_group()
        self.state.in_stack_trace = True
        border = " ╭─Trace" + "─" * (self.content_width - 9) + "╮"
        return Line(
            content=raw,
            formatted_lines=[dim(border)],
            original_index=index,
            is_stack_frame=True,
        )

    def _format_frame(self, raw: str, index: int) -> Line:
        line = _pad_ordinal(raw)

        vendor = is_vendor_frame(line)
        group_id = None
        if vendor:
            group_id = self.state.enter_vendor_group()
        else:
            self.state.end_vendor_group()

        boxed, full_count = self._box(_highlight_frame(line))
        return Line(
            content=raw,
            formatted_lines=boxed,
            original_index=index,
            full_wrap_count=full_count,
            is_stack_frame=True,
            is_vendor_frame=vendor,
            vendor_group_id=group_id,
        )

    def _format_continuation(self, raw: str, index: int) -> Line:
        # The log writer pre-wrapped a long frame: stay in the current group
        boxed, full_count = self._box(raw)
        return Line(
            content=raw,
            formatted_lines=boxed,
            original_index=index,
            full_wrap_count=full_count,
            is_stack_frame=True,
            is_vendor_frame=self.state.in_vendor_group,
            vendor_group_id=self.state.current_group,
        )

    def _format_plain(self, raw: str, index: int) -> Line:
        self.state.end_vendor_group()
        lines, full_count = self.wrap(raw, self.content_width)
        return Line(
            content=raw,
            formatted_lines=lines,
            original_index=index,
            full_wrap_count=full_count,
        )

    def _box(self, line: str) -> tuple[list[str], int]:
        width = self.trace_content_width
        wrapped, full_count = self.wrap(line, width, CONTINUATION_INDENT)
        left = dim(" │ ")
        right = dim(" │")
        return [left + pad_to_width(part, width) + right for part in wrapped], full_count

    # -- wrapping -----------------------------------------------------------

    def wrap(
        self,
        line: str,
        width: int,
        continuation_indent: int = 0,
    ) -> tuple[list[str], int]:
        """Wrap *line* and return ``(physical_lines, full_wrap_count)``.

        With wrapping disabled a multi-line result collapses to its first
        segment plus a dim ellipsis, while the count still reports how many
        lines wrapping would produce.
        """
        if width <= 0:
            return [line], 1

        wrapped = self.wrap_line(line, width, continuation_indent)
        full_count = len(wrapped)

        if not self.wrap_lines and full_count > 1:
            available = width - _ELLIPSIS_WIDTH
            first = wrap_text(wrapped[0], available)[0] if available > 0 else ""
            return [first + _ELLIPSIS], full_count

        return wrapped, full_count

    @staticmethod
    def wrap_line(line: str, width: int, continuation_indent: int = 0) -> list[str]:
        """Word-wrap *line*, indenting continuation lines.

        Continuation lines hold ``width - continuation_indent`` columns of
        content after the indent, so every physical line fits in *width*.
        Whitespace-only continuation fragments are dropped.
        """
        if width <= 0:
            return [line]

        pieces = wrap_text(line, width, width - continuation_indent)
        indent = " " * continuation_indent
        return [pieces[0]] + [
            indent + piece for piece in pieces[1:] if strip_ansi(piece).strip()
        ]

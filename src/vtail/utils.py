"""Terminal text utilities: ANSI handling, width measurement, word wrapping.

Every helper here measures *visible* columns: escape sequences are zero
width, tabs count as three columns and wide graphemes (CJK, emoji) as two.
Malformed escape sequences never raise; a lone ``ESC`` is simply a zero-width
character that is passed through.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# Regex patterns for ANSI / OSC / APC sequences
# ---------------------------------------------------------------------------

# CSI: ESC[ <parameter bytes> <intermediate bytes> <final byte>
_CSI_PATTERN = r"\x1b\[[0-?]*[ -/]*[@-~]"
# OSC (hyperlinks, titles): ESC] ... (BEL | ST)
_OSC_PATTERN = r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
# APC: ESC_ ... (BEL | ST)
_APC_PATTERN = r"\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"

_STRIP_RE = re.compile(f"{_CSI_PATTERN}|{_OSC_PATTERN}|{_APC_PATTERN}")
_CODE_AT_RE = re.compile(f"(?:{_CSI_PATTERN}|{_OSC_PATTERN}|{_APC_PATTERN})")
_SGR_RE = re.compile(r"^\x1b\[([0-9;]*)m$")

DIM = "\x1b[2m"
DIM_OFF = "\x1b[22m"
RESET = "\x1b[0m"

_TAB = "   "

# ---------------------------------------------------------------------------
# Width cache (capped at 512 entries)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def _grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Control characters and marks are zero width, emoji sequences (VS16, ZWJ,
    skin tones, flags) are two columns, everything else is delegated to
    wcwidth for the first code point.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        if cp in (0xFE0F, 0x200D):
            return 2
        if 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first_cp = ord(g[0])
    if first_cp >= 0x1F000 or 0x2600 <= first_cp <= 0x27BF:
        return 2

    cat = unicodedata.category(g[0])
    if cat.startswith("M") or cat == "Cf":
        return 0

    return max(_wcwidth.wcwidth(g[0]), 0)


# ---------------------------------------------------------------------------
# Measuring and stripping
# ---------------------------------------------------------------------------


def strip_ansi(text: str) -> str:
    """Remove every recognised escape sequence from *text*."""
    return _STRIP_RE.sub("", text)


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*."""
    if not text:
        return 0

    stripped = strip_ansi(text)
    if not stripped:
        return 0

    stripped = stripped.replace("\t", _TAB)

    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(_grapheme_width(g) for g in grapheme.graphemes(stripped))
    return _cache_width(stripped, total)


def extract_ansi_code(text: str, pos: int) -> str | None:
    """Return the escape sequence starting at *pos*, or ``None``.

    An ``ESC`` that does not open a complete CSI, OSC or APC sequence is not
    a code; callers treat it as an ordinary zero-width character.
    """
    if pos >= len(text) or text[pos] != "\x1b":
        return None
    match = _CODE_AT_RE.match(text, pos)
    if match is None:
        return None
    return match.group(0)


def dim(text: str) -> str:
    return f"{DIM}{text}{DIM_OFF}"


# ---------------------------------------------------------------------------
# AnsiCodeTracker
# ---------------------------------------------------------------------------

# SGR parameter -> (slot, code to re-apply or None to clear)
_SGR_SET = {
    1: "bold",
    2: "dim",
    3: "italic",
    4: "underline",
    5: "blink",
    7: "inverse",
    8: "hidden",
    9: "strikethrough",
}
_SGR_CLEAR = {
    22: ("bold", "dim"),
    23: ("italic",),
    24: ("underline",),
    25: ("blink",),
    27: ("inverse",),
    28: ("hidden",),
    29: ("strikethrough",),
    39: ("fg",),
    49: ("bg",),
}
_SLOT_ORDER = (
    "bold",
    "dim",
    "italic",
    "underline",
    "blink",
    "inverse",
    "hidden",
    "strikethrough",
    "fg",
    "bg",
)


class AnsiCodeTracker:
    """Track active SGR attributes so they can be re-opened after a line break."""

    def __init__(self) -> None:
        self._active: dict[str, str] = {}

    def process(self, code: str) -> None:
        """Update tracked state from a sequence like ``\\x1b[1;31m``.

        Non-SGR sequences and unparseable parameters are ignored.
        """
        match = _SGR_RE.match(code)
        if match is None:
            return

        params = match.group(1).split(";") if match.group(1) else ["0"]
        i = 0
        while i < len(params):
            val = int(params[i]) if params[i] else 0

            if val == 0:
                self._active.clear()
            elif val in _SGR_SET:
                self._active[_SGR_SET[val]] = f"\x1b[{val}m"
            elif val in _SGR_CLEAR:
                for slot in _SGR_CLEAR[val]:
                    self._active.pop(slot, None)
            elif 30 <= val <= 37 or 90 <= val <= 97:
                self._active["fg"] = f"\x1b[{val}m"
            elif 40 <= val <= 47 or 100 <= val <= 107:
                self._active["bg"] = f"\x1b[{val}m"
            elif val in (38, 48):
                slot = "fg" if val == 38 else "bg"
                mode = params[i + 1] if i + 1 < len(params) else ""
                if mode == "5" and i + 2 < len(params):
                    self._active[slot] = f"\x1b[{val};5;{params[i + 2]}m"
                    i += 2
                elif mode == "2" and i + 4 < len(params):
                    rgb = ";".join(params[i + 2 : i + 5])
                    self._active[slot] = f"\x1b[{val};2;{rgb}m"
                    i += 4
                else:
                    i += 1
            i += 1

    def get_active_codes(self) -> str:
        """Return a string of ANSI codes that reactivate the current state."""
        return "".join(self._active[s] for s in _SLOT_ORDER if s in self._active)

    def has_active_codes(self) -> bool:
        return bool(self._active)


# ---------------------------------------------------------------------------
# Padding, truncation and slicing
# ---------------------------------------------------------------------------


def _segments(text: str) -> list[tuple[str, int | None]]:
    """Split *text* into escape codes and grapheme clusters.

    Codes come back as ``(code, None)``, clusters as ``(text, width)`` with
    tabs already expanded, so every caller measures exactly like
    :func:`visible_width`.
    """
    segments: list[tuple[str, int | None]] = []
    run_start = 0
    i = 0

    def flush(end: int) -> None:
        for g in grapheme.graphemes(text[run_start:end]):
            if g == "\t":
                segments.append((_TAB, 3))
            else:
                segments.append((g, _grapheme_width(g)))

    while i < len(text):
        code = extract_ansi_code(text, i)
        if code is None:
            i += 1
            continue
        flush(i)
        segments.append((code, None))
        i += len(code)
        run_start = i
    flush(len(text))
    return segments


def pad_to_width(text: str, width: int) -> str:
    """Right-pad *text* with spaces to *width* columns; never truncates."""
    return text + " " * max(0, width - visible_width(text))


def _take_columns(text: str, max_cols: int) -> str:
    """Return a prefix of *text* that fits within *max_cols* columns.

    Escape sequences are kept, including any that trail the cut point.
    """
    result: list[str] = []
    cols = 0
    full = False

    for segment, width in _segments(text):
        if width is None:
            result.append(segment)
            continue
        if full:
            continue
        if cols + width > max_cols:
            full = True
            continue
        result.append(segment)
        cols += width

    return "".join(result)


def truncate_to_width(
    text: str,
    max_width: int,
    ellipsis: str = "...",
    pad: bool = False,
) -> str:
    """Truncate *text* to fit within *max_width* visible columns.

    When truncation happens *ellipsis* is appended (and counts towards the
    width). With *pad* the result is right-padded to exactly *max_width*.
    """
    if max_width <= 0:
        return ""

    if visible_width(text) <= max_width:
        return pad_to_width(text, max_width) if pad else text

    target_width = max_width - visible_width(ellipsis)
    if target_width <= 0:
        return _take_columns(ellipsis, max_width)

    result = _take_columns(text, target_width) + ellipsis
    return pad_to_width(result, max_width) if pad else result


def slice_by_column(line: str, start_col: int, length: int) -> str:
    """Extract *length* visible columns of *line* starting at *start_col*.

    Wide characters straddling either boundary are dropped. Escape sequences
    inside or after the window are preserved so styling stays balanced.
    """
    if length <= 0:
        return ""

    end_col = start_col + length
    result: list[str] = []
    col = 0

    for segment, width in _segments(line):
        if width is None:
            if col >= start_col:
                result.append(segment)
            continue
        if col >= start_col and col + width <= end_col:
            result.append(segment)
        col += width

    return "".join(result)


# ---------------------------------------------------------------------------
# wrap_text
# ---------------------------------------------------------------------------


@dataclass
class _Cell:
    """One grapheme cluster plus the escape codes that precede it."""

    text: str
    width: int
    codes: list[str] = field(default_factory=list)

    @property
    def is_space(self) -> bool:
        return self.text == " " or self.text == _TAB


def _split_cells(text: str) -> tuple[list[_Cell], list[str]]:
    cells: list[_Cell] = []
    pending: list[str] = []
    for segment, width in _segments(text):
        if width is None:
            pending.append(segment)
            continue
        cells.append(_Cell(segment, width, pending))
        pending = []
    return cells, pending


def _find_break(cells: list[_Cell], start: int, limit: int) -> tuple[int, int]:
    """Return ``(end, next_start)`` for the physical line beginning at *start*.

    ``cells[end:next_start]`` is the separator consumed by the break.
    """
    col = 0
    i = start
    last_space = -1
    while i < len(cells) and col + cells[i].width <= limit:
        if cells[i].is_space:
            last_space = i
        col += cells[i].width
        i += 1

    if i >= len(cells):
        return len(cells), len(cells)
    if cells[i].is_space:
        return i, i + 1
    if last_space > start:
        return last_space, last_space + 1
    # No break opportunity: hard-cut the word, always making progress
    end = max(i, start + 1)
    return end, end


def wrap_text(
    text: str,
    width: int,
    continuation_width: int | None = None,
) -> list[str]:
    """Greedy word wrap of a single line, preserving ANSI styling.

    The first physical line holds at most *width* columns, every following
    line at most *continuation_width* (defaults to *width*). Words longer than
    the limit are cut. Active SGR attributes are re-opened at the start of each
    physical line and reset at its end, so every line is self-contained.

    A *width* of zero or less returns ``[text]`` unchanged.
    """
    if width <= 0:
        return [text]
    if continuation_width is None:
        continuation_width = width
    continuation_width = max(1, continuation_width)

    cells, trailing = _split_cells(text)
    if not cells:
        return [text]

    tracker = AnsiCodeTracker()
    result: list[str] = []
    start = 0
    limit = width

    while start < len(cells):
        end, next_start = _find_break(cells, start, limit)

        parts = [tracker.get_active_codes()]
        for cell in cells[start:end]:
            for code in cell.codes:
                tracker.process(code)
            parts.extend(cell.codes)
            parts.append(cell.text)
        last = next_start >= len(cells)
        if last:
            for cell in cells[end:next_start]:
                for code in cell.codes:
                    tracker.process(code)
            for code in trailing:
                tracker.process(code)
            parts.extend(trailing)
        if tracker.has_active_codes():
            parts.append(RESET)
        if not last:
            # Codes on the separator only affect the following line
            for cell in cells[end:next_start]:
                for code in cell.codes:
                    tracker.process(code)

        result.append("".join(parts))
        start = next_start
        limit = continuation_width

    return result

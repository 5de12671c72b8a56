"""Immutable formatted log line."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class Line:
    """One raw log line together with its rendered display lines.

    ``formatted_lines`` is never empty. ``full_wrap_count`` is the number of
    display lines the entry would occupy with wrapping enabled, which differs
    from ``wrap_count`` only when the line was truncated.
    """

    content: str
    formatted_lines: Sequence[str]
    original_index: int
    full_wrap_count: int = 1
    is_stack_frame: bool = False
    is_vendor_frame: bool = False
    vendor_group_id: int | None = None

    def __post_init__(self) -> None:
        formatted = tuple(self.formatted_lines)
        if not formatted:
            raise ValueError("Line requires at least one formatted line")
        object.__setattr__(self, "formatted_lines", formatted)
        if self.full_wrap_count < len(formatted):
            object.__setattr__(self, "full_wrap_count", len(formatted))

    @property
    def wrap_count(self) -> int:
        """Number of display lines this entry currently produces."""
        return len(self.formatted_lines)

    @property
    def is_collapsible_vendor(self) -> bool:
        return self.is_vendor_frame and self.vendor_group_id is not None

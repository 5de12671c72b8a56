"""Viewer settings: dataclass defaults, environment overrides, CLI overrides.

Settings are never written back anywhere; they live for one run.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

logger = logging.getLogger(__name__)

ENV_PREFIX = "VTAIL_"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass
class ViewerSettings:
    """Presentation and memory settings for one viewer session."""

    hide_vendor: bool = False
    wrap_lines: bool = True
    tail_lines: int = 100
    max_lines: int = 1000
    frame_interval: float = 0.025
    trim_threshold: int = field(init=False)

    def __post_init__(self) -> None:
        self.tail_lines = max(0, self.tail_lines)
        self.max_lines = max(1, self.max_lines)
        self.trim_threshold = int(self.max_lines * 1.2)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ViewerSettings:
        """Build settings from ``VTAIL_*`` environment variables.

        Unparseable values are logged and ignored.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        hide = _parse_bool(env, "HIDE_VENDOR")
        if hide is not None:
            values["hide_vendor"] = hide
        no_wrap = _parse_bool(env, "NO_WRAP")
        if no_wrap is not None:
            values["wrap_lines"] = not no_wrap
        tail_lines = _parse_int(env, "TAIL_LINES")
        if tail_lines is not None:
            values["tail_lines"] = tail_lines
        max_lines = _parse_int(env, "MAX_LINES")
        if max_lines is not None:
            values["max_lines"] = max_lines

        return cls(**values)

    def with_overrides(self, **overrides: Any) -> ViewerSettings:
        """Return a copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _parse_bool(env: Mapping[str, str], name: str) -> bool | None:
    raw = env.get(ENV_PREFIX + name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    logger.warning("Ignoring %s%s=%r: expected a boolean", ENV_PREFIX, name, raw)
    return None


def _parse_int(env: Mapping[str, str], name: str) -> int | None:
    raw = env.get(ENV_PREFIX + name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s%s=%r: expected an integer", ENV_PREFIX, name, raw)
        return None

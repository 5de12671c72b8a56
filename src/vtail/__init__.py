"""vtail: tail a log file with framed stack traces and collapsible vendor frames."""

import logging

# Formatting core
from vtail.collection import LineCollection
from vtail.formatter import (
    FormatterState,
    LineKind,
    LogFormatter,
    classify,
    is_vendor_frame,
)
from vtail.line import Line

# Viewer
from vtail.app import LogViewer
from vtail.keys import ViewerKeybindings, parse_key, split_sequences
from vtail.settings import ViewerSettings
from vtail.tail import TailError, TailFeed
from vtail.terminal import ProcessTerminal, Terminal

# Text utilities
from vtail.utils import (
    pad_to_width,
    slice_by_column,
    strip_ansi,
    truncate_to_width,
    visible_width,
    wrap_text,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "FormatterState",
    "Line",
    "LineCollection",
    "LineKind",
    "LogFormatter",
    "LogViewer",
    "ProcessTerminal",
    "TailError",
    "TailFeed",
    "Terminal",
    "ViewerKeybindings",
    "ViewerSettings",
    "classify",
    "is_vendor_frame",
    "pad_to_width",
    "parse_key",
    "slice_by_column",
    "split_sequences",
    "strip_ansi",
    "truncate_to_width",
    "visible_width",
    "wrap_text",
]

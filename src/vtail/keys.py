"""Keyboard input: splitting raw stdin chunks, naming keys, viewer bindings.

A single ``read`` from a raw-mode terminal may carry several keypresses
(``"jjj"``, or two arrow sequences back to back). :func:`split_sequences`
separates them, :func:`parse_key` turns each into a key id such as ``"up"``
or ``"ctrl+c"``, and :class:`ViewerKeybindings` maps key ids to actions.
"""

from __future__ import annotations

from typing import Literal

KeyId = str

ESC = "\x1b"

# ---------------------------------------------------------------------------
# Sequence splitting
# ---------------------------------------------------------------------------


def _sequence_length(data: str, pos: int) -> int:
    """Length of the escape sequence starting at ``data[pos]``.

    Incomplete sequences at the end of the chunk consume the rest of it.
    """
    end = len(data)
    if pos + 1 >= end:
        return 1

    intro = data[pos + 1]

    # CSI: ESC [ params final(0x40-0x7E)
    if intro == "[":
        i = pos + 2
        while i < end:
            if 0x40 <= ord(data[i]) <= 0x7E:
                return i - pos + 1
            i += 1
        return end - pos

    # SS3: ESC O <char>
    if intro == "O":
        return min(3, end - pos)

    # OSC / DCS / APC: terminated by BEL or ST
    if intro in "]P_":
        i = pos + 2
        while i < end:
            if data[i] == "\x07":
                return i - pos + 1
            if data[i] == ESC and i + 1 < end and data[i + 1] == "\\":
                return i - pos + 2
            i += 1
        return end - pos

    # Meta key: ESC + one character
    return 2


def split_sequences(data: str) -> list[str]:
    """Split a raw input chunk into individual key sequences."""
    sequences: list[str] = []
    pos = 0
    while pos < len(data):
        if data[pos] == ESC:
            length = _sequence_length(data, pos)
        else:
            length = 1
        sequences.append(data[pos : pos + length])
        pos += length
    return sequences


# ---------------------------------------------------------------------------
# Key parsing
# ---------------------------------------------------------------------------

LEGACY_KEY_SEQUENCES: dict[str, KeyId] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
}


def parse_key(data: str) -> KeyId | None:
    """Return the key id for one input sequence, or ``None`` if unknown.

    Printable characters keep their case so ``"g"`` and ``"G"`` stay distinct.
    """
    if not data:
        return None

    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    if data == ESC:
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"

    # Ctrl + letter (0x01 - 0x1a)
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    # Alt + key (ESC prefix)
    if len(data) == 2 and data[0] == ESC and data[1].isprintable():
        return "alt+" + data[1]

    if len(data) == 1 and data.isprintable():
        return data

    return None


# ---------------------------------------------------------------------------
# Viewer keybindings
# ---------------------------------------------------------------------------

ViewerAction = Literal[
    "toggleVendor",
    "toggleWrap",
    "truncateFile",
    "toggleFollow",
    "quit",
    "scrollUp",
    "scrollDown",
    "pageUp",
    "pageDown",
    "scrollTop",
    "scrollBottom",
]

ViewerKeybindingsConfig = dict[ViewerAction, KeyId | list[KeyId]]

DEFAULT_VIEWER_KEYBINDINGS: dict[ViewerAction, KeyId | list[KeyId]] = {
    "toggleVendor": "v",
    "toggleWrap": "w",
    "truncateFile": "t",
    "toggleFollow": ["f", "space"],
    "quit": ["q", "ctrl+c", "ctrl+d"],
    "scrollUp": ["up", "k"],
    "scrollDown": ["down", "j"],
    "pageUp": "pageUp",
    "pageDown": "pageDown",
    "scrollTop": ["g", "home"],
    "scrollBottom": ["G", "end"],
}


class ViewerKeybindings:
    """Maps key ids to viewer actions."""

    def __init__(self, config: ViewerKeybindingsConfig | None = None) -> None:
        self._action_to_keys: dict[ViewerAction, list[KeyId]] = {}
        self._key_to_action: dict[KeyId, ViewerAction] = {}
        self._build_maps(config or {})

    def _build_maps(self, config: ViewerKeybindingsConfig) -> None:
        merged = {**DEFAULT_VIEWER_KEYBINDINGS, **config}
        for action, keys in merged.items():
            key_array = keys if isinstance(keys, list) else [keys]
            self._action_to_keys[action] = list(key_array)
            for key in key_array:
                self._key_to_action[key] = action

    def action_for(self, data: str) -> ViewerAction | None:
        """Return the action bound to the input sequence *data*, if any."""
        key = parse_key(data)
        if key is None:
            return None
        return self._key_to_action.get(key)

    def get_keys(self, action: ViewerAction) -> list[KeyId]:
        return self._action_to_keys.get(action, [])

"""Escape / unescape Modelica string literals.

Every string argument sent to OMC goes through ``moescape`` (usually via
``moquote``). Replies from ``getErrorString()`` and friends come back escaped
and are decoded with ``mounescape``.

Usage:
    cmd = f"cd({moquote(outdir)})"
    text = mounescape(raw_reply)
"""
from __future__ import annotations

import io
from typing import TextIO

# character → two-character escape sequence (Modelica string literal syntax)
_ESCAPES: dict[str, str] = {
    "\\": "\\\\",
    '"': '\\"',
    "?": "\\?",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}

# escape letter (the character after the backslash) → decoded character
_UNESCAPES: dict[str, str] = {seq[1]: char for char, seq in _ESCAPES.items()}


def moescape(s: str) -> str:
    """Escape ``s`` for use inside a Modelica string literal."""
    return "".join(_ESCAPES.get(c, c) for c in s)


def moquote(s: str) -> str:
    """Return ``s`` escaped and wrapped in double quotes."""
    return f'"{moescape(s)}"'


def mounescape_to(stream: TextIO, s: str) -> None:
    """Write the unescaped form of ``s`` to ``stream``.

    A trailing lone backslash and a backslash followed by an unknown letter
    are written literally.
    """
    chars = iter(s)
    for c in chars:
        if c != "\\":
            stream.write(c)
            continue
        nxt = next(chars, None)
        if nxt is None:
            stream.write(c)
        elif nxt in _UNESCAPES:
            stream.write(_UNESCAPES[nxt])
        else:
            stream.write(c + nxt)


def mounescape(s: str) -> str:
    """Undo ``moescape`` or decode a string literal returned by OMC."""
    buf = io.StringIO()
    mounescape_to(buf, s)
    return buf.getvalue()

"""Terminal text normalization.

Captured pane text carries ANSI control sequences. They are removed before
any pattern matching so that classifiers only see printable text.
"""

import re

# CSI sequences: colors (\x1b[32m), cursor control (\x1b[2J), modes (\x1b[?25h).
# tmux can render ESC as the visible symbol U+241B, so both forms are matched.
# Only sequences starting with an escape are touched; "[A] option" survives.
ANSI_PATTERN = re.compile(r"[\x1b␛]\[[0-9;?]*[a-zA-Z]")

# SGR sequences that lost their ESC prefix, e.g. "[39m" or "[0;1;32m".
# Restricted to the 'm' terminator to avoid eating bracketed text.
ORPHANED_SGR_PATTERN = re.compile(r"\[[0-9;]*m")

# OSC 8 hyperlink wrappers: ESC ] 8 ; params ; url (BEL | ESC \)
OSC8_PATTERN = re.compile(r"\x1b\]8;[^;]*;[^\x1b\x07]*(?:\x07|\x1b\\)")

# Dim attribute used by agents for placeholder/suggestion text
DIM_SGR = "\x1b[2m"


def strip(text: str) -> str:
    """Remove ANSI escape sequences from ``text``."""
    if not text:
        return ""
    return ANSI_PATTERN.sub("", text)


def strip_orphaned(text: str) -> str:
    """Remove ANSI sequences and SGR fragments that lost their ESC byte.

    Use when text may have been cut mid-sequence by buffering or
    serialization.
    """
    return ORPHANED_SGR_PATTERN.sub("", strip(text))


def strip_hyperlinks(text: str) -> str:
    """Remove OSC 8 hyperlink escapes, keeping the visible link text."""
    if not text:
        return ""
    return OSC8_PATTERN.sub("", text)


def last_lines(lines: list[str], count: int) -> list[str]:
    """Return the trailing ``count`` lines (all of them if fewer)."""
    if count <= 0:
        return []
    return lines[-count:]

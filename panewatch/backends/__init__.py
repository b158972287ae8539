"""Terminal multiplexer backends."""

from panewatch.backends.base import PaneInfo, PaneSource
from panewatch.backends.tmux import TmuxBackend, get_tmux_backend, reset_tmux_backend

__all__ = [
    "PaneInfo",
    "PaneSource",
    "TmuxBackend",
    "get_tmux_backend",
    "reset_tmux_backend",
]

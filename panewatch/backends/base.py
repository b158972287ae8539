"""Abstract base class for pane sources.

A pane source lists the panes of a terminal multiplexer and captures their
recent text. Everything above this layer works on plain strings.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class PaneInfo:
    """One terminal pane."""

    target: str  # "session:window.pane", stable identity of the pane
    session: str  # Session name, matches hook status files
    window: int = 0
    index: int = 0
    command: str = ""  # Foreground command (e.g., "claude", "zsh")
    path: str = ""  # Current working directory
    active: bool = False
    pane_id: str = ""  # Multiplexer-internal id (e.g., "%12")


class PaneSource(ABC):
    """Abstract interface for terminal multiplexers."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier (e.g., 'tmux')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend is installed and running."""

    @abstractmethod
    def list_panes(self) -> list[PaneInfo]:
        """List all panes across all sessions.

        Returns:
            List of PaneInfo, empty if the backend is unavailable.
        """

    @abstractmethod
    def capture_pane(self, target: str, lines: int = 100) -> str | None:
        """Capture recent pane text, escape sequences included.

        Args:
            target: Pane target as in PaneInfo.target.
            lines: Number of lines to capture from scrollback.

        Returns:
            Captured text, or None on failure.
        """

    def get_pane(self, target: str) -> PaneInfo | None:
        """Find one pane by target."""
        for pane in self.list_panes():
            if pane.target == target:
                return pane
        return None

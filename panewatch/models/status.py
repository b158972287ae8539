"""Status records written by the external hook and pane status files."""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field


class StatusKind(str, Enum):
    """Status reported by the agent hook for a session."""

    UNKNOWN = "unknown"
    IDLE = "idle"
    WORKING = "working"
    WAITING = "waiting"
    """Waiting for user input."""

    PERMISSION = "permission"
    """Waiting for a permission decision."""

    @classmethod
    def parse(cls, value: str) -> "StatusKind":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def needs_attention(self) -> bool:
        return self in (StatusKind.WAITING, StatusKind.PERMISSION)


class StatusRecord(BaseModel):
    """One session status written by the hook.

    Read-only from the monitor's point of view.
    """

    session_label: str = Field(default="", description="Terminal session name")
    status: StatusKind = StatusKind.UNKNOWN
    message: str = ""
    tool: str = ""
    timestamp: datetime | None = None

    def needs_attention(self) -> bool:
        return self.status.needs_attention

    def is_fresh(self, max_age: timedelta, now: datetime | None = None) -> bool:
        """True if the record was updated within ``max_age``."""
        if self.timestamp is None:
            return False
        now = now or datetime.now(tz=self.timestamp.tzinfo)
        return now - self.timestamp < max_age


class PaneState(str, Enum):
    """State written per pane by the legacy status channel."""

    PROCESSING = "processing"
    WAITING = "waiting"
    DONE = "done"
    IDLE = "idle"

    def priority(self) -> int:
        """Sort key, lower means more urgent."""
        return {
            PaneState.WAITING: 0,
            PaneState.PROCESSING: 1,
            PaneState.DONE: 2,
        }.get(self, 100)


class PaneStatus(BaseModel):
    """Legacy per-pane status used for picking a pane within a session."""

    pane_id: int
    session_label: str
    state: PaneState
    timestamp: int = 0


class AttentionEntry(BaseModel):
    """One row of the attention ranking."""

    pane_id: str
    priority: int
    source: str = Field(description="Where the state came from: status, pane-status or result")
    label: str = ""

"""Domain models for panewatch."""

from panewatch.models.config import (
    AppConfig,
    DetectionConfig,
    NarrativeThreadsConfig,
    SessionLogConfig,
    StatusConfig,
)
from panewatch.models.result import AgentKind, AgentState, Mode, Result, ResultKind
from panewatch.models.session import (
    BlockKind,
    ContentBlock,
    LogMessage,
    SessionState,
    Todo,
    tool_activity,
)
from panewatch.models.status import (
    AttentionEntry,
    PaneState,
    PaneStatus,
    StatusKind,
    StatusRecord,
)
from panewatch.models.thread import NarrativeThread, ThreadMessage

__all__ = [
    # Result
    "AgentKind",
    "AgentState",
    "Mode",
    "Result",
    "ResultKind",
    # Session log
    "BlockKind",
    "ContentBlock",
    "LogMessage",
    "SessionState",
    "Todo",
    "tool_activity",
    # Status
    "AttentionEntry",
    "PaneState",
    "PaneStatus",
    "StatusKind",
    "StatusRecord",
    # Narrative threads
    "NarrativeThread",
    "ThreadMessage",
    # Config
    "AppConfig",
    "DetectionConfig",
    "NarrativeThreadsConfig",
    "SessionLogConfig",
    "StatusConfig",
]

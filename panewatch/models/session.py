"""Conversation log models.

A structured agent appends one JSON record per line to a session log. These
models give a normalized view of those records and of the state derived from
replaying them.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class BlockKind(str, Enum):
    """Kinds of content blocks found in log messages."""

    THINKING = "thinking"
    TEXT = "text"
    TOOL_USE = "tool-use"
    TOOL_RESULT = "tool-result"
    OTHER = "other"


_RAW_BLOCK_KINDS = {
    "thinking": BlockKind.THINKING,
    "text": BlockKind.TEXT,
    "tool_use": BlockKind.TOOL_USE,
    "tool_result": BlockKind.TOOL_RESULT,
}


class ContentBlock(BaseModel):
    """Normalized view of one block of message content."""

    kind: BlockKind
    text: str = ""
    tool_name: str = ""
    tool_use_id: str = ""
    tool_input: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "ContentBlock":
        raw_type = raw.get("type")
        if isinstance(raw_type, str):
            kind = _RAW_BLOCK_KINDS.get(raw_type, BlockKind.OTHER)
        else:
            kind = BlockKind.OTHER
        if kind == BlockKind.THINKING:
            text = raw.get("thinking", "")
        else:
            text = raw.get("text", "")
        if kind == BlockKind.TOOL_RESULT:
            tool_use_id = raw.get("tool_use_id", "")
        else:
            tool_use_id = raw.get("id", "")
        tool_input = raw.get("input")
        return cls(
            kind=kind,
            text=text if isinstance(text, str) else "",
            tool_name=raw.get("name", "") if isinstance(raw.get("name"), str) else "",
            tool_use_id=tool_use_id if isinstance(tool_use_id, str) else "",
            tool_input=tool_input if isinstance(tool_input, dict) else {},
        )


class Todo(BaseModel):
    """A todo item tracked by the agent."""

    content: str = ""
    status: str = ""  # pending, in_progress, completed
    active_form: str = ""


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value!r}")
        return None
    # Naive and aware values must stay comparable
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class LogMessage(BaseModel):
    """One entry of the conversation log.

    Entries are ordered by file position. ``timestamp`` is advisory and may
    be missing; nothing relies on it for ordering.
    """

    type: str = ""  # user, assistant, summary, ...
    uuid: str = ""
    parent_uuid: str = ""
    session_id: str = ""
    timestamp: datetime | None = None
    cwd: str = ""
    git_branch: str = ""
    todos: list[Todo] = Field(default_factory=list)
    content: Any = None
    stop_reason: str = ""
    summary: str = ""

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "LogMessage":
        """Build a LogMessage from one decoded JSONL record.

        The nested ``message`` object carries the content and stop reason;
        they are lifted to the top level here.
        """
        message = record.get("message")
        if not isinstance(message, dict):
            message = {}

        todos = []
        raw_todos = record.get("todos")
        if isinstance(raw_todos, list):
            for item in raw_todos:
                if isinstance(item, dict):
                    todos.append(
                        Todo(
                            content=str(item.get("content", "")),
                            status=str(item.get("status", "")),
                            active_form=str(item.get("activeForm", "")),
                        )
                    )

        def _str(value: Any) -> str:
            return value if isinstance(value, str) else ""

        return cls(
            type=_str(record.get("type")),
            uuid=_str(record.get("uuid")),
            parent_uuid=_str(record.get("parentUuid")),
            session_id=_str(record.get("sessionId")),
            timestamp=_parse_timestamp(record.get("timestamp")),
            cwd=_str(record.get("cwd")),
            git_branch=_str(record.get("gitBranch")),
            todos=todos,
            content=message.get("content"),
            stop_reason=_str(message.get("stop_reason")),
            summary=_str(record.get("summary")),
        )

    def content_blocks(self) -> list[ContentBlock]:
        """Return the message content as a list of blocks.

        Plain string content becomes a single text block.
        """
        if isinstance(self.content, str):
            return [ContentBlock(kind=BlockKind.TEXT, text=self.content)]
        if isinstance(self.content, list):
            return [ContentBlock.from_raw(item) for item in self.content if isinstance(item, dict)]
        return []

    def has_tool_result(self, tool_use_id: str | None = None) -> bool:
        """Whether the content holds a tool result (for ``tool_use_id`` if given)."""
        for block in self.content_blocks():
            if block.kind != BlockKind.TOOL_RESULT:
                continue
            if tool_use_id is None or block.tool_use_id == tool_use_id:
                return True
        return False


# Tool name -> activity text for the structured agent's log
TOOL_ACTIVITIES = {
    "Read": "Reading file",
    "Write": "Writing file",
    "Edit": "Editing file",
    "Bash": "Running command",
    "Glob": "Searching files",
    "Grep": "Searching content",
    "Task": "Running agent",
    "TodoWrite": "Updating todos",
    "WebFetch": "Fetching URL",
    "WebSearch": "Searching web",
    "AskUserQuestion": "Asking question",
}


def tool_activity(tool: str) -> str:
    """Describe a tool invocation in a few words."""
    if tool in TOOL_ACTIVITIES:
        return TOOL_ACTIVITIES[tool]
    if tool:
        return f"Running {tool}"
    return "Working..."


class SessionState(BaseModel):
    """Point-in-time state of a session, derived from its log.

    Recomputed on every read and never persisted.
    """

    session_id: str = ""
    cwd: str = ""
    git_branch: str = ""
    last_activity: datetime | None = None

    is_working: bool = False
    is_waiting: bool = False
    is_thinking: bool = False
    current_tool: str = ""
    last_tool_name: str = ""
    pending_tool_use_id: str = ""
    pending_tool_name: str = ""
    is_waiting_permission: bool = False
    todos: list[Todo] = Field(default_factory=list)
    question: str = ""
    choices: list[str] = Field(default_factory=list)
    last_assistant_text: str = ""
    error_text: str = ""

    def activity(self) -> str:
        """Human-readable description of what the agent is doing."""
        if self.current_tool:
            return tool_activity(self.current_tool)
        if self.is_thinking:
            return "Thinking..."
        if self.is_working:
            if self.last_tool_name:
                return tool_activity(self.last_tool_name)
            return "Working..."
        if self.is_waiting:
            if self.question:
                return self.question
            return "Waiting for input"
        return "Idle"

    def status_type(self) -> str:
        """Coarse status for UI indicators: attention, working or idle."""
        if self.question or self.choices:
            return "attention"
        if self.is_working or self.current_tool:
            return "working"
        if self.is_waiting:
            return "attention"
        return "idle"

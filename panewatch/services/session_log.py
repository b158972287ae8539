"""Session state reconstruction from structured agent conversation logs.

The structured agent appends one JSON record per line to
``<projects_dir>/<encoded cwd>/<session id>.jsonl``. Replaying the tail of
that log tells whether the agent is working, waiting for input or waiting
for a permission decision, without looking at the terminal at all.
"""

import json
import logging
from collections.abc import Sequence
from pathlib import Path

from panewatch.errors import SessionNotFoundError
from panewatch.models.config import SessionLogConfig
from panewatch.models.result import Mode, Result, ResultKind
from panewatch.models.session import BlockKind, LogMessage, SessionState

logger = logging.getLogger(__name__)

# Messages replayed when reconstructing state
DEFAULT_WINDOW = 20

# Record types that carry no conversation state
SKIPPED_TYPES = {"file-history-snapshot"}

# Lines longer than this end a choice block
MAX_CHOICE_LINE_LENGTH = 100

# Trailing lines of a message searched for choices and questions
TEXT_LOOKBACK = 10

PERMISSION_QUESTION = "Waiting for permission..."


# =============================================================================
# Log Reading
# =============================================================================


def parse_log_line(line: str) -> dict | None:
    """Parse a single line of JSONL data.

    Args:
        line: A single line from a log file

    Returns:
        Parsed dict, or None if the line is blank, malformed or not an object
    """
    line = line.strip()
    if not line:
        return None

    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        logger.debug(f"Skipping malformed log line: {line[:80]!r}")
        return None

    if not isinstance(record, dict):
        return None
    if "type" in record and not isinstance(record["type"], str):
        logger.debug(f"Skipping log record with non-string type: {line[:80]!r}")
        return None
    return record


def read_log(path: str | Path, limit: int | None = None) -> list[LogMessage]:
    """Read messages from a session log file.

    Malformed lines and file-history snapshots are skipped individually.

    Args:
        path: Path to the JSONL file
        limit: Keep only the last ``limit`` messages if given

    Returns:
        Messages in file order

    Raises:
        SessionNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.is_file():
        raise SessionNotFoundError(f"Session log not found: {path}", path=str(path))

    messages = []
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            record = parse_log_line(line)
            if record is None:
                continue
            if record.get("type") in SKIPPED_TYPES:
                continue
            messages.append(LogMessage.from_record(record))

    if limit is not None and len(messages) > limit:
        return messages[-limit:]
    return messages


def project_dir(cwd: str, root: str | Path) -> Path:
    """Return the log directory for a working directory.

    "/home/foo/bar" is stored as "-home-foo-bar".
    """
    encoded = "-" + cwd.replace("/", "-").lstrip("-")
    return Path(root).expanduser() / encoded


def find_latest_session(directory: str | Path) -> Path:
    """Find the most recently modified session log in a project directory.

    Sub-agent logs (``agent-*.jsonl``) are ignored.

    Raises:
        SessionNotFoundError: If the directory is missing or holds no logs
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise SessionNotFoundError(f"Project directory not found: {directory}", path=str(directory))

    sessions = []
    for entry in directory.iterdir():
        if entry.suffix != ".jsonl" or entry.name.startswith("agent-"):
            continue
        try:
            if entry.is_file():
                sessions.append((entry.stat().st_mtime, entry))
        except OSError as e:
            logger.debug(f"Skipping unreadable session file {entry}: {e}")

    if not sessions:
        raise SessionNotFoundError(f"No session files found in {directory}", path=str(directory))

    sessions.sort(key=lambda item: item[0], reverse=True)
    return sessions[0][1]


# =============================================================================
# Question Extraction
# =============================================================================


def extract_question_and_choices(text: str) -> tuple[str, list[str]]:
    """Find a question and a choice menu at the end of assistant text.

    Choices are lines starting with a cursor glyph (❯ or >), plus numbered
    lines once a cursor line has been seen. Scanning stops at a long line.

    Returns:
        Tuple of (question or "", choices in display order)
    """
    lines = text.split("\n")
    tail = lines[-TEXT_LOOKBACK:]

    choices: list[str] = []
    for raw in reversed(tail):
        line = raw.strip()
        if not line:
            continue

        if line.startswith(("❯", ">")):
            choice = line.lstrip("❯").lstrip(">").strip()
            if choice and len(choice) < MAX_CHOICE_LINE_LENGTH:
                choices.insert(0, choice)
            continue

        if choices and len(line) > 2 and line[0] in "123456789" and line[1] in ".)":
            choice = line[2:].strip()
            if len(choice) < MAX_CHOICE_LINE_LENGTH:
                choices.insert(0, choice)

        if len(line) > MAX_CHOICE_LINE_LENGTH:
            break

    question = ""
    for raw in reversed(tail):
        line = raw.strip()
        if line.endswith("?") and 5 < len(line) < 200:
            question = line
            break

    return question, choices


# =============================================================================
# Reconstruction
# =============================================================================


def _pair_pending_tools(window: Sequence[LogMessage], state: SessionState) -> None:
    """Forward pass: track the latest tool call still waiting for its result."""
    for msg in window:
        if msg.timestamp is not None:
            if state.last_activity is None or msg.timestamp > state.last_activity:
                state.last_activity = msg.timestamp

        if msg.type == "assistant":
            for block in msg.content_blocks():
                if block.kind == BlockKind.TOOL_USE:
                    state.pending_tool_use_id = block.tool_use_id
                    state.pending_tool_name = block.tool_name

        elif msg.type == "user":
            if state.pending_tool_use_id and msg.has_tool_result(state.pending_tool_use_id):
                state.pending_tool_use_id = ""
                state.pending_tool_name = ""


def _scan_current_flags(window: Sequence[LogMessage], state: SessionState) -> None:
    """Backward pass: derive working/waiting flags from the newest messages.

    Stops at the first user message.
    """
    last = len(window) - 1
    question_checked = False

    for i in range(last, -1, -1):
        msg = window[i]

        if not state.todos and msg.todos:
            state.todos = list(msg.todos)

        if msg.type == "assistant":
            for block in msg.content_blocks():
                if block.kind == BlockKind.THINKING:
                    if not state.last_assistant_text:
                        state.is_thinking = True
                elif block.kind == BlockKind.TEXT:
                    if not state.last_assistant_text:
                        state.last_assistant_text = block.text
                    if not question_checked:
                        question_checked = True
                        state.question, state.choices = extract_question_and_choices(block.text)
                elif block.kind == BlockKind.TOOL_USE:
                    if not state.last_tool_name:
                        state.last_tool_name = block.tool_name
                    if i == last:
                        state.is_working = True
                        state.current_tool = block.tool_name

            if msg.stop_reason == "tool_use" and i == last:
                state.is_working = True

        elif msg.type == "user":
            if i == last:
                if msg.has_tool_result():
                    state.is_working = True
                else:
                    state.is_waiting = True
            break


def reconstruct(messages: Sequence[LogMessage], window: int = DEFAULT_WINDOW) -> SessionState:
    """Replay the tail of a conversation log into a SessionState.

    Pure: the same messages always give the same state.

    Args:
        messages: Log messages in file order
        window: Number of trailing messages replayed

    Returns:
        Reconstructed state (empty for no messages)
    """
    state = SessionState()
    if not messages:
        return state

    for msg in messages:
        if msg.session_id:
            state.session_id = msg.session_id
        if msg.cwd:
            state.cwd = msg.cwd
        if msg.git_branch:
            state.git_branch = msg.git_branch

    recent = list(messages[-window:])
    _pair_pending_tools(recent, state)
    _scan_current_flags(recent, state)

    if state.question and not state.is_working:
        state.is_waiting = True
    if state.pending_tool_use_id:
        state.is_waiting_permission = True

    return state


def to_result(state: SessionState) -> Result:
    """Project a SessionState onto the classifier Result shape.

    Mode is unknown since the log has no view of the input line.
    """
    activity = state.activity()

    if state.choices:
        return Result(
            kind=ResultKind.CHOICE,
            question=state.question or None,
            choices=list(state.choices),
            activity=activity,
        )
    if state.is_waiting_permission:
        return Result(
            kind=ResultKind.QUESTION,
            question=state.question or PERMISSION_QUESTION,
            activity=activity,
        )
    if state.question:
        return Result(kind=ResultKind.QUESTION, question=state.question, activity=activity)
    if state.error_text:
        return Result(kind=ResultKind.ERROR, error_snippet=state.error_text, activity=activity)
    if state.is_working or state.current_tool:
        return Result(kind=ResultKind.WORKING, activity=activity)
    if state.is_waiting:
        return Result(kind=ResultKind.QUESTION, activity=activity)
    return Result(kind=ResultKind.IDLE, mode=Mode.UNKNOWN, activity=activity)


class SessionLogReader:
    """Locates and replays the conversation log for a working directory."""

    def __init__(self, config: SessionLogConfig | None = None):
        self.config = config or SessionLogConfig()

    def project_dir(self, cwd: str) -> Path:
        return project_dir(cwd, self.config.projects_dir)

    def latest_session(self, cwd: str) -> Path:
        return find_latest_session(self.project_dir(cwd))

    def state_for_cwd(self, cwd: str) -> SessionState:
        """Reconstruct the state of the newest session started in ``cwd``.

        Raises:
            SessionNotFoundError: If no log exists for ``cwd``
        """
        path = self.latest_session(cwd)
        messages = read_log(path, limit=self.config.read_limit)
        logger.debug(f"Replaying {len(messages)} messages from {path}")
        return reconstruct(messages, window=self.config.window)

    def result_for_cwd(self, cwd: str) -> Result:
        return to_result(self.state_for_cwd(cwd))

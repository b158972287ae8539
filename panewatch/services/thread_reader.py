"""State of narrative agent panes from the agent's thread files.

The narrative agent keeps every conversation as a JSON file under its
threads directory and records the most recent thread id in its state
directory. The last message of the thread opened in a pane's working
directory tells whether the agent is still running.
"""

import json
import logging
import os
from pathlib import Path

from panewatch.errors import SessionNotFoundError
from panewatch.models.config import NarrativeThreadsConfig
from panewatch.models.result import Result, ResultKind
from panewatch.models.thread import NarrativeThread

logger = logging.getLogger(__name__)

LAST_THREAD_FILE = "last-thread-id"


def _normalize(path: str) -> str:
    return os.path.realpath(os.path.normpath(os.path.expanduser(path)))


def read_thread_file(path: str | Path) -> NarrativeThread | None:
    """Load one thread file, or None if it is unreadable or malformed."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug(f"Skipping thread file {path}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    return NarrativeThread.from_dict(data)


def thread_matches_cwd(thread: NarrativeThread, cwd: str) -> bool:
    """True if ``cwd`` is one of the thread's workspaces or below one."""
    for workspace in thread.workspace_paths():
        workspace = _normalize(workspace)
        if cwd == workspace or cwd.startswith(workspace.rstrip("/") + "/"):
            return True
    return False


def analyze_thread(thread: NarrativeThread) -> Result:
    """Derive a Result from the last message of a thread."""
    if not thread.messages:
        return Result(kind=ResultKind.IDLE)

    last = thread.messages[-1]
    if last.state == "running":
        return Result(kind=ResultKind.WORKING, activity="Working")
    if last.state == "cancelled":
        return Result(kind=ResultKind.IDLE, activity="Cancelled")
    if last.state == "complete":
        if last.stop_reason == "tool_use":
            return Result(kind=ResultKind.WORKING, activity="Running tool")
        if last.role == "user":
            return Result(kind=ResultKind.WORKING, activity="Processing")
    return Result(kind=ResultKind.IDLE)


class ThreadReader:
    """Finds the thread belonging to a working directory."""

    def __init__(self, config: NarrativeThreadsConfig | None = None):
        self.config = config or NarrativeThreadsConfig()
        self.threads_dir = Path(self.config.threads_dir).expanduser()
        self.state_dir = Path(self.config.state_dir).expanduser()

    def last_thread_id(self) -> str | None:
        try:
            value = (self.state_dir / LAST_THREAD_FILE).read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return value or None

    def find_thread(self, cwd: str) -> NarrativeThread:
        """Return the thread for ``cwd``.

        The last opened thread wins if it matches; otherwise the newest
        matching thread by creation time.

        Raises:
            SessionNotFoundError: If no thread matches ``cwd``
        """
        cwd = _normalize(cwd)

        last_id = self.last_thread_id()
        if last_id:
            thread = read_thread_file(self.threads_dir / f"{last_id}.json")
            if thread is not None and thread_matches_cwd(thread, cwd):
                return thread

        if not self.threads_dir.is_dir():
            raise SessionNotFoundError(
                f"Threads directory not found: {self.threads_dir}", path=str(self.threads_dir)
            )

        matching = []
        for entry in self.threads_dir.glob("*.json"):
            thread = read_thread_file(entry)
            if thread is not None and thread_matches_cwd(thread, cwd):
                matching.append(thread)

        if not matching:
            raise SessionNotFoundError(f"No thread found for cwd: {cwd}", path=str(self.threads_dir))

        matching.sort(key=lambda t: t.created, reverse=True)
        return matching[0]

    def result_for_cwd(self, cwd: str) -> Result:
        return analyze_thread(self.find_thread(cwd))

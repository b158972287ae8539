"""Status files written by the agent hook.

The hook script writes one file per terminal session into the status
directory. Current hooks write JSON; older ones wrote a single keyword.
Both are accepted, JSON first. A second, per-pane channel stores
``key=value`` files named by the numeric pane id.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from panewatch.models.status import PaneState, PaneStatus, StatusKind, StatusRecord

logger = logging.getLogger(__name__)

# Legacy single-keyword format
KEYWORD_STATUSES = {
    "needs_attention": StatusKind.WAITING,
    "working": StatusKind.WORKING,
    "idle": StatusKind.IDLE,
}


def session_to_filename(session: str) -> str:
    """Session names may contain "/", which is stored as "%"."""
    return session.replace("/", "%") + ".json"


def filename_to_session(filename: str) -> str:
    name = filename[: -len(".json")] if filename.endswith(".json") else filename
    return name.replace("%", "/")


def _mtime(path: Path) -> datetime:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return datetime.now(tz=timezone.utc)


def _epoch_to_datetime(raw_ts) -> datetime | None:
    """Epoch seconds to an aware datetime; None when absent or out of range."""
    if not isinstance(raw_ts, (int, float)) or isinstance(raw_ts, bool):
        return None
    if raw_ts < 0:
        return None
    try:
        return datetime.fromtimestamp(raw_ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        logger.debug(f"Ignoring status timestamp {raw_ts!r}: {e}")
        return None


def parse_status_text(content: str, mtime: datetime | None = None) -> StatusRecord:
    """Parse the content of a status file.

    Args:
        content: File content, JSON or a bare keyword.
        mtime: Timestamp used for the keyword format, which carries none.

    Returns:
        StatusRecord; unrecognised content yields status UNKNOWN.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict) and data.get("status"):
        return StatusRecord(
            session_label=str(data.get("tmux_session") or ""),
            status=StatusKind.parse(str(data["status"])),
            message=str(data.get("message") or ""),
            tool=str(data.get("tool") or ""),
            timestamp=_epoch_to_datetime(data.get("timestamp")),
        )

    keyword = content.strip()
    return StatusRecord(
        status=KEYWORD_STATUSES.get(keyword, StatusKind.UNKNOWN),
        timestamp=mtime,
    )


class StatusWatcher:
    """Reads hook status files from a directory.

    Nothing is cached; every call reads the files again.
    """

    def __init__(self, status_dir: str | Path = "/tmp/claude-status"):
        self.status_dir = Path(status_dir)

    def _read(self, path: Path) -> StatusRecord | None:
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Skipping unreadable status file {path}: {e}")
            return None
        return parse_status_text(content, mtime=_mtime(path))

    def get(self, session: str) -> StatusRecord | None:
        """Status of one session, or None if no file exists for it."""
        record = self._read(self.status_dir / session_to_filename(session))
        if record is not None:
            if not record.session_label:
                record.session_label = session
            return record

        record = self._read(self.status_dir / session)
        if record is not None:
            record.session_label = session
        return record

    def get_all(self) -> dict[str, StatusRecord]:
        """Status of every session with a file, keyed by session name."""
        result: dict[str, StatusRecord] = {}
        if not self.status_dir.is_dir():
            return result

        for entry in sorted(self.status_dir.iterdir()):
            if not entry.is_file():
                continue
            record = self._read(entry)
            if record is None:
                continue
            session = filename_to_session(entry.name)
            if not record.session_label:
                record.session_label = session
            result[session] = record
        return result


def parse_pane_status(pane_id: int, content: str) -> PaneStatus | None:
    """Parse a ``key=value`` pane status file.

    Returns:
        PaneStatus, or None if the session or state is missing or unknown.
    """
    fields: dict[str, str] = {}
    for line in content.split("\n"):
        key, sep, value = line.partition("=")
        if sep:
            fields[key.strip()] = value.strip()

    session = fields.get("session", "")
    try:
        state = PaneState(fields.get("state", ""))
    except ValueError:
        return None
    if not session:
        return None

    try:
        timestamp = int(fields.get("timestamp", "0"))
    except ValueError:
        timestamp = 0

    return PaneStatus(pane_id=pane_id, session_label=session, state=state, timestamp=timestamp)


def read_pane_statuses(panes_dir: str | Path = "/tmp/claude-status/panes") -> list[PaneStatus]:
    """Read all non-idle pane status files, ordered by pane id."""
    panes_dir = Path(panes_dir)
    statuses: list[PaneStatus] = []
    if not panes_dir.is_dir():
        return statuses

    entries = []
    for entry in panes_dir.iterdir():
        if entry.is_file() and entry.name.isdigit():
            entries.append((int(entry.name), entry))

    for pane_id, entry in sorted(entries, key=lambda item: item[0]):
        try:
            content = entry.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Skipping unreadable pane status {entry}: {e}")
            continue
        status = parse_pane_status(pane_id, content)
        if status is None or status.state == PaneState.IDLE:
            continue
        statuses.append(status)
    return statuses

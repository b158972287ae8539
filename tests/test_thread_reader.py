"""Tests for narrative agent thread files."""

import json

import pytest

from panewatch.errors import SessionNotFoundError
from panewatch.models.config import NarrativeThreadsConfig
from panewatch.models.result import ResultKind
from panewatch.models.thread import NarrativeThread, ThreadMessage
from panewatch.services.thread_reader import (
    ThreadReader,
    analyze_thread,
    read_thread_file,
    thread_matches_cwd,
)


def thread_data(thread_id: str, workspace: str, created: int = 0, messages=None) -> dict:
    return {
        "id": thread_id,
        "title": f"Thread {thread_id}",
        "created": created,
        "env": {"initial": {"trees": [{"uri": f"file://{workspace}"}]}},
        "messages": messages or [],
    }


def message(role: str, state: str, stop_reason: str = "") -> dict:
    raw_state = {"type": state}
    if stop_reason:
        raw_state["stopReason"] = stop_reason
    return {"role": role, "state": raw_state}


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "work" / "app"
    path.mkdir(parents=True)
    return path.resolve()


@pytest.fixture
def reader(tmp_path):
    config = NarrativeThreadsConfig(
        threads_dir=str(tmp_path / "threads"),
        state_dir=str(tmp_path / "state"),
    )
    (tmp_path / "threads").mkdir()
    (tmp_path / "state").mkdir()
    return ThreadReader(config)


def save_thread(reader: ThreadReader, data: dict) -> None:
    (reader.threads_dir / f"{data['id']}.json").write_text(json.dumps(data))


class TestNarrativeThread:
    """Tests for NarrativeThread.from_dict()."""

    def test_from_dict(self):
        thread = NarrativeThread.from_dict(
            thread_data("T-1", "/work/my%20app", created=5, messages=[message("assistant", "running")])
        )

        assert thread.id == "T-1"
        assert thread.created == 5
        assert thread.workspace_paths() == ["/work/my app"]
        assert thread.messages == [ThreadMessage(role="assistant", state="running")]

    def test_missing_env(self):
        thread = NarrativeThread.from_dict({"id": "T-2", "env": "broken"})

        assert thread.workspace_uris == []
        assert thread.messages == []

    def test_messages_not_a_list(self):
        assert NarrativeThread.from_dict({"id": "T-3", "messages": 5}).messages == []
        assert NarrativeThread.from_dict({"id": "T-4", "messages": {"role": "user"}}).messages == []

    def test_non_file_uris_ignored(self):
        thread = NarrativeThread(workspace_uris=["https://example.com/repo"])

        assert thread.workspace_paths() == []


class TestAnalyzeThread:
    """Tests for analyze_thread()."""

    @pytest.mark.parametrize(
        "msg,kind,activity",
        [
            (message("assistant", "running"), ResultKind.WORKING, "Working"),
            (message("assistant", "cancelled"), ResultKind.IDLE, "Cancelled"),
            (message("assistant", "complete", "tool_use"), ResultKind.WORKING, "Running tool"),
            (message("user", "complete"), ResultKind.WORKING, "Processing"),
            (message("assistant", "complete", "end_turn"), ResultKind.IDLE, None),
        ],
    )
    def test_last_message(self, msg, kind, activity):
        thread = NarrativeThread.from_dict(thread_data("T", "/w", messages=[msg]))
        result = analyze_thread(thread)

        assert result.kind == kind
        assert result.activity == activity

    def test_empty_thread(self):
        assert analyze_thread(NarrativeThread()).kind == ResultKind.IDLE


class TestMatching:
    """Tests for read_thread_file() and thread_matches_cwd()."""

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops")

        assert read_thread_file(path) is None

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "binary.json"
        path.write_bytes(b'\xff\xfe{"id": 1}')

        assert read_thread_file(path) is None

    def test_subdirectory_matches(self, workspace):
        thread = NarrativeThread.from_dict(thread_data("T", str(workspace)))

        assert thread_matches_cwd(thread, str(workspace / "src"))
        assert thread_matches_cwd(thread, str(workspace))

    def test_prefix_is_not_a_match(self, workspace):
        """"/work/app" does not own "/work/app2"."""
        thread = NarrativeThread.from_dict(thread_data("T", str(workspace)))

        assert not thread_matches_cwd(thread, str(workspace) + "2")


class TestThreadReader:
    """Tests for ThreadReader."""

    def test_last_thread_wins(self, reader, workspace):
        save_thread(reader, thread_data("T-old", str(workspace), created=1))
        save_thread(reader, thread_data("T-new", str(workspace), created=2))
        (reader.state_dir / "last-thread-id").write_text("T-old\n")

        assert reader.find_thread(str(workspace)).id == "T-old"

    def test_newest_matching_thread(self, reader, workspace, tmp_path):
        save_thread(reader, thread_data("T-old", str(workspace), created=1))
        save_thread(reader, thread_data("T-new", str(workspace), created=2))
        save_thread(reader, thread_data("T-other", str(tmp_path / "elsewhere"), created=3))

        assert reader.find_thread(str(workspace)).id == "T-new"

    def test_last_thread_elsewhere_is_skipped(self, reader, workspace, tmp_path):
        other = tmp_path / "other"
        other.mkdir()
        save_thread(reader, thread_data("T-here", str(workspace), created=1))
        save_thread(reader, thread_data("T-there", str(other.resolve()), created=2))
        (reader.state_dir / "last-thread-id").write_text("T-there")

        assert reader.find_thread(str(workspace)).id == "T-here"

    def test_no_match(self, reader, workspace):
        with pytest.raises(SessionNotFoundError):
            reader.find_thread(str(workspace))

    def test_missing_threads_dir(self, tmp_path):
        reader = ThreadReader(
            NarrativeThreadsConfig(threads_dir=str(tmp_path / "none"), state_dir=str(tmp_path / "none"))
        )

        with pytest.raises(SessionNotFoundError):
            reader.find_thread("/anywhere")

    def test_result_for_cwd(self, reader, workspace):
        save_thread(
            reader,
            thread_data("T", str(workspace), messages=[message("user", "complete"), message("assistant", "running")]),
        )
        result = reader.result_for_cwd(str(workspace))

        assert result.kind == ResultKind.WORKING

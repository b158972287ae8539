"""Tests for Flask routes."""

import json
import time

import pytest

from log_records import assistant, tool_use, user, write_log
from panewatch.app import create_app
from panewatch.backends.base import PaneInfo

PERMISSION_MENU = "Do you want to proceed?\n❯ 1. Yes\n  2. No"


@pytest.fixture
def dirs(tmp_path):
    status_dir = tmp_path / "status"
    (status_dir / "panes").mkdir(parents=True)
    return {
        "projects": tmp_path / "projects",
        "status": status_dir,
        "panes": status_dir / "panes",
    }


@pytest.fixture
def app(tmp_path, dirs, fake_source):
    """Create a test app over a fake pane source."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"""
session_log:
  projects_dir: {dirs["projects"]}
narrative_threads:
  threads_dir: {tmp_path / "threads"}
  state_dir: {tmp_path / "state"}
status:
  status_dir: {dirs["status"]}
  panes_dir: {dirs["panes"]}
"""
    )
    fake_source.panes = [
        PaneInfo(target="work:0.0", session="work", command="claude", path="/w"),
        PaneInfo(target="work:0.1", session="work", index=1, command="zsh", path="/w"),
        PaneInfo(target="other:0.0", session="other", command="amp", path="/o"),
    ]
    fake_source.outputs = {
        "work:0.0": PERMISSION_MENU,
        "work:0.1": "$ make\nok",
        "other:0.0": "✻ Cogitated for 3s",
    }
    app = create_app(str(config_path), backend=fake_source)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create a test client."""
    return app.test_client()


class TestPaneRoutes:
    """Tests for /api/panes."""

    def test_list_panes(self, client):
        response = client.get("/api/panes")

        assert response.status_code == 200
        panes = {p["target"]: p for p in response.get_json()["panes"]}
        assert panes["work:0.0"]["agent"] == "structured-agent"
        assert panes["work:0.0"]["result"]["kind"] == "choice"
        assert panes["work:0.0"]["result"]["choices"] == ["Yes", "No"]
        assert panes["work:0.1"]["agent"] == "generic"
        assert panes["other:0.0"]["agent"] == "narrative-agent"
        assert panes["other:0.0"]["result"]["activity"] == "Thinking"

    def test_get_pane(self, client):
        response = client.get("/api/panes/work:0.0")

        assert response.status_code == 200
        assert response.get_json()["result"]["question"] == "Do you want to proceed?"

    def test_get_pane_not_found(self, client):
        response = client.get("/api/panes/nope:0.0")

        assert response.status_code == 404
        assert "error" in response.get_json()


class TestAttentionRoute:
    """Tests for /api/sessions/<session>/attention."""

    def test_ranking_and_best_pane(self, client, dirs):
        (dirs["status"] / "work.json").write_text(
            json.dumps({"status": "waiting", "message": "Input needed", "timestamp": time.time()})
        )
        (dirs["panes"] / "1").write_text("session=work\nstate=processing")
        (dirs["panes"] / "2").write_text("session=work\nstate=waiting")
        (dirs["panes"] / "3").write_text("session=work\nstate=done")
        (dirs["panes"] / "4").write_text("session=other\nstate=waiting")

        response = client.get("/api/sessions/work/attention")

        assert response.status_code == 200
        data = response.get_json()
        assert [(e["pane_id"], e["priority"]) for e in data["ranking"]] == [
            ("work", 0),
            ("work:0.0", 0),
            ("work:0.1", 100),
        ]
        assert [(e["pane_id"], e["label"]) for e in data["pane_ranking"]] == [
            ("2", "waiting"),
            ("1", "processing"),
            ("3", "done"),
        ]
        assert data["best_pane"]["pane_id"] == 2

    def test_without_status_files(self, client):
        data = client.get("/api/sessions/other/attention").get_json()

        assert [e["pane_id"] for e in data["ranking"]] == ["other:0.0"]
        assert data["pane_ranking"] == []
        assert data["best_pane"] is None


class TestLogStateRoute:
    """Tests for /api/sessions/<session>/log-state."""

    def test_requires_cwd(self, client):
        assert client.get("/api/sessions/work/log-state").status_code == 400

    def test_no_log(self, client):
        assert client.get("/api/sessions/work/log-state?cwd=/nowhere").status_code == 404

    def test_pending_permission(self, client, dirs):
        write_log(
            dirs["projects"] / "-w" / "s1.jsonl",
            [user("push it"), assistant(tool_use("t1", "Bash"), stop_reason="tool_use")],
        )

        response = client.get("/api/sessions/work/log-state?cwd=/w")

        assert response.status_code == 200
        data = response.get_json()
        assert data["state"]["is_waiting_permission"] is True
        assert data["activity"] == "Running command"
        assert data["status_type"] == "working"
        assert data["result"]["kind"] == "question"


class TestStatusRoutes:
    """Tests for /api/status."""

    def test_list(self, client, dirs):
        (dirs["status"] / "work.json").write_text('{"status": "permission"}')
        (dirs["status"] / "other.json").write_text('{"status": "working"}')

        statuses = client.get("/api/status").get_json()["statuses"]

        assert statuses["work"]["status"] == "permission"
        assert statuses["work"]["needs_attention"] is True
        assert statuses["other"]["needs_attention"] is False

    def test_get(self, client, dirs):
        (dirs["status"] / "work.json").write_text('{"status": "waiting", "tool": "Bash"}')

        data = client.get("/api/status/work").get_json()

        assert data["tool"] == "Bash"
        assert data["session_label"] == "work"

    def test_get_missing(self, client):
        assert client.get("/api/status/missing").status_code == 404

"""Pytest configuration and shared fixtures for panewatch tests."""

import pytest

from panewatch.backends.base import PaneInfo, PaneSource
from panewatch.services.config_service import reset_config_service


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePaneSource(PaneSource):
    """In-memory pane source."""

    def __init__(self, panes: list[PaneInfo] | None = None, outputs: dict[str, str] | None = None):
        self.panes = panes or []
        self.outputs = outputs or {}
        self.captures: list[str] = []

    @property
    def backend_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True

    def list_panes(self) -> list[PaneInfo]:
        return list(self.panes)

    def capture_pane(self, target: str, lines: int = 100) -> str | None:
        self.captures.append(target)
        return self.outputs.get(target)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_source():
    return FakePaneSource()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module-level singletons between tests."""
    reset_config_service()
    yield
    reset_config_service()

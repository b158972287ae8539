"""Fallback classifier for panes running no recognised agent."""

from panewatch.agents.base import AgentClassifier, Rule
from panewatch.models.result import AgentKind, Mode, Result, ResultKind


class GenericAgent(AgentClassifier):
    """Reports every pane as idle and never claims output."""

    kind = AgentKind.GENERIC

    @property
    def rules(self) -> list[Rule]:
        return []

    def detect_from_output(self, output: str) -> bool:
        return False

    def classify(self, text: str) -> Result:
        return Result(kind=ResultKind.IDLE, mode=Mode.UNKNOWN)

"""Per-agent output classifiers."""

from panewatch.agents.base import AgentClassifier, Rule, Screen, run_cascade
from panewatch.agents.generic import GenericAgent
from panewatch.agents.narrative import NarrativeAgent, NarrativeStatusBar
from panewatch.agents.structured import StructuredAgent

__all__ = [
    "AgentClassifier",
    "GenericAgent",
    "NarrativeAgent",
    "NarrativeStatusBar",
    "Rule",
    "Screen",
    "StructuredAgent",
    "run_cascade",
]

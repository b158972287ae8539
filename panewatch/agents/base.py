"""Base class for per-agent output classifiers.

Each classifier turns the recent text of a pane into a normalized Result by
walking an ordered list of rules. The first rule whose predicate matches
builds the result; order encodes priority, so reordering rules changes
behavior.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from panewatch.models.result import AgentKind, Mode, Result, ResultKind
from panewatch.text_normalizer import last_lines, strip

# Number of trailing lines a classifier looks at
RECENT_LINES = 50

# Question line: anything ending in "?" (trailing whitespace allowed)
QUESTION_PATTERN = re.compile(r"^(.+\?)\s*$", re.MULTILINE)

# Numbered choice line; a cursor glyph may precede the number
NUMBERED_CHOICE_PATTERN = re.compile(r"^\s*[❯>\-\*]?\s*([0-9]+)[.)\]]\s+(.+)$", re.MULTILINE)


@dataclass
class Screen:
    """ANSI-stripped pane text, split once and shared by all rules."""

    lines: list[str]
    recent: list[str] = field(default_factory=list)
    text: str = ""

    @classmethod
    def from_text(cls, text: str, window: int = RECENT_LINES) -> "Screen":
        lines = strip(text).split("\n")
        recent = last_lines(lines, window)
        return cls(lines=lines, recent=recent, text="\n".join(recent))

    def tail(self, count: int) -> list[str]:
        return last_lines(self.lines, count)

    def tail_text(self, count: int) -> str:
        return "\n".join(self.tail(count))


@dataclass(frozen=True)
class Rule:
    """One step of a classification cascade.

    ``predicate`` returns a truthy match (or None); ``build`` turns the
    match into a Result.
    """

    name: str
    predicate: Callable[[Screen], Any]
    build: Callable[[Screen, Any], Result]


def run_cascade(rules: list[Rule], screen: Screen) -> tuple[str | None, Result]:
    """Evaluate ``rules`` in order and return the first match.

    Returns:
        Tuple of (matching rule name, result). The name is None and the
        result idle when no rule matches.
    """
    for rule in rules:
        match = rule.predicate(screen)
        if match:
            return rule.name, rule.build(screen, match)
    return None, Result(kind=ResultKind.IDLE)


def numbered_choices_after_question(text: str) -> tuple[str, list[str]] | None:
    """Find two or more numbered choices after the last question line.

    Returns:
        Tuple of (question, choices), or None if there is no such block.
    """
    questions = list(QUESTION_PATTERN.finditer(text))
    if not questions:
        return None
    last_question = questions[-1]
    after = text[last_question.end() :]
    matches = NUMBERED_CHOICE_PATTERN.findall(after)
    if len(matches) < 2:
        return None
    choices = [label.strip() for _, label in matches]
    return last_question.group(1).strip(), choices


def last_question(text: str) -> str | None:
    """Return the last line of ``text`` ending in a question mark."""
    matches = QUESTION_PATTERN.findall(text)
    if not matches:
        return None
    return matches[-1]


class AgentClassifier(ABC):
    """Interface implemented by every supported agent."""

    kind: AgentKind = AgentKind.GENERIC

    @property
    @abstractmethod
    def rules(self) -> list[Rule]:
        """Ordered classification cascade."""

    @abstractmethod
    def detect_from_output(self, output: str) -> bool:
        """Check whether ANSI-stripped output looks like this agent."""

    def classify(self, text: str) -> Result:
        """Classify the recent text of a pane.

        Accepts raw or already-normalized text. Never raises; empty or
        unrecognised input yields an idle result.
        """
        screen = Screen.from_text(text or "")
        _, result = run_cascade(self.rules, screen)
        return result.model_copy(update={"mode": self.detect_mode(text or "")})

    def detect_mode(self, output: str) -> Mode:
        """Vim-like input mode; agents without modes report UNKNOWN."""
        return Mode.UNKNOWN

    def filter_status_bar(self, output: str) -> str:
        """Remove agent status bar lines, keeping content."""
        return output

    def extract_status_line(self, output: str) -> str:
        """Return the agent status bar with colors intact, or ""."""
        return ""

    def extract_suggestion(self, raw_output: str) -> str | None:
        """Return the prompt suggestion shown by the agent, if any."""
        return None

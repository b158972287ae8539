"""Classifier for the structured agent (Claude Code).

The structured agent renders a vim-like mode line, spinner glyphs with a
verb ("✻ Reading…"), tool output gutters ("⎿") and numbered permission
menus. It also writes a conversation log, which the fusion layer prefers
over anything read here.
"""

import re

from panewatch.agents.base import (
    AgentClassifier,
    Rule,
    Screen,
    last_question,
    numbered_choices_after_question,
)
from panewatch.models.result import AgentKind, Mode, Result, ResultKind
from panewatch.models.session import TOOL_ACTIVITIES, tool_activity
from panewatch.text_normalizer import DIM_SGR, last_lines, strip

# Lines examined for activity and trailing questions
ACTIVITY_WINDOW = 15

# Lines examined for an error report
ERROR_WINDOW = 5

# Questions longer than this are truncated
MAX_QUESTION_LENGTH = 100


class StructuredAgent(AgentClassifier):
    """Classifies Claude Code panes."""

    kind = AgentKind.STRUCTURED

    # "Do you want to proceed?" and friends
    APPROVAL_PATTERN = re.compile(r"(proceed|continue|look right|does this|should i)\?", re.IGNORECASE)

    # Spinner glyph followed by a verb ending in an ellipsis or "!"
    SPINNER_PATTERN = re.compile(r"[✻⏺●◐◓◑◒]\s*([^…\n.!]+?)(?:…|\.+|!)")

    TOOL_RUNNING_PATTERN = re.compile(r"⎿\s*Running[^…\n]*(?:…|\.{2,})")

    # Output gutter drawn under a tool invocation
    TOOL_OUTPUT_PATTERN = re.compile(r"^\s*[⎿├└│]")

    # "● Read(path)" or "Read(path)"
    TOOL_CALL_PATTERN = re.compile(r"●\s*(\w+)|(\w+)\(")

    ERROR_PATTERN = re.compile(r"^\s*(?:error|failed|fatal|panic):\s+(.+)", re.IGNORECASE)

    OUTPUT_MARKERS = [
        "-- INSERT --",
        "-- NORMAL --",
        "🤖",
        "📊",
        "💬",
        "Claude:",
        "Human:",
        ">>>",
        "Do you want to",
        "Would you like",
        "(Recommended)",
        "[Y/n]",
        "[y/N]",
        "Select an option",
    ]

    STATUS_INDICATORS = [
        "-- INSERT --",
        "-- NORMAL --",
        "🤖",
        "📊",
        "⏱️",
        "💬",
        "❄",
        "📂",
        "accept edits",
    ]

    def __init__(self) -> None:
        self._rules = [
            Rule("numbered-choice", self._match_choices, self._build_choice),
            Rule("approval", self._match_approval, self._build_question),
            Rule("trailing-question", self._match_trailing_question, self._build_full_question),
            Rule("activity", self._match_activity, self._build_activity),
            Rule("error", self._match_error, self._build_error),
        ]

    @property
    def rules(self) -> list[Rule]:
        return self._rules

    def detect_from_output(self, output: str) -> bool:
        return any(marker in output for marker in self.OUTPUT_MARKERS)

    def detect_mode(self, output: str) -> Mode:
        """Read the mode line from the last few lines; defaults to NORMAL."""
        for line in last_lines(strip(output).split("\n"), 5):
            if "-- INSERT --" in line:
                return Mode.INSERT
            if "-- NORMAL --" in line:
                return Mode.NORMAL
        return Mode.NORMAL

    # Rule predicates and builders

    def _match_choices(self, screen: Screen):
        return numbered_choices_after_question(screen.text)

    def _build_choice(self, screen: Screen, match) -> Result:
        question, choices = match
        return Result(kind=ResultKind.CHOICE, question=question, choices=choices)

    def _match_approval(self, screen: Screen):
        if not self.APPROVAL_PATTERN.search(screen.text):
            return None
        return last_question(screen.text)

    def _build_question(self, screen: Screen, question: str) -> Result:
        return Result(kind=ResultKind.QUESTION, question=question.strip())

    def _match_trailing_question(self, screen: Screen):
        question = last_question(screen.text)
        if question is None:
            return None
        if question not in screen.tail_text(ACTIVITY_WINDOW):
            return None
        return question

    def _build_full_question(self, screen: Screen, question: str) -> Result:
        full = self.extract_full_question(screen.tail(ACTIVITY_WINDOW), question)
        return Result(kind=ResultKind.QUESTION, question=full)

    def _match_activity(self, screen: Screen):
        return self.detect_activity(screen.tail(ACTIVITY_WINDOW))

    def _build_activity(self, screen: Screen, activity: str) -> Result:
        lowered = activity.lower()
        if lowered.startswith(("done", "completed", "finished")):
            return Result(kind=ResultKind.DONE, activity=activity)
        return Result(kind=ResultKind.WORKING, activity=activity)

    def _match_error(self, screen: Screen):
        recent = [line for line in screen.lines if line.strip()]
        for line in reversed(last_lines(recent, ERROR_WINDOW)):
            match = self.ERROR_PATTERN.match(line)
            if match:
                return match
        return None

    def _build_error(self, screen: Screen, match: re.Match) -> Result:
        return Result(kind=ResultKind.ERROR, error_snippet=match.group(0).strip())

    # Helpers

    def detect_activity(self, lines: list[str]) -> str | None:
        """Find what the agent is doing, scanning from the bottom up.

        Returns:
            Short activity text, or None if nothing looks active.
        """
        for i in range(len(lines) - 1, -1, -1):
            line = lines[i]

            if "-- INSERT --" in line or "-- NORMAL --" in line:
                if "accept edits" in line:
                    return "Edits pending"
                if "plan mode" in line:
                    return "Planning"
                continue

            match = self.SPINNER_PATTERN.search(line)
            if match:
                activity = match.group(1).strip()
                paren = activity.find("(")
                if paren > 0:
                    activity = activity[:paren].strip()
                if activity:
                    return activity

            if self.TOOL_RUNNING_PATTERN.search(line):
                return "Running tool"

            if self.TOOL_OUTPUT_PATTERN.match(line):
                for j in range(i - 1, max(-1, i - 8), -1):
                    tool = self._tool_name(lines[j])
                    if tool:
                        return tool_activity(tool)
                return "Working"

        return None

    def _tool_name(self, line: str) -> str | None:
        for match in self.TOOL_CALL_PATTERN.finditer(line):
            name = match.group(1) or match.group(2)
            if name in TOOL_ACTIVITIES:
                return name
        return None

    @staticmethod
    def extract_full_question(lines: list[str], last_q: str) -> str:
        """Rebuild a question that wrapped over several lines.

        Walks up from the line holding ``last_q`` and prepends up to two
        preceding lines until a blank line or a sentence end.
        """
        end = -1
        for i in range(len(lines) - 1, -1, -1):
            if last_q in lines[i]:
                end = i
                break
        if end < 0:
            return last_q.strip()

        parts = [lines[end].strip()]
        for i in range(end - 1, max(-1, end - 3), -1):
            line = lines[i].strip()
            if not line or line.endswith((".", "!", "?", ":")):
                break
            parts.insert(0, line)

        question = " ".join(parts)
        if len(question) > MAX_QUESTION_LENGTH:
            question = question[: MAX_QUESTION_LENGTH - 3] + "..."
        return question

    def is_status_line(self, line: str) -> bool:
        trimmed = line.strip()
        if not trimmed:
            return False
        if len(trimmed) > 10 and trimmed.count("─") > len(trimmed) // 2:
            return True
        return any(indicator in trimmed for indicator in self.STATUS_INDICATORS)

    def filter_status_bar(self, output: str) -> str:
        """Drop mode line and separator lines, keeping everything else."""
        kept = [line for line in output.split("\n") if not self.is_status_line(line)]
        return "\n".join(kept).rstrip("\n")

    def extract_status_line(self, output: str) -> str:
        """Return the lines below the last long separator, colors intact."""
        lines = output.split("\n")
        start = max(0, len(lines) - 20)
        separator = -1
        for i in range(len(lines) - 1, start - 1, -1):
            if strip(lines[i]).strip().count("─") >= 20:
                separator = i
                break
        if separator < 0:
            return ""
        below = [line.strip() for line in lines[separator + 1 :] if strip(line).strip()]
        return "\n".join(below)

    def extract_suggestion(self, raw_output: str) -> str | None:
        """Return the dimmed placeholder text after the ❯ prompt.

        Needs the raw capture; the dim attribute is how a suggestion is told
        apart from text the user typed.
        """
        for line in reversed(last_lines(raw_output.split("\n"), 20)):
            idx = line.find("❯")
            if idx < 0:
                continue
            after = line[idx + 1 :].lstrip("\u00a0 ")
            if not after.startswith(DIM_SGR):
                return None
            after = after[len(DIM_SGR) :]
            end = after.find("\x1b[")
            if end >= 0:
                after = after[:end]
            return after.strip() or None
        return None


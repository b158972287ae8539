"""Classifier for the narrative agent (Amp).

The narrative agent draws a rounded box around its input area, shows
braille spinners while thinking, "● Tool" lines while running tools and
"‣" in front of the highlighted option of a menu.
"""

import re

from pydantic import BaseModel

from panewatch.agents.base import (
    AgentClassifier,
    Rule,
    Screen,
    last_question,
    numbered_choices_after_question,
)
from panewatch.models.result import AgentKind, Result, ResultKind
from panewatch.text_normalizer import strip

# Tool name -> activity text
TOOL_ACTIVITIES = {
    "Read": "Reading file",
    "Bash": "Running command",
    "edit_file": "Editing file",
    "create_file": "Editing file",
    "Grep": "Searching",
    "glob": "Finding files",
    "Task": "Running agent",
    "web_search": "Searching web",
    "read_web_page": "Reading web page",
    "oracle": "Consulting oracle",
    "finder": "Finding code",
}

# Longest option label accepted next to a highlighted one
MAX_CHOICE_LENGTH = 40

# Lines above the first option searched for the question
QUESTION_LOOKBACK = 15


def tool_to_activity(tool: str) -> str:
    if tool in TOOL_ACTIVITIES:
        return TOOL_ACTIVITIES[tool]
    if tool:
        return f"Running {tool}"
    return "Working"


class NarrativeStatusBar(BaseModel):
    """Fields parsed from the narrative agent's box status bar."""

    token_percent: str = ""  # "27%"
    token_limit: str = ""  # "168k"
    cost: str = ""  # "$0.63"
    cost_note: str = ""  # "(free)"
    mode: str = ""  # smart, rush, auto
    path: str = ""
    branch: str = ""


class NarrativeAgent(AgentClassifier):
    """Classifies Amp panes."""

    kind = AgentKind.NARRATIVE

    SELECTED_CHOICE_PATTERN = re.compile(r"^[│\s]*‣\s+(.+?)\s*[│]?\s*$")

    # Status text shown at the bottom while a turn is in flight
    RUNNING_TOOLS_PATTERN = re.compile(r"(?:^|\s)Running\s+tools")
    WAITING_PATTERN = re.compile(r"(?:^|\s)Waiting\s+for\s+response")
    ESC_TO_CANCEL_PATTERN = re.compile(r"Esc\s+to\s+cancel")

    BRAILLE_THINKING_PATTERN = re.compile(
        r"[⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏⣾⣽⣻⢿⡿⣟⣯⣷⣳]\s+(Thinking|Analyzing|Processing|Working)\b"
    )
    THINKING_PATTERN = re.compile(r"✻\s*(Cogitated|Baked)\s+for\s+(\d+[ms]\s*)+")
    HOOK_PATTERN = re.compile(r"Running\s+\w+\s+hooks")
    TOOL_PATTERN = re.compile(r"●\s+(\w+)(?:\s*\(|\s|$)", re.MULTILINE)
    COMPLETED_TOOL_PATTERN = re.compile(r"✓\s+(Read|Grep|Bash|Task|Edit|Write|Update|Thinking)\b")

    BOX_PATTERN = re.compile(r"╭─.*─╮")
    OUTPUT_MARKERS = ["Cogitated for", "Baked for", "Running PostToolUse hooks"]
    BOX_MARKERS = ["smart", "of 168k", "(free)"]

    # ╭─27% of 168k · $0.63 (free)──────smart─╮
    TOP_LINE_PATTERN = re.compile(
        r"╭─(\d+%)\s+of\s+(\d+k)\s*·\s*(\$[\d.]+)\s*(\([^)]+\))?\s*─+\s*(\w+)\s*─╮"
    )
    # ╰──────~/path/to/project (branch)─╯
    BOTTOM_LINE_PATTERN = re.compile(r"╰─+([~/][^(]+?)\s*(?:\(([^)]+)\))?\s*─╯")

    # Fallbacks when the full border does not match
    TOKEN_PATTERN = re.compile(r"(\d+%)\s+of\s+(\d+k)")
    COST_PATTERN = re.compile(r"(\$[\d.]+)\s*(\([^)]+\))?")
    MODE_PATTERN = re.compile(r"─(smart|rush|auto|manual)─╮")
    PATH_PATTERN = re.compile(r"([~/][^\s(─]+)\s*(?:\(([^)]+)\))?─╯")

    def __init__(self) -> None:
        self._rules = [
            Rule("selected-choice", self._match_selected_choice, self._build_choice),
            Rule("numbered-choice", self._match_numbered_choices, self._build_choice),
            Rule("bottom-status", self._match_bottom_status, self._build_bottom_status),
            Rule("braille-thinking", self._match_braille, self._build_braille),
            Rule("thinking-summary", self._match_thinking, self._build_thinking),
            Rule("hooks", self._match_hooks, self._build_hooks),
            Rule("tool", self._match_tool, self._build_tool),
            Rule("completed-tool", self._match_completed_tool, self._build_tool),
            Rule("trailing-question", self._match_question, self._build_question),
        ]

    @property
    def rules(self) -> list[Rule]:
        return self._rules

    def detect_from_output(self, output: str) -> bool:
        if any(marker in output for marker in self.OUTPUT_MARKERS):
            return True
        if self.BOX_PATTERN.search(output):
            return any(marker in output for marker in self.BOX_MARKERS)
        return False

    # Rule predicates and builders

    def _match_selected_choice(self, screen: Screen):
        return self.parse_choices(screen.recent)

    def _match_numbered_choices(self, screen: Screen):
        return numbered_choices_after_question(screen.text)

    def _build_choice(self, screen: Screen, match) -> Result:
        question, choices = match
        return Result(kind=ResultKind.CHOICE, question=question or None, choices=choices)

    def _match_bottom_status(self, screen: Screen):
        bottom = screen.tail_text(3)
        if self.RUNNING_TOOLS_PATTERN.search(bottom):
            return "Running tools"
        if self.WAITING_PATTERN.search(bottom):
            return "Waiting for response"
        if self.ESC_TO_CANCEL_PATTERN.search(bottom):
            return "Active"
        return None

    def _build_bottom_status(self, screen: Screen, activity: str) -> Result:
        return Result(kind=ResultKind.WORKING, activity=activity)

    def _match_braille(self, screen: Screen):
        return self.BRAILLE_THINKING_PATTERN.search(screen.text)

    def _match_thinking(self, screen: Screen):
        return self.THINKING_PATTERN.search(screen.text)

    def _build_braille(self, screen: Screen, match: re.Match) -> Result:
        return Result(kind=ResultKind.WORKING, activity=match.group(1))

    def _build_thinking(self, screen: Screen, match) -> Result:
        return Result(kind=ResultKind.WORKING, activity="Thinking")

    def _match_hooks(self, screen: Screen):
        return self.HOOK_PATTERN.search(screen.text)

    def _build_hooks(self, screen: Screen, match) -> Result:
        return Result(kind=ResultKind.WORKING, activity="Running hooks")

    def _match_tool(self, screen: Screen):
        return self.TOOL_PATTERN.search(screen.text)

    def _match_completed_tool(self, screen: Screen):
        matches = self.COMPLETED_TOOL_PATTERN.findall(screen.tail_text(10))
        if not matches:
            return None
        return matches[-1]

    def _build_tool(self, screen: Screen, match) -> Result:
        tool = match if isinstance(match, str) else match.group(1)
        return Result(kind=ResultKind.WORKING, activity=tool_to_activity(tool))

    def _match_question(self, screen: Screen):
        question = last_question(screen.text)
        if question is None or question not in screen.tail_text(15):
            return None
        return question

    def _build_question(self, screen: Screen, question: str) -> Result:
        return Result(kind=ResultKind.QUESTION, question=question.strip())

    # Helpers

    @staticmethod
    def _option_text(line: str) -> str:
        return line.lstrip("│ \t").rstrip("│ \t")

    @classmethod
    def _is_option(cls, text: str) -> bool:
        return (
            1 < len(text) < MAX_CHOICE_LENGTH
            and "A" <= text[0] <= "Z"
            and "." not in text
            and not text.endswith(("?", ":"))
        )

    def parse_choices(self, lines: list[str]) -> tuple[str, list[str]] | None:
        """Parse a "‣"-highlighted menu.

        Unmarked options around the highlighted one are collected while
        they look like short labels. The highlighted option is returned
        first, followed by the others in screen order.

        Returns:
            Tuple of (question or "", choices), or None if no menu is shown.
        """
        selected_idx = -1
        selected = ""
        selected_col = 0
        for i, line in enumerate(lines):
            match = self.SELECTED_CHOICE_PATTERN.match(line)
            if match and match.group(1) and not match.group(1).startswith("("):
                selected_idx = i
                selected = match.group(1)
                selected_col = match.start(1)
                break
        if selected_idx < 0:
            return None

        # Options above the highlighted one are aligned with its text
        before = []
        first_idx = selected_idx
        for i in range(selected_idx - 1, -1, -1):
            line = lines[i]
            text = self._option_text(line)
            col = len(line) - len(line.lstrip("│ \t"))
            if not text or col != selected_col or not self._is_option(text):
                break
            before.insert(0, text)
            first_idx = i

        after = []
        for line in lines[selected_idx + 1 :]:
            text = self._option_text(line)
            if not text or text.startswith("╰"):
                break
            if self.SELECTED_CHOICE_PATTERN.match(line) or not self._is_option(text):
                continue
            after.append(text)

        question = ""
        for i in range(first_idx - 1, max(-1, first_idx - 1 - QUESTION_LOOKBACK), -1):
            text = self._option_text(lines[i])
            if text.endswith("?") and len(text) > 3:
                question = text
                break

        return question, [selected, *before, *after]

    def filter_status_bar(self, output: str) -> str:
        """Drop the box drawn around the input area, keeping content."""
        kept = []
        in_box = False
        for line in output.split("\n"):
            trimmed = strip(line).strip()
            if trimmed.startswith("╭"):
                in_box = True
                continue
            if trimmed.startswith("╰"):
                in_box = False
                continue
            if in_box:
                continue
            kept.append(line)
        return "\n".join(kept).rstrip("\n")

    def extract_status_line(self, output: str) -> str:
        """Return the last complete box (top border to bottom border)."""
        lines = output.split("\n")
        bottom = -1
        for i in range(len(lines) - 1, -1, -1):
            if strip(lines[i]).strip().startswith("╰"):
                bottom = i
                break
        if bottom < 0:
            return ""
        for i in range(bottom - 1, -1, -1):
            if strip(lines[i]).strip().startswith("╭"):
                return "\n".join(line.strip() for line in lines[i : bottom + 1])
        return ""

    def parse_status_bar(self, status_line: str) -> NarrativeStatusBar:
        """Parse token usage, cost, mode, path and branch from box borders."""
        bar = NarrativeStatusBar()
        for line in strip(status_line).split("\n"):
            trimmed = line.strip()
            if trimmed.startswith("╭"):
                match = self.TOP_LINE_PATTERN.search(line)
                if match:
                    bar.token_percent, bar.token_limit, bar.cost = match.group(1, 2, 3)
                    bar.cost_note = match.group(4) or ""
                    bar.mode = match.group(5)
                else:
                    tokens = self.TOKEN_PATTERN.search(line)
                    if tokens:
                        bar.token_percent, bar.token_limit = tokens.group(1, 2)
                    cost = self.COST_PATTERN.search(line)
                    if cost:
                        bar.cost = cost.group(1)
                        bar.cost_note = cost.group(2) or ""
                    mode = self.MODE_PATTERN.search(line)
                    if mode:
                        bar.mode = mode.group(1)
            elif trimmed.startswith("╰"):
                match = self.BOTTOM_LINE_PATTERN.search(line) or self.PATH_PATTERN.search(line)
                if match:
                    bar.path = match.group(1).strip()
                    bar.branch = match.group(2) or ""
        return bar

"""Tests for the classifier cascade and shared helpers."""

from panewatch.agents import GenericAgent, Rule, Screen, run_cascade
from panewatch.agents.base import last_question, numbered_choices_after_question
from panewatch.models.result import AgentKind, Mode, Result, ResultKind


class TestScreen:
    """Tests for Screen."""

    def test_strips_and_windows(self):
        text = "\n".join(f"\x1b[1mline {i}\x1b[0m" for i in range(60))
        screen = Screen.from_text(text)

        assert len(screen.lines) == 60
        assert len(screen.recent) == 50
        assert screen.recent[0] == "line 10"
        assert screen.tail_text(2) == "line 58\nline 59"


class TestRunCascade:
    """Tests for run_cascade()."""

    def test_first_match_wins(self):
        calls = []

        def never(screen):
            calls.append("never")
            return None

        def always(screen):
            calls.append("always")
            return "x"

        def unreachable(screen):
            calls.append("unreachable")
            return "y"

        rules = [
            Rule("never", never, lambda s, m: Result()),
            Rule("always", always, lambda s, m: Result(kind=ResultKind.WORKING, activity=m)),
            Rule("unreachable", unreachable, lambda s, m: Result(kind=ResultKind.DONE)),
        ]
        name, result = run_cascade(rules, Screen.from_text("anything"))

        assert name == "always"
        assert result.activity == "x"
        assert calls == ["never", "always"]

    def test_no_match_is_idle(self):
        name, result = run_cascade([], Screen.from_text(""))

        assert name is None
        assert result.kind == ResultKind.IDLE


class TestQuestionHelpers:
    """Tests for question and numbered choice helpers."""

    def test_choices_after_last_question(self):
        text = "Old question?\n1. stale\n2. stale\nNew question?\n1. Fresh\n2) Newer"

        assert numbered_choices_after_question(text) == ("New question?", ["Fresh", "Newer"])

    def test_needs_two_choices(self):
        assert numbered_choices_after_question("Why?\n1. Because") is None

    def test_no_question(self):
        assert numbered_choices_after_question("1. a\n2. b") is None

    def test_last_question(self):
        assert last_question("First?\nmiddle\nSecond?  ") == "Second?"
        assert last_question("no questions") is None


class TestGenericAgent:
    """Tests for GenericAgent."""

    def test_always_idle(self):
        agent = GenericAgent()
        result = agent.classify("Do you want to proceed?\n1. Yes\n2. No")

        assert agent.kind == AgentKind.GENERIC
        assert result.kind == ResultKind.IDLE
        assert result.mode == Mode.UNKNOWN

    def test_never_claims_output(self):
        assert not GenericAgent().detect_from_output("-- INSERT --")

    def test_status_helpers_are_passthrough(self):
        agent = GenericAgent()

        assert agent.filter_status_bar("a\nb") == "a\nb"
        assert agent.extract_status_line("a") == ""
        assert agent.extract_suggestion("❯ hi") is None

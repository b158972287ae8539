"""Classification result model shared by every agent classifier."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class AgentKind(str, Enum):
    """Which classifier and log reader apply to a pane.

    The set is closed: adding an agent means adding a member here and
    registering a classifier for it.
    """

    STRUCTURED = "structured-agent"
    """Claude Code style agent with vim-like input modes."""

    NARRATIVE = "narrative-agent"
    """Amp style agent with a box-drawn status bar and spinner glyphs."""

    GENERIC = "generic"
    """No agent recognised (shell, editor, ...)."""


class ResultKind(str, Enum):
    """Normalized state of an agent pane."""

    IDLE = "idle"
    WORKING = "working"
    DONE = "done"
    QUESTION = "question"
    CHOICE = "choice"
    ERROR = "error"

    @property
    def needs_attention(self) -> bool:
        """True when a human has to look at the pane."""
        return self in (ResultKind.QUESTION, ResultKind.CHOICE, ResultKind.ERROR)


class Mode(str, Enum):
    """Vim-like input mode, only meaningful for the structured agent."""

    UNKNOWN = "unknown"
    INSERT = "insert"
    NORMAL = "normal"


class Result(BaseModel):
    """Canonical output of classifying one pane.

    Invariants (checked on construction):
    - non-empty ``choices`` implies ``kind == CHOICE``
    - non-empty ``question`` implies ``kind`` is QUESTION or CHOICE
    """

    kind: ResultKind = Field(default=ResultKind.IDLE)
    mode: Mode = Field(default=Mode.UNKNOWN)
    question: str | None = Field(
        default=None,
        description="Question text the agent is asking",
    )
    choices: list[str] = Field(
        default_factory=list,
        description="Offered options, selected option first when known",
    )
    error_snippet: str | None = Field(default=None)
    activity: str | None = Field(
        default=None,
        description="Short description of what the agent is doing",
    )
    suggestion: str | None = Field(
        default=None,
        description="Prompt suggestion shown by the agent, if any",
    )

    @model_validator(mode="after")
    def _check_kind_consistency(self) -> "Result":
        if self.choices and self.kind != ResultKind.CHOICE:
            raise ValueError(f"choices given for a {self.kind.value} result")
        if self.question and self.kind not in (ResultKind.QUESTION, ResultKind.CHOICE):
            raise ValueError(f"question given for a {self.kind.value} result")
        return self

    @property
    def needs_attention(self) -> bool:
        return self.kind.needs_attention


class AgentState(BaseModel):
    """A Result tagged with the agent that produced it."""

    agent: AgentKind = AgentKind.GENERIC
    result: Result = Field(default_factory=Result)

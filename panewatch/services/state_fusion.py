"""Per-pane state from terminal text and agent logs.

The narrative agent's thread files only change when a message completes,
so its terminal is the better real-time source. The structured agent's log
is richer than its terminal, except that a permission menu is only visible
on screen.
"""

import logging

from pydantic import BaseModel, Field

from panewatch.agents import NarrativeAgent, NarrativeStatusBar
from panewatch.backends.base import PaneInfo, PaneSource
from panewatch.errors import SessionNotFoundError
from panewatch.models.result import AgentKind, AgentState, Result, ResultKind
from panewatch.services.agent_registry import AgentRegistry
from panewatch.services.session_log import SessionLogReader
from panewatch.services.thread_reader import ThreadReader
from panewatch.text_normalizer import strip_hyperlinks, strip_orphaned

logger = logging.getLogger(__name__)

# Non-empty lines kept for a pane preview
PREVIEW_LINES = 5


def agent_state(
    registry: AgentRegistry,
    kind: AgentKind,
    cwd: str,
    terminal_output: str,
    log_reader: SessionLogReader | None = None,
    thread_reader: ThreadReader | None = None,
) -> Result:
    """Fuse terminal and log state for one pane.

    Args:
        registry: Provides the classifier for ``kind``.
        kind: Agent detected in the pane.
        cwd: Working directory of the pane, used to find the log.
        terminal_output: Recent pane text.
        log_reader: Reader for structured agent logs.
        thread_reader: Reader for narrative agent threads, used only when
            there is no terminal text to classify.

    Returns:
        The fused Result.
    """
    classifier = registry.classifier_for(kind)

    if kind == AgentKind.GENERIC:
        return Result(kind=ResultKind.IDLE)

    if kind == AgentKind.NARRATIVE:
        if not terminal_output.strip() and cwd and thread_reader is not None:
            try:
                return thread_reader.result_for_cwd(cwd)
            except SessionNotFoundError as e:
                logger.debug(f"No thread for {cwd}: {e}")
        return classifier.classify(terminal_output)

    if cwd and log_reader is not None:
        try:
            log_result = log_reader.result_for_cwd(cwd)
        except SessionNotFoundError as e:
            logger.debug(f"No session log for {cwd}, using terminal: {e}")
        else:
            if log_result.kind == ResultKind.QUESTION:
                terminal_result = classifier.classify(terminal_output)
                if terminal_result.kind == ResultKind.CHOICE and terminal_result.choices:
                    logger.debug(f"Using {len(terminal_result.choices)} terminal choices for {cwd}")
                    return terminal_result
            return log_result.model_copy(update={"mode": classifier.detect_mode(terminal_output)})

    return classifier.classify(terminal_output)


class PaneReport(BaseModel):
    """Everything known about one pane after a poll."""

    target: str
    session: str
    window: int = 0
    index: int = 0
    command: str = ""
    path: str = ""
    active: bool = False
    agent: AgentKind = AgentKind.GENERIC
    result: Result = Field(default_factory=Result)
    status_line: str = ""
    status_bar: NarrativeStatusBar | None = Field(
        default=None, description="Parsed box status bar, narrative panes only"
    )
    preview: list[str] = Field(default_factory=list)

    def agent_state(self) -> AgentState:
        return AgentState(agent=self.agent, result=self.result)


def preview_lines(text: str, count: int = PREVIEW_LINES) -> list[str]:
    """Last ``count`` non-empty lines, without prompt or separator lines."""
    result: list[str] = []
    for line in reversed(text.split("\n")):
        if len(result) >= count:
            break
        line = strip_orphaned(strip_hyperlinks(line)).strip()
        if not line or line == ">":
            continue
        if all(ch in "─━-═│┃|╭╮╰╯ " for ch in line):
            continue
        result.insert(0, line)
    return result


class PaneMonitor:
    """Polls panes from a PaneSource and produces PaneReports."""

    def __init__(
        self,
        source: PaneSource,
        registry: AgentRegistry | None = None,
        log_reader: SessionLogReader | None = None,
        thread_reader: ThreadReader | None = None,
        capture_lines: int = 100,
    ):
        self.source = source
        self.registry = registry or AgentRegistry()
        self.log_reader = log_reader or SessionLogReader()
        self.thread_reader = thread_reader or ThreadReader()
        self.capture_lines = capture_lines

    def poll_pane(self, pane: PaneInfo) -> PaneReport:
        """Capture, detect and classify one pane."""
        output = self.source.capture_pane(pane.target, lines=self.capture_lines) or ""

        kind = self.registry.detect(pane.target, pane.command, output)
        classifier = self.registry.classifier_for(kind)
        result = agent_state(
            self.registry,
            kind,
            pane.path,
            output,
            log_reader=self.log_reader,
            thread_reader=self.thread_reader,
        )

        suggestion = classifier.extract_suggestion(output)
        if suggestion:
            result = result.model_copy(update={"suggestion": suggestion})

        status_line = classifier.extract_status_line(output)
        status_bar = None
        if isinstance(classifier, NarrativeAgent) and status_line:
            status_bar = classifier.parse_status_bar(status_line)

        return PaneReport(
            target=pane.target,
            session=pane.session,
            window=pane.window,
            index=pane.index,
            command=pane.command,
            path=pane.path,
            active=pane.active,
            agent=kind,
            result=result,
            status_line=status_line,
            status_bar=status_bar,
            preview=preview_lines(classifier.filter_status_bar(output)),
        )

    def poll(self) -> list[PaneReport]:
        """Poll every pane the source lists."""
        reports = [self.poll_pane(pane) for pane in self.source.list_panes()]
        purged = self.registry.cache.purge_expired()
        if purged:
            logger.debug(f"Purged {purged} expired detections")
        return reports

    def poll_target(self, target: str) -> PaneReport | None:
        pane = self.source.get_pane(target)
        if pane is None:
            return None
        return self.poll_pane(pane)

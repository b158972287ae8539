"""Agent identity detection with a per-pane TTL cache.

Deciding which agent runs in a pane is cheap when the pane's command names
it, and costly when the output has to be inspected. Detections are cached
per pane for a short time and dropped as soon as the pane's command
changes.
"""

import logging
import threading
import time
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta

from panewatch.agents import AgentClassifier, GenericAgent, NarrativeAgent, StructuredAgent
from panewatch.models.config import DetectionConfig
from panewatch.models.result import AgentKind, AgentState
from panewatch.text_normalizer import strip

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Lock allowing many concurrent readers or one writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self):
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


@dataclass(frozen=True)
class CachedDetection:
    """A detection remembered for one pane."""

    agent_kind: AgentKind
    observed_command: str
    expires_at: float


class DetectionCache:
    """Pane identity -> CachedDetection with expiry.

    Entries are replaced whole, never merged. Reads share the lock; writes
    take it exclusively.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(seconds=15),
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CachedDetection] = {}
        self._lock = ReadWriteLock()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get(self, pane_id: str, command: str) -> AgentKind | None:
        """Return the cached kind if the entry is live and the command unchanged."""
        with self._lock.read():
            entry = self._entries.get(pane_id)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            return None
        if entry.observed_command != command:
            return None
        return entry.agent_kind

    def put(self, pane_id: str, command: str, kind: AgentKind) -> CachedDetection:
        entry = CachedDetection(
            agent_kind=kind,
            observed_command=command,
            expires_at=self._clock() + self._ttl.total_seconds(),
        )
        with self._lock.write():
            self._entries[pane_id] = entry
        return entry

    def invalidate(self, pane_id: str) -> bool:
        """Drop the entry for one pane. Returns True if one was present."""
        with self._lock.write():
            return self._entries.pop(pane_id, None) is not None

    def clear(self) -> None:
        with self._lock.write():
            self._entries.clear()

    def purge_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock.write():
            expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)


class AgentRegistry:
    """Decides which agent runs in a pane and hands out its classifier.

    Detection precedence:
    1. Live cache entry recorded for the same command
    2. Command name hints ("claude" -> structured, "amp" -> narrative)
    3. Bare interactive shell -> generic, without looking at output
    4. Output heuristics of each classifier, in registration order
    5. Generic
    """

    def __init__(
        self,
        config: DetectionConfig | None = None,
        cache: DetectionCache | None = None,
        classifiers: list[AgentClassifier] | None = None,
    ):
        self.config = config or DetectionConfig()
        if cache is None:
            cache = DetectionCache(ttl=timedelta(seconds=self.config.ttl_seconds))
        self.cache = cache
        if classifiers is None:
            classifiers = [StructuredAgent(), NarrativeAgent()]
        self._classifiers: list[AgentClassifier] = list(classifiers)
        self._generic = GenericAgent()
        self._shells = {shell.lower() for shell in self.config.shell_commands}

    @property
    def classifiers(self) -> list[AgentClassifier]:
        return list(self._classifiers)

    def classifier_for(self, kind: AgentKind) -> AgentClassifier:
        """Return the registered classifier for ``kind`` (generic if none)."""
        for classifier in self._classifiers:
            if classifier.kind == kind:
                return classifier
        return self._generic

    def detect(self, pane_id: str, command: str, raw_output: str = "") -> AgentKind:
        """Determine the agent running in a pane.

        Args:
            pane_id: Stable pane identity, e.g. "main:0.1".
            command: Current foreground command of the pane.
            raw_output: Recent pane text, ANSI sequences allowed.

        Returns:
            The detected AgentKind. A detection made without the cache
            is stored with a fresh TTL.
        """
        command = command or ""
        cached = self.cache.get(pane_id, command)
        if cached is not None:
            return cached

        kind = self._detect_uncached(command, raw_output)
        self.cache.put(pane_id, command, kind)
        logger.debug(f"Detected {kind.value} in pane {pane_id} (command={command!r})")
        return kind

    def _detect_uncached(self, command: str, raw_output: str) -> AgentKind:
        lowered = command.lower()
        for hint, kind in self.config.command_hints.items():
            if hint.lower() in lowered:
                return kind

        # A shell prompt never hosts an agent UI; scrollback from an earlier
        # agent run must not be mistaken for a live one.
        if lowered.strip() in self._shells:
            return AgentKind.GENERIC

        if raw_output:
            stripped = strip(raw_output)
            for classifier in self._classifiers:
                if classifier.detect_from_output(stripped):
                    return classifier.kind

        return AgentKind.GENERIC

    def classify(self, pane_id: str, command: str, raw_output: str) -> AgentState:
        """Detect the agent in a pane and classify its output."""
        kind = self.detect(pane_id, command, raw_output)
        result = self.classifier_for(kind).classify(raw_output)
        return AgentState(agent=kind, result=result)

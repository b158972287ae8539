"""Tests for agent detection and the detection cache."""

import threading
import time
from datetime import timedelta

import pytest

from panewatch.agents import GenericAgent, NarrativeAgent, StructuredAgent
from panewatch.models.config import DetectionConfig
from panewatch.models.result import AgentKind, ResultKind
from panewatch.services.agent_registry import AgentRegistry, DetectionCache, ReadWriteLock


@pytest.fixture
def cache(clock):
    return DetectionCache(ttl=timedelta(seconds=15), clock=clock)


@pytest.fixture
def registry(cache):
    return AgentRegistry(cache=cache)


class TestDetectionCache:
    """Tests for DetectionCache."""

    def test_miss_when_empty(self, cache):
        assert cache.get("main:0.0", "claude") is None

    def test_hit_within_ttl(self, cache, clock):
        cache.put("main:0.0", "claude", AgentKind.STRUCTURED)
        clock.advance(14)

        assert cache.get("main:0.0", "claude") == AgentKind.STRUCTURED

    def test_expires_after_ttl(self, cache, clock):
        cache.put("main:0.0", "claude", AgentKind.STRUCTURED)
        clock.advance(15)

        assert cache.get("main:0.0", "claude") is None

    def test_expiry_tracks_fractional_ttl(self, clock):
        cache = DetectionCache(ttl=timedelta(milliseconds=1500), clock=clock)
        cache.put("main:0.0", "claude", AgentKind.STRUCTURED)
        clock.advance(1.25)
        assert cache.get("main:0.0", "claude") == AgentKind.STRUCTURED

        clock.advance(0.25)
        assert cache.get("main:0.0", "claude") is None

    def test_default_clock_is_monotonic(self):
        """Wall clock adjustments do not move expiry."""
        assert DetectionCache()._clock is time.monotonic

    def test_command_change_misses(self, cache):
        """An entry recorded for another command is not used."""
        cache.put("main:0.0", "amp", AgentKind.NARRATIVE)

        assert cache.get("main:0.0", "bash") is None

    def test_hit_does_not_extend_ttl(self, cache, clock):
        cache.put("main:0.0", "claude", AgentKind.STRUCTURED)
        clock.advance(10)
        cache.get("main:0.0", "claude")
        clock.advance(6)

        assert cache.get("main:0.0", "claude") is None

    def test_invalidate(self, cache):
        cache.put("main:0.0", "claude", AgentKind.STRUCTURED)

        assert cache.invalidate("main:0.0") is True
        assert cache.invalidate("main:0.0") is False
        assert len(cache) == 0

    def test_purge_expired(self, cache, clock):
        cache.put("old", "claude", AgentKind.STRUCTURED)
        clock.advance(10)
        cache.put("new", "amp", AgentKind.NARRATIVE)
        clock.advance(6)

        assert cache.purge_expired() == 1
        assert len(cache) == 1
        assert cache.get("new", "amp") == AgentKind.NARRATIVE

    def test_clear(self, cache):
        cache.put("a", "claude", AgentKind.STRUCTURED)
        cache.put("b", "amp", AgentKind.NARRATIVE)
        cache.clear()

        assert len(cache) == 0

    def test_concurrent_puts(self, cache):
        """Writers from several threads do not lose entries."""

        def worker(n):
            for i in range(50):
                cache.put(f"pane-{n}-{i}", "claude", AgentKind.STRUCTURED)
                cache.get(f"pane-{n}-{i}", "claude")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 200


class TestReadWriteLock:
    """Tests for ReadWriteLock."""

    def test_readers_share(self):
        lock = ReadWriteLock()
        with lock.read():
            with lock.read():
                assert lock._readers == 2
        assert lock._readers == 0

    def test_writer_waits_for_readers(self):
        lock = ReadWriteLock()
        order = []
        reading = threading.Event()
        release = threading.Event()

        def reader():
            with lock.read():
                reading.set()
                release.wait(timeout=2)
                order.append("read")

        def writer():
            with lock.write():
                order.append("write")

        t1 = threading.Thread(target=reader)
        t1.start()
        reading.wait(timeout=2)
        t2 = threading.Thread(target=writer)
        t2.start()
        release.set()
        t1.join(timeout=2)
        t2.join(timeout=2)

        assert order == ["read", "write"]


class TestDetect:
    """Tests for AgentRegistry.detect()."""

    def test_command_hint_structured(self, registry):
        assert registry.detect("main:0.0", "claude") == AgentKind.STRUCTURED

    def test_command_hint_narrative(self, registry):
        assert registry.detect("main:0.0", "amp") == AgentKind.NARRATIVE

    def test_hint_is_case_insensitive_substring(self, registry):
        assert registry.detect("main:0.0", "/usr/bin/Claude") == AgentKind.STRUCTURED

    def test_shell_skips_output_heuristics(self, registry):
        """Scrollback from an earlier agent run does not count in a shell."""
        output = "✻ Cogitated for 2m 10s\nDo you want to proceed?"

        assert registry.detect("main:0.0", "bash", output) == AgentKind.GENERIC

    def test_output_heuristics(self, registry):
        assert registry.detect("main:0.0", "node", "-- INSERT --") == AgentKind.STRUCTURED
        assert registry.detect("main:0.1", "node", "✻ Baked for 4s") == AgentKind.NARRATIVE

    def test_unknown_is_generic(self, registry):
        assert registry.detect("main:0.0", "vim", "hello") == AgentKind.GENERIC

    def test_uses_cache(self, registry, cache):
        """A live cache entry wins over output."""
        registry.detect("main:0.0", "node", "-- INSERT --")

        assert registry.detect("main:0.0", "node", "✻ Baked for 4s") == AgentKind.STRUCTURED

    def test_command_change_redetects(self, registry):
        """Leaving the agent for a shell is noticed before the TTL runs out."""
        assert registry.detect("main:0.0", "amp") == AgentKind.NARRATIVE
        assert registry.detect("main:0.0", "bash") == AgentKind.GENERIC

    def test_redetects_after_expiry(self, registry, clock):
        registry.detect("main:0.0", "node", "-- INSERT --")
        clock.advance(20)

        assert registry.detect("main:0.0", "node", "✻ Baked for 4s") == AgentKind.NARRATIVE

    def test_custom_hints(self, cache):
        config = DetectionConfig(command_hints={"ampcode": AgentKind.NARRATIVE})
        registry = AgentRegistry(config=config, cache=cache)

        assert registry.detect("main:0.0", "ampcode") == AgentKind.NARRATIVE
        assert registry.detect("main:0.1", "claude") == AgentKind.GENERIC

    def test_ttl_from_config(self):
        registry = AgentRegistry(config=DetectionConfig(ttl_seconds=30))

        assert registry.cache.ttl == timedelta(seconds=30)

    def test_uses_injected_cache(self, cache):
        """An empty injected cache is kept, not replaced."""
        registry = AgentRegistry(config=DetectionConfig(ttl_seconds=30), cache=cache)

        assert len(cache) == 0
        assert registry.cache is cache
        assert registry.cache.ttl == timedelta(seconds=15)


class TestClassifiers:
    """Tests for classifier lookup and classify()."""

    def test_classifier_for(self, registry):
        assert isinstance(registry.classifier_for(AgentKind.STRUCTURED), StructuredAgent)
        assert isinstance(registry.classifier_for(AgentKind.NARRATIVE), NarrativeAgent)
        assert isinstance(registry.classifier_for(AgentKind.GENERIC), GenericAgent)

    def test_missing_classifier_falls_back_to_generic(self, cache):
        registry = AgentRegistry(cache=cache, classifiers=[StructuredAgent()])

        assert isinstance(registry.classifier_for(AgentKind.NARRATIVE), GenericAgent)

    def test_classify(self, registry):
        state = registry.classify("main:0.0", "amp", "Run this command?\n‣ Yes\n  No")

        assert state.agent == AgentKind.NARRATIVE
        assert state.result.kind == ResultKind.CHOICE
        assert state.result.choices == ["Yes", "No"]

    def test_classify_generic(self, registry):
        state = registry.classify("main:0.0", "zsh", "Do you want to proceed?\n1. Yes\n2. No")

        assert state.agent == AgentKind.GENERIC
        assert state.result.kind == ResultKind.IDLE

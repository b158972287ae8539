"""Attention ranking across sessions and panes.

Combines hook status records, legacy pane status files and classifier
results into one ordering: lower priority values need attention sooner.
Sorting is stable, so equal priorities keep the order they were scanned in.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from panewatch.models.result import Result, ResultKind
from panewatch.models.status import AttentionEntry, PaneState, PaneStatus, StatusKind, StatusRecord

logger = logging.getLogger(__name__)

# Priority of anything that does not need attention
LOWEST_PRIORITY = 100


def status_priority(status: StatusKind) -> int:
    """Waiting for input or permission first, then working."""
    if status in (StatusKind.WAITING, StatusKind.PERMISSION):
        return 0
    if status == StatusKind.WORKING:
        return 1
    return LOWEST_PRIORITY


def pane_state_priority(state: PaneState) -> int:
    return state.priority()


def result_priority(result: Result) -> int:
    """Results asking the user something rank first, then working, then done."""
    if result.kind in (ResultKind.CHOICE, ResultKind.QUESTION, ResultKind.ERROR):
        return 0
    if result.kind == ResultKind.WORKING:
        return 1
    if result.kind == ResultKind.DONE:
        return 2
    return LOWEST_PRIORITY


def find_priority_pane(statuses: Iterable[PaneStatus], session: str) -> PaneStatus | None:
    """Pick the pane of ``session`` that most needs attention.

    Ties go to the first pane scanned.

    Returns:
        The chosen PaneStatus, or None if the session has no pane status.
    """
    best: PaneStatus | None = None
    best_priority = LOWEST_PRIORITY + 1
    for status in statuses:
        if status.session_label != session:
            continue
        priority = pane_state_priority(status.state)
        if priority < best_priority:
            best = status
            best_priority = priority
    return best


class PriorityService:
    """Builds attention rankings.

    Status records older than ``fresh_after`` are ranked lowest; a hook that
    stopped reporting says nothing about the present.
    """

    def __init__(self, fresh_after: timedelta | None = None):
        self.fresh_after = fresh_after

    def _record_priority(self, record: StatusRecord, now: datetime | None) -> int:
        if self.fresh_after is not None and not record.is_fresh(self.fresh_after, now=now):
            return LOWEST_PRIORITY
        return status_priority(record.status)

    def resolve(
        self,
        status_records: Iterable[StatusRecord],
        pane_results: Mapping[str, Result],
        now: datetime | None = None,
    ) -> list[AttentionEntry]:
        """Merge status records and pane results into one ranking.

        Args:
            status_records: Hook records, keyed into the ranking by session label.
            pane_results: Classifier results keyed by pane identity, in scan order.
            now: Reference time for freshness checks.

        Returns:
            Entries sorted by priority, stable for ties.
        """
        entries = []
        for record in status_records:
            entries.append(
                AttentionEntry(
                    pane_id=record.session_label,
                    priority=self._record_priority(record, now),
                    source="status",
                    label=record.message or record.status.value,
                )
            )
        for pane_id, result in pane_results.items():
            entries.append(
                AttentionEntry(
                    pane_id=pane_id,
                    priority=result_priority(result),
                    source="result",
                    label=result.question or result.activity or result.kind.value,
                )
            )

        ranked = sorted(entries, key=lambda entry: entry.priority)
        logger.debug(f"Ranked {len(ranked)} attention entries")
        return ranked

    def rank_panes(self, statuses: Iterable[PaneStatus]) -> list[AttentionEntry]:
        """Rank legacy pane status records."""
        entries = [
            AttentionEntry(
                pane_id=str(status.pane_id),
                priority=pane_state_priority(status.state),
                source="pane-status",
                label=status.state.value,
            )
            for status in statuses
        ]
        return sorted(entries, key=lambda entry: entry.priority)

    def best_pane(self, statuses: Iterable[PaneStatus], session: str) -> PaneStatus | None:
        return find_priority_pane(statuses, session)

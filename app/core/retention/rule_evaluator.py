"""Retention rule evaluation"""
import logging
from datetime import datetime, timedelta

from app.core.domain.retention import ArchiveMatch, RetentionWindow, RuleConditions, RuleSnapshot
from app.core.retention.record_store import RecordStore

logger = logging.getLogger(__name__)


def compute_cutoff(window: RetentionWindow, now: datetime) -> datetime:
    """
    Cutoff instant for a retention window.

    Records created strictly before the cutoff are old enough to archive.
    A zero window yields ``now`` itself; a window reaching past the earliest
    representable datetime is clamped to ``datetime.min``.
    """
    if window.milliseconds <= 0:
        return now
    if window.milliseconds >= (now - datetime.min) / timedelta(milliseconds=1):
        return datetime.min
    return now - window.to_timedelta()


def build_match(conditions: RuleConditions, window: RetentionWindow, now: datetime) -> ArchiveMatch:
    """Selection predicate for ``conditions`` evaluated at ``now``"""
    return ArchiveMatch(cutoff=compute_cutoff(window, now), conditions=conditions)


class RuleEvaluator:
    """
    Applies a single retention rule to the record store.

    The evaluator never modifies the rule; recording the run is the
    scheduler's job.
    """

    def __init__(self, store: RecordStore):
        """
        Args:
            store: Record store to archive through
        """
        self.store = store

    def match_for(self, rule: RuleSnapshot, now: datetime) -> ArchiveMatch:
        return build_match(rule.conditions, rule.window, now)

    def apply(self, rule: RuleSnapshot, now: datetime) -> int:
        """
        Archive every record the rule selects at ``now``.

        Args:
            rule: Rule snapshot
            now: Evaluation instant; also written as archived_at

        Returns:
            Number of records archived, as reported by the store's bulk update

        Raises:
            StoreError: the bulk update failed
        """
        match = self.match_for(rule, now)
        archived = self.store.archive_matching(match, archived_at=now)
        logger.info(
            f"Rule \"{rule.name}\": archived {archived} logs (cutoff {match.cutoff.isoformat()})",
            extra={'component': 'RuleEvaluator', 'rule': rule.name}
        )
        return archived

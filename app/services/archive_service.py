"""Archive service: rule-driven and one-off archival"""
import logging
from datetime import datetime
from typing import Callable, Mapping, Optional, Union

from app.config.timezone import to_naive_utc, utc_now
from app.core.domain.retention import (
    ArchiveCriteria,
    CycleResult,
    ManualArchiveResult,
    RuleSnapshot,
)
from app.core.errors import EamsError, StoreError
from app.core.retention.record_store import RecordStore
from app.core.retention.rule_evaluator import RuleEvaluator, build_match

logger = logging.getLogger(__name__)


class ArchiveService:
    """
    Applies retention rules and one-off archive criteria.

    Responsibilities:
    - Run an archival cycle over every active auto-archive rule
    - Apply a single rule on demand
    - Archive ad hoc with explicit criteria
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize archive service.

        Args:
            store: Record store
            clock: Source of the current (naive UTC) time
        """
        self.store = store
        self.clock = clock
        self.evaluator = RuleEvaluator(store)

    def _resolve_now(self, now: Optional[datetime]) -> datetime:
        return to_naive_utc(now) if now is not None else self.clock()

    def run_cycle(self, now: Optional[datetime] = None) -> CycleResult:
        """
        Run one archival cycle.

        Steps:
        1. Load a snapshot of every active rule with auto-archive enabled
        2. Apply each rule in creation order
        3. Record last_run_at for each rule that applied cleanly

        A failing rule is logged and skipped; the cycle itself only fails
        when the rules cannot be loaded.

        Args:
            now: Evaluation instant (defaults to the clock)

        Returns:
            CycleResult with rules processed and logs archived
        """
        now = self._resolve_now(now)
        logger.info("Starting auto-archival cycle...", extra={'component': 'ArchiveService'})

        try:
            rules = self.store.load_active_auto_archive_rules()
        except Exception as e:
            logger.error(
                f"Auto-archival cycle failed: {e}",
                extra={'component': 'ArchiveService'},
                exc_info=True
            )
            return CycleResult(success=False, error=str(e))

        total_archived = 0
        for rule in rules:
            try:
                archived = self.evaluator.apply(rule, now)
            except Exception as e:
                # Records stay eligible; the next cycle picks them up
                logger.error(
                    f"Rule \"{rule.name}\" failed, continuing with next rule: {e}",
                    extra={'component': 'ArchiveService', 'rule': rule.name},
                    exc_info=True
                )
                continue

            total_archived += archived
            try:
                self.store.mark_rule_run(rule.id, now)
            except StoreError as e:
                logger.error(
                    f"Could not record last run for rule \"{rule.name}\": {e}",
                    extra={'component': 'ArchiveService', 'rule': rule.name}
                )

        logger.info(
            f"Auto-archival completed. {len(rules)} rules processed, {total_archived} logs archived.",
            extra={'component': 'ArchiveService'}
        )
        return CycleResult(
            success=True,
            rules_processed=len(rules),
            logs_archived=total_archived,
        )

    def apply_rule(self, rule: RuleSnapshot, now: Optional[datetime] = None) -> int:
        """
        Apply one rule immediately and record its run.

        Unlike a cycle, store errors propagate to the caller.

        Returns:
            Number of logs archived
        """
        now = self._resolve_now(now)
        archived = self.evaluator.apply(rule, now)
        self.store.mark_rule_run(rule.id, now)
        return archived

    def preview(self, criteria: ArchiveCriteria, now: Optional[datetime] = None) -> int:
        """Count the logs ``criteria`` would archive at ``now`` without archiving them"""
        match = build_match(criteria.conditions, criteria.window, self._resolve_now(now))
        return self.store.count_matching(match)

    def manual_archive(
        self,
        criteria: Union[ArchiveCriteria, Mapping],
        now: Optional[datetime] = None,
    ) -> ManualArchiveResult:
        """
        Archive once with explicit criteria.

        ``criteria`` may be an ArchiveCriteria or a raw mapping with
        retentionDuration / retentionUnit / retentionDays / severity /
        service / errorType keys. Invalid criteria never reach the store.

        Returns:
            ManualArchiveResult; failures carry the error message
        """
        try:
            if not isinstance(criteria, ArchiveCriteria):
                criteria = ArchiveCriteria.from_input(
                    retention_duration=criteria.get("retentionDuration"),
                    retention_unit=criteria.get("retentionUnit"),
                    retention_days=criteria.get("retentionDays"),
                    severity=criteria.get("severity"),
                    service=criteria.get("service"),
                    error_type=criteria.get("errorType"),
                )

            now = self._resolve_now(now)
            match = build_match(criteria.conditions, criteria.window, now)
            archived = self.store.archive_matching(match, archived_at=now)
        except EamsError as e:
            logger.warning(f"Manual archive failed: {e}", extra={'component': 'ArchiveService'})
            return ManualArchiveResult(success=False, error=str(e))

        logger.info(f"Manual archive: {archived} logs archived", extra={'component': 'ArchiveService'})
        return ManualArchiveResult(success=True, logs_archived=archived)

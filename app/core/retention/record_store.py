"""Record store used by the retention core"""
import logging
from datetime import datetime
from typing import List, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.core.domain.retention import ArchiveMatch, RuleSnapshot
from app.core.errors import StoreError, ValidationError
from app.db.models.error_log import ErrorLog
from app.db.models.retention_rule import RetentionRule

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Protocol for the record store consumed by the retention core"""

    def archive_matching(self, match: ArchiveMatch, archived_at: datetime) -> int:
        """
        Archive every record selected by ``match`` in one conditional bulk update.

        Returns:
            Number of records transitioned to archived
        """
        ...

    def count_matching(self, match: ArchiveMatch) -> int:
        """Count records currently selected by ``match``"""
        ...

    def load_active_auto_archive_rules(self) -> List[RuleSnapshot]:
        """Snapshot of every rule with is_active and auto_archive set, in creation order"""
        ...

    def mark_rule_run(self, rule_id: int, ran_at: datetime) -> bool:
        """
        Persist a rule's last_run_at.

        Returns:
            False if the rule no longer exists
        """
        ...


def match_clauses(match: ArchiveMatch) -> list:
    """Translate an ArchiveMatch into SQLAlchemy WHERE clauses"""
    clauses = [
        ErrorLog.is_archived.is_(False),
        ErrorLog.created_at < match.cutoff,
    ]
    conditions = match.conditions
    if conditions.severity:
        clauses.append(ErrorLog.severity.in_(list(conditions.severity)))
    if conditions.service:
        clauses.append(ErrorLog.service.in_(list(conditions.service)))
    if conditions.error_type:
        clauses.append(ErrorLog.error_type.in_(list(conditions.error_type)))
    return clauses


class SqlAlchemyRecordStore:
    """
    Record store backed by the SQLAlchemy models.

    Every operation runs in its own short session and commits on its own,
    so one rule's update never depends on another's.
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Args:
            session_factory: Session maker bound to the application engine
        """
        self.session_factory = session_factory

    def archive_matching(self, match: ArchiveMatch, archived_at: datetime) -> int:
        stmt = (
            update(ErrorLog)
            .where(*match_clauses(match))
            .values(is_archived=True, archived_at=archived_at, updated_at=archived_at)
            .execution_options(synchronize_session=False)
        )
        with self.session_factory() as db:
            try:
                result = db.execute(stmt)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreError(f"Bulk archive failed: {e}") from e
        return result.rowcount

    def count_matching(self, match: ArchiveMatch) -> int:
        stmt = select(func.count()).select_from(ErrorLog).where(*match_clauses(match))
        with self.session_factory() as db:
            try:
                return db.execute(stmt).scalar_one()
            except SQLAlchemyError as e:
                raise StoreError(f"Count of archivable logs failed: {e}") from e

    def load_active_auto_archive_rules(self) -> List[RuleSnapshot]:
        stmt = (
            select(RetentionRule)
            .where(RetentionRule.is_active.is_(True), RetentionRule.auto_archive.is_(True))
            .order_by(RetentionRule.created_at, RetentionRule.id)
        )
        with self.session_factory() as db:
            try:
                rules = db.execute(stmt).scalars().all()
            except SQLAlchemyError as e:
                raise StoreError(f"Loading retention rules failed: {e}") from e

            snapshots = []
            for rule in rules:
                try:
                    snapshots.append(RuleSnapshot.from_model(rule))
                except (ValidationError, ValueError) as e:
                    logger.warning(f"Skipping malformed retention rule '{rule.name}': {e}")
            return snapshots

    def mark_rule_run(self, rule_id: int, ran_at: datetime) -> bool:
        stmt = (
            update(RetentionRule)
            .where(RetentionRule.id == rule_id)
            .values(last_run_at=ran_at)
            .execution_options(synchronize_session=False)
        )
        with self.session_factory() as db:
            try:
                result = db.execute(stmt)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreError(f"Saving last run of rule {rule_id} failed: {e}") from e
        if result.rowcount == 0:
            logger.warning(f"Rule {rule_id} disappeared before its run could be recorded")
            return False
        return True

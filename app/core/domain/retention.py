"""Retention domain types"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from app.core.errors import ValidationError
from app.db.models.error_log import Severity, ErrorType
from app.db.models.retention_rule import RetentionRule, RetentionUnit

# Milliseconds per retention unit
UNIT_MILLISECONDS = {
    RetentionUnit.MINUTES: 60_000,
    RetentionUnit.HOURS: 3_600_000,
    RetentionUnit.DAYS: 86_400_000,
}


def _parse_enum(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label} '{value}' (expected one of: {allowed})")


@dataclass(frozen=True)
class RetentionWindow:
    """
    Canonical retention window: a non-negative duration and its unit.

    Legacy inputs (retentionDays) are mapped here, once, so nothing past
    this point needs to know about them.
    """
    duration: float
    unit: RetentionUnit

    @classmethod
    def from_input(
        cls,
        retention_duration=None,
        retention_unit=None,
        retention_days=None,
        allow_zero: bool = False,
    ) -> "RetentionWindow":
        """
        Normalize raw retention input.

        Args:
            retention_duration: Duration in ``retention_unit``
            retention_unit: "minutes" | "hours" | "days" (default "days")
            retention_days: Legacy field, used only when no duration is given
            allow_zero: Accept a zero duration (one-off archive requests)

        Raises:
            ValidationError: missing, non-numeric or out-of-range duration, or unknown unit
        """
        duration = retention_duration
        unit = retention_unit

        if duration is None and retention_days is not None:
            duration = retention_days
            unit = RetentionUnit.DAYS

        if duration is None:
            raise ValidationError("retentionDuration (with unit) or retentionDays is required")

        if isinstance(duration, bool):
            raise ValidationError("retentionDuration must be a number")
        try:
            duration = float(duration)
        except (TypeError, ValueError):
            raise ValidationError(f"retentionDuration must be a number, got '{duration}'")
        if math.isnan(duration) or math.isinf(duration):
            raise ValidationError("retentionDuration must be a finite number")

        if duration < 0:
            raise ValidationError("retentionDuration must not be negative")
        if duration == 0 and not allow_zero:
            raise ValidationError("retentionDuration must be greater than zero")

        unit = _parse_enum(RetentionUnit, unit or RetentionUnit.DAYS, "retentionUnit")
        return cls(duration=duration, unit=unit)

    @property
    def milliseconds(self) -> float:
        return self.duration * UNIT_MILLISECONDS[self.unit]

    def to_timedelta(self) -> timedelta:
        return timedelta(milliseconds=self.milliseconds)


@dataclass(frozen=True)
class RuleConditions:
    """
    Record selection conditions.

    Values within one dimension are alternatives; dimensions are combined.
    An empty dimension matches everything.
    """
    severity: Tuple[Severity, ...] = ()
    service: Tuple[str, ...] = ()
    error_type: Tuple[ErrorType, ...] = ()

    @classmethod
    def from_input(
        cls,
        severity: Optional[Iterable[str]] = None,
        service: Optional[Iterable[str]] = None,
        error_type: Optional[Iterable[str]] = None,
    ) -> "RuleConditions":
        """Validate and de-duplicate raw condition lists (order preserved)"""
        return cls(
            severity=_unique(_parse_enum(Severity, s, "severity") for s in (severity or [])),
            service=_unique(str(s) for s in (service or []) if str(s).strip()),
            error_type=_unique(_parse_enum(ErrorType, e, "errorType") for e in (error_type or [])),
        )

    def as_lists(self) -> dict:
        """Plain value lists, the shape persisted on RetentionRule"""
        return {
            "severity": [s.value for s in self.severity],
            "service": list(self.service),
            "errorType": [e.value for e in self.error_type],
        }


def _unique(values) -> tuple:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return tuple(seen)


@dataclass(frozen=True)
class ArchiveMatch:
    """
    Concrete selection predicate handed to the record store.

    Selects records that are not archived, were created strictly before
    ``cutoff`` and satisfy ``conditions``.
    """
    cutoff: datetime
    conditions: RuleConditions = field(default_factory=RuleConditions)

    def matches(
        self,
        severity,
        service: str,
        error_type,
        is_archived: bool,
        created_at: datetime,
    ) -> bool:
        """Evaluate the predicate for a single record's fields"""
        if is_archived or not created_at < self.cutoff:
            return False
        if self.conditions.severity and Severity(severity) not in self.conditions.severity:
            return False
        if self.conditions.service and service not in self.conditions.service:
            return False
        if self.conditions.error_type and ErrorType(error_type) not in self.conditions.error_type:
            return False
        return True


@dataclass(frozen=True)
class RuleSnapshot:
    """
    Immutable copy of a RetentionRule taken when a cycle loads its rules.

    A cycle works on these, so rules edited or deleted mid-cycle do not
    change what the cycle does.
    """
    id: int
    name: str
    conditions: RuleConditions
    window: RetentionWindow

    @classmethod
    def from_model(cls, rule: RetentionRule) -> "RuleSnapshot":
        return cls(
            id=rule.id,
            name=rule.name,
            conditions=RuleConditions.from_input(
                severity=rule.severity_conditions,
                service=rule.service_conditions,
                error_type=rule.error_type_conditions,
            ),
            window=RetentionWindow(
                duration=float(rule.retention_duration),
                unit=RetentionUnit(rule.retention_unit),
            ),
        )


@dataclass(frozen=True)
class ArchiveCriteria:
    """
    One-off archive request: optional single-value filters plus a window.
    Never persisted.
    """
    window: RetentionWindow
    severity: Optional[Severity] = None
    service: Optional[str] = None
    error_type: Optional[ErrorType] = None

    @classmethod
    def from_input(
        cls,
        retention_duration=None,
        retention_unit=None,
        retention_days=None,
        severity: Optional[str] = None,
        service: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> "ArchiveCriteria":
        return cls(
            window=RetentionWindow.from_input(
                retention_duration=retention_duration,
                retention_unit=retention_unit,
                retention_days=retention_days,
                allow_zero=True,
            ),
            severity=_parse_enum(Severity, severity, "severity") if severity else None,
            service=service or None,
            error_type=_parse_enum(ErrorType, error_type, "errorType") if error_type else None,
        )

    @property
    def conditions(self) -> RuleConditions:
        """Single-value filters expressed as one-element conditions"""
        return RuleConditions(
            severity=(self.severity,) if self.severity else (),
            service=(self.service,) if self.service else (),
            error_type=(self.error_type,) if self.error_type else (),
        )


@dataclass
class CycleResult:
    """Outcome of one archival cycle"""
    success: bool
    rules_processed: int = 0
    logs_archived: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error}
        return {
            "success": True,
            "rulesProcessed": self.rules_processed,
            "logsArchived": self.logs_archived,
        }


@dataclass
class ManualArchiveResult:
    """Outcome of a one-off archive request"""
    success: bool
    logs_archived: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error}
        return {"success": True, "logsArchived": self.logs_archived}

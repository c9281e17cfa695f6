"""Error log ingestion service"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from sqlalchemy.orm import Session

from app.config.timezone import utc_now
from app.core.errors import ValidationError
from app.db.models.error_log import ErrorLog, ErrorType, Severity
from app.db.queries import count_similar_recent, create_error_log, mark_email_sent
from app.notifications.email_service import EmailNotificationService

logger = logging.getLogger(__name__)


class ErrorLogService:
    """
    Stores reported errors and decides whether they warrant an alert.

    Alert policy:
    - critical errors always alert ("severity")
    - high/medium errors alert when an identical error (same message,
      service and severity) was reported inside the repeat window ("repeated")
    """

    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailNotificationService] = None,
        repeat_window_minutes: int = 60,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            db: Database session
            email_service: Alert sender; None disables delivery
            repeat_window_minutes: Look-back window for repeated errors
            clock: Source of the current (naive UTC) time
        """
        self.db = db
        self.email_service = email_service
        self.repeat_window = timedelta(minutes=repeat_window_minutes)
        self.clock = clock

    @staticmethod
    def validate(severity, service, error_type, message) -> Tuple[Severity, ErrorType]:
        """Check required fields and enum values"""
        if not severity or not service or not error_type or not message:
            raise ValidationError("Missing required fields: severity, service, errorType, message")
        try:
            severity = Severity(severity)
        except ValueError:
            raise ValidationError(f"Invalid severity '{severity}'")
        try:
            error_type = ErrorType(error_type)
        except ValueError:
            raise ValidationError(f"Invalid errorType '{error_type}'")
        return severity, error_type

    def alert_reason(self, error_log: ErrorLog) -> Optional[str]:
        """Why ``error_log`` should alert, or None"""
        if error_log.severity == Severity.CRITICAL:
            return "severity"
        if error_log.severity in (Severity.HIGH, Severity.MEDIUM):
            if count_similar_recent(self.db, error_log, self.repeat_window) > 0:
                return "repeated"
        return None

    async def ingest(
        self,
        severity,
        service: str,
        error_type,
        message: str,
        **optional,
    ) -> Tuple[ErrorLog, str]:
        """
        Store an error report and alert if needed.

        Args:
            severity, service, error_type, message: Required fields
            **optional: stack_trace, url, user_agent, user_id, ip_address,
                session_id, metadata

        Returns:
            (stored error log, alert status: "sent" | "not sent" | "not required")
        """
        severity, error_type = self.validate(severity, service, error_type, message)

        error_log = create_error_log(
            db=self.db,
            severity=severity,
            service=service,
            error_type=error_type,
            message=message,
            **optional,
        )
        logger.info(
            f"Logged {severity.value} {error_type.value} error from {service}",
            extra={'component': 'ErrorLogService', 'error_log_id': error_log.id}
        )

        reason = self.alert_reason(error_log)
        if reason is None:
            return error_log, "not required"

        if self.email_service is None or error_log.email_sent:
            return error_log, "not sent"

        if await self.email_service.send_error_alert(error_log, reason):
            mark_email_sent(self.db, error_log, self.clock())
            return error_log, "sent"
        return error_log, "not sent"

"""Centralized error handling"""
import logging
import traceback
from typing import Optional

from app.db.models.error_log import ErrorType, Severity

logger = logging.getLogger(__name__)


class ErrorHandler:
    """
    Handles unexpected runtime errors of the service itself.

    Besides logging, each failure is recorded as an error log of this
    service, so the dashboard shows its own faults next to everyone else's.
    """

    def __init__(self, session_factory=None, service_name: str = "eams"):
        """
        Initialize error handler.

        Args:
            session_factory: Session maker used to record failures (None: log only)
            service_name: Service name written on recorded errors
        """
        self.session_factory = session_factory
        self.service_name = service_name

    def handle_runtime_error(
        self,
        component: str,
        error: Exception,
        url: Optional[str] = None,
    ) -> None:
        """
        Handle a non-fatal runtime error.

        Actions:
        1. Log error with context and stack trace
        2. Write it to the error_logs table
        3. Continue execution

        Args:
            component: Component where error occurred
            error: The exception
            url: Request URL (if applicable)
        """
        logger.error(
            f"RUNTIME ERROR in {component}: {error}",
            extra={'component': component},
            exc_info=error
        )

        if self.session_factory is None:
            return

        stack_trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))

        # Log to database
        try:
            from app.db.queries import create_error_log
            with self.session_factory() as db:
                create_error_log(
                    db=db,
                    severity=Severity.HIGH,
                    service=self.service_name,
                    error_type=ErrorType.SERVER,
                    message=f"{type(error).__name__} in {component}: {error}",
                    stack_trace=stack_trace,
                    url=url,
                    metadata={"component": component},
                )
        except Exception as e:
            logger.error(f"Failed to log error to database: {e}")

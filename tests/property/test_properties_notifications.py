"""Property-based tests for error ingestion and alert notifications"""
import asyncio
import pytest
from hypothesis import given, settings, strategies as st
from datetime import datetime, timedelta

from app.core.errors import ValidationError
from app.db.models import ErrorLog, ErrorType, Severity

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _email_service(timezone="UTC"):
    from app.notifications.email_service import EmailNotificationService

    return EmailNotificationService(
        server="smtp.test.com",
        port=465,
        user="alerts@test.com",
        password="secret",
        from_email="alerts@test.com",
        to_email="oncall@test.com",
        use_ssl=True,
        timezone=timezone,
    )


class RecordingEmailService:
    """Collects alerts instead of sending them"""

    def __init__(self, delivered=True):
        self.delivered = delivered
        self.alerts = []

    async def send_error_alert(self, error_log, reason="severity"):
        self.alerts.append((error_log.id, reason))
        return self.delivered


def test_error_alert_content():
    service = _email_service("Africa/Johannesburg")
    error_log = ErrorLog(
        severity=Severity.CRITICAL,
        service="payments",
        error_type=ErrorType.DATABASE,
        message="connection pool exhausted",
        stack_trace="Traceback: ...",
        url="/api/pay",
        created_at=NOW,
    )

    subject, body = service.build_error_alert(error_log, "severity")

    assert subject == "Error Alert: CRITICAL - payments"
    assert "Critical Severity Error" in body
    assert "connection pool exhausted" in body
    assert "Traceback: ..." in body
    assert "/api/pay" in body
    # 12:00 UTC rendered in the configured zone
    assert "2026-03-01 14:00:00 SAST" in body

    _, repeated_body = service.build_error_alert(error_log, "repeated")
    assert "Repeated Error Occurrence" in repeated_body


@pytest.mark.asyncio
async def test_send_error_alert_delivers_message(monkeypatch):
    import aiosmtplib

    sent = []

    async def fake_send(message, **kwargs):
        sent.append((message, kwargs))

    monkeypatch.setattr(aiosmtplib, "send", fake_send)

    error_log = ErrorLog(
        severity=Severity.CRITICAL,
        service="auth",
        error_type=ErrorType.SERVER,
        message="token signer unavailable",
        created_at=NOW,
    )
    assert await _email_service().send_error_alert(error_log) is True

    (message, kwargs), = sent
    assert message["Subject"] == "Error Alert: CRITICAL - auth"
    assert message["To"] == "oncall@test.com"
    assert kwargs["hostname"] == "smtp.test.com"
    assert kwargs["use_tls"] is True


@pytest.mark.asyncio
async def test_send_failure_reported_as_false(monkeypatch):
    import aiosmtplib

    async def rejecting_send(message, **kwargs):
        raise ValueError("recipient refused")

    monkeypatch.setattr(aiosmtplib, "send", rejecting_send)

    error_log = ErrorLog(
        severity=Severity.CRITICAL,
        service="auth",
        error_type=ErrorType.SERVER,
        message="boom",
        created_at=NOW,
    )
    assert await _email_service().send_error_alert(error_log) is False


@pytest.mark.parametrize("fields", [
    {"severity": None, "service": "auth", "error_type": "server", "message": "x"},
    {"severity": "low", "service": "", "error_type": "server", "message": "x"},
    {"severity": "low", "service": "auth", "error_type": "server", "message": None},
    {"severity": "fatal", "service": "auth", "error_type": "server", "message": "x"},
    {"severity": "low", "service": "auth", "error_type": "mobile", "message": "x"},
])
def test_ingest_validation(fields):
    from app.services.error_log_service import ErrorLogService

    with pytest.raises(ValidationError):
        ErrorLogService.validate(**fields)


# Feature: error-audit-management, Property 12: Alert policy
@given(
    severity=st.sampled_from(list(Severity)),
    previous=st.integers(min_value=0, max_value=3),
)
@settings(max_examples=50, deadline=None)
def test_alert_policy(severity, previous):
    """
    Feature: error-audit-management, Property 12: Alert policy

    Critical errors always alert; high and medium errors alert only when
    the same error was already reported inside the repeat window; low
    errors never alert.
    """
    from app.db.database import init_database, create_all_tables, drop_all_tables
    from app.db.queries import create_error_log
    from app.db.session import get_db_session
    from app.services.error_log_service import ErrorLogService

    init_database("sqlite:///:memory:")
    create_all_tables()

    try:
        with get_db_session() as db:
            for _ in range(previous):
                create_error_log(
                    db=db,
                    severity=severity,
                    service="checkout",
                    error_type="server",
                    message="cart total mismatch",
                )

            email = RecordingEmailService()
            service = ErrorLogService(db, email_service=email, clock=lambda: NOW)
            error_log, status = asyncio.run(
                service.ingest(severity.value, "checkout", "server", "cart total mismatch")
            )

            if severity == Severity.CRITICAL:
                expected = "severity"
            elif severity in (Severity.HIGH, Severity.MEDIUM) and previous:
                expected = "repeated"
            else:
                expected = None

            if expected is None:
                assert status == "not required"
                assert email.alerts == []
                assert error_log.email_sent is False
            else:
                assert status == "sent"
                assert email.alerts == [(error_log.id, expected)]
                assert error_log.email_sent is True
                assert error_log.email_sent_at == NOW

    finally:
        drop_all_tables()


@pytest.mark.asyncio
async def test_repeats_outside_window_do_not_alert():
    from app.db.database import init_database, create_all_tables, drop_all_tables
    from app.db.queries import create_error_log
    from app.db.session import get_db_session
    from app.services.error_log_service import ErrorLogService
    from app.config.timezone import utc_now

    init_database("sqlite:///:memory:")
    create_all_tables()

    try:
        with get_db_session() as db:
            create_error_log(
                db=db,
                severity="high",
                service="search",
                error_type="database",
                message="index stale",
                created_at=utc_now() - timedelta(hours=3),
            )

            email = RecordingEmailService()
            service = ErrorLogService(db, email_service=email, repeat_window_minutes=60)
            _, status = await service.ingest("high", "search", "database", "index stale")

            assert status == "not required"
            assert email.alerts == []

    finally:
        drop_all_tables()


@pytest.mark.asyncio
async def test_alert_not_sent_without_delivery():
    from app.db.database import init_database, create_all_tables, drop_all_tables
    from app.db.session import get_db_session
    from app.services.error_log_service import ErrorLogService

    init_database("sqlite:///:memory:")
    create_all_tables()

    try:
        with get_db_session() as db:
            # Alerts disabled
            _, status = await ErrorLogService(db).ingest("critical", "auth", "server", "down")
            assert status == "not sent"

            # Delivery failed
            failing = RecordingEmailService(delivered=False)
            error_log, status = await ErrorLogService(db, email_service=failing).ingest(
                "critical", "auth", "server", "still down"
            )
            assert status == "not sent"
            assert error_log.email_sent is False

    finally:
        drop_all_tables()

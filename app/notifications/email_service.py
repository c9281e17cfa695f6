"""Email notification service"""
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from app.config.timezone import TimezoneConverter
from app.db.models.error_log import ErrorLog

logger = logging.getLogger(__name__)

ALERT_REASONS = {
    "severity": "Critical Severity Error",
    "repeated": "Repeated Error Occurrence",
}


class EmailNotificationService:
    """
    Email notification service using SMTP.

    Sends error alerts for critical and repeated errors.
    """

    def __init__(
        self,
        server: str,
        port: int,
        user: Optional[str],
        password: Optional[str],
        from_email: str,
        to_email: str,
        use_ssl: bool,
        timezone: str = "UTC"
    ):
        """
        Initialize email service.

        Args:
            server: SMTP server
            port: SMTP port
            user: SMTP username (None for unauthenticated relays)
            password: SMTP password
            from_email: From email address
            to_email: To email address
            use_ssl: Use SSL connection
            timezone: Timezone for timestamp conversion
        """
        self.server = server
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email
        self.to_email = to_email
        self.use_ssl = use_ssl
        self.tz_converter = TimezoneConverter(timezone)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((aiosmtplib.SMTPConnectError, aiosmtplib.SMTPServerDisconnected, ConnectionError, TimeoutError)),
        reraise=True
    )
    async def _deliver(self, message: MIMEMultipart) -> None:
        await aiosmtplib.send(
            message,
            hostname=self.server,
            port=self.port,
            username=self.user,
            password=self.password,
            use_tls=self.use_ssl
        )

    async def _send_email(self, subject: str, body: str) -> bool:
        """
        Send email via SMTP.

        Args:
            subject: Email subject
            body: Email body (HTML)

        Returns:
            True if the message was accepted by the server
        """
        message = MIMEMultipart('alternative')
        message['Subject'] = subject
        message['From'] = self.from_email
        message['To'] = self.to_email
        message.attach(MIMEText(body, 'html'))

        try:
            await self._deliver(message)
        except Exception as e:
            logger.error(f"Failed to send email: {e}")
            return False

        logger.info(f"Email sent successfully: {subject}")
        return True

    def build_error_alert(self, error_log: ErrorLog, reason: str = "severity") -> tuple:
        """
        Render subject and HTML body of an error alert.

        Returns:
            (subject, body)
        """
        severity = error_log.severity.value if error_log.severity else "unknown"
        error_type = error_log.error_type.value if error_log.error_type else "unknown"
        created = self.tz_converter.format_local(error_log.created_at) if error_log.created_at else "N/A"

        subject = f"Error Alert: {severity.upper()} - {error_log.service}"

        stack_trace = f"<h2>Stack Trace:</h2><pre>{error_log.stack_trace}</pre>" if error_log.stack_trace else ""

        body = f"""
        <html>
        <head>
            <style>
                body {{ font-family: Arial, sans-serif; }}
                .error {{ color: red; font-weight: bold; }}
            </style>
        </head>
        <body>
            <h1 class="error">Error Alert</h1>
            <p><strong>Alert Reason:</strong> {ALERT_REASONS.get(reason, reason)}</p>
            <p><strong>Time:</strong> {created}</p>
            <p><strong>Severity:</strong> {severity}</p>
            <p><strong>Service:</strong> {error_log.service}</p>
            <p><strong>Error Type:</strong> {error_type}</p>
            <p><strong>URL:</strong> {error_log.url or 'N/A'}</p>
            <hr>
            <h2>Error Message:</h2>
            <pre>{error_log.message}</pre>
            {stack_trace}
            <hr>
            <p><em>This is an automated error alert from the Error &amp; Audit Management Service</em></p>
        </body>
        </html>
        """
        return subject, body

    async def send_error_alert(self, error_log: ErrorLog, reason: str = "severity") -> bool:
        """
        Send error alert email.

        Args:
            error_log: The stored error log
            reason: "severity" or "repeated"

        Returns:
            True if the alert was delivered
        """
        subject, body = self.build_error_alert(error_log, reason)
        return await self._send_email(subject, body)

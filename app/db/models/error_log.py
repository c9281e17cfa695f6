"""Error log database model"""
from enum import Enum
from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, JSON, Index, Enum as SQLEnum
from app.config.timezone import utc_now
from app.db.database import Base


class Severity(str, Enum):
    """Error severity enumeration"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorType(str, Enum):
    """Where the error originated"""
    BROWSER = "browser"
    SERVER = "server"
    DATABASE = "database"


def enum_values(enum_cls):
    """Persist enum values ("low") rather than member names ("LOW")"""
    return [member.value for member in enum_cls]


class ErrorLog(Base):
    """
    Error log model: one reported application error.

    is_archived / archived_at move together: archived_at is set exactly while
    the record is archived and cleared again on unarchive.
    """
    __tablename__ = "error_logs"
    __table_args__ = (
        # Archival scans filter on both columns
        Index("ix_error_logs_is_archived_created_at", "is_archived", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    severity = Column(SQLEnum(Severity, name="severity", values_callable=enum_values), nullable=False, index=True)
    service = Column(String, nullable=False, index=True)
    error_type = Column(SQLEnum(ErrorType, name="errortype", values_callable=enum_values), nullable=False)
    message = Column(Text, nullable=False)
    stack_trace = Column(Text, nullable=True)
    url = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    user_id = Column(String, nullable=True)
    ip_address = Column(String, nullable=True, index=True)
    session_id = Column(String, nullable=True, index=True)
    log_metadata = Column("metadata", JSON, nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False, index=True)
    archived_at = Column(DateTime, nullable=True)
    email_sent = Column(Boolean, nullable=False, default=False)
    email_sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict:
        """Serializable view used by the API layer"""
        return {
            "id": self.id,
            "severity": self.severity.value if self.severity else None,
            "service": self.service,
            "errorType": self.error_type.value if self.error_type else None,
            "message": self.message,
            "stackTrace": self.stack_trace,
            "url": self.url,
            "userAgent": self.user_agent,
            "userId": self.user_id,
            "ipAddress": self.ip_address,
            "sessionId": self.session_id,
            "metadata": self.log_metadata,
            "isArchived": self.is_archived,
            "archivedAt": self.archived_at.isoformat() if self.archived_at else None,
            "emailSent": self.email_sent,
            "emailSentAt": self.email_sent_at.isoformat() if self.email_sent_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<ErrorLog(id={self.id}, service={self.service}, severity={self.severity}, archived={self.is_archived})>"

"""Retention rule database model"""
from enum import Enum
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, JSON, Enum as SQLEnum
from app.config.timezone import utc_now
from app.db.database import Base
from app.db.models.error_log import enum_values


class RetentionUnit(str, Enum):
    """Unit of a rule's retention window"""
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


class RetentionRule(Base):
    """
    Retention rule: which error logs to archive, and after how long.

    An empty condition list matches every value of that dimension.
    """
    __tablename__ = "retention_rules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)
    severity_conditions = Column(JSON, nullable=False, default=list)
    service_conditions = Column(JSON, nullable=False, default=list)
    error_type_conditions = Column(JSON, nullable=False, default=list)
    retention_duration = Column(Float, nullable=False)
    retention_unit = Column(
        SQLEnum(RetentionUnit, name="retentionunit", values_callable=enum_values),
        nullable=False,
        default=RetentionUnit.DAYS,
    )
    auto_archive = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_run_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict:
        """Serializable view used by the API layer"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "conditions": {
                "severity": list(self.severity_conditions or []),
                "service": list(self.service_conditions or []),
                "errorType": list(self.error_type_conditions or []),
            },
            "retentionDuration": self.retention_duration,
            "retentionUnit": self.retention_unit.value if self.retention_unit else None,
            "autoArchive": self.auto_archive,
            "isActive": self.is_active,
            "lastRunAt": self.last_run_at.isoformat() if self.last_run_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<RetentionRule(id={self.id}, name={self.name}, auto_archive={self.auto_archive})>"

"""Audit log database model"""
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON
from app.config.timezone import utc_now
from app.db.database import Base

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")


class AuditLog(Base):
    """
    Audit log model: one HTTP request reported by an audited service.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    method = Column(String, nullable=False, index=True)
    endpoint = Column(String, nullable=False, index=True)
    status_code = Column(Integer, nullable=False, index=True)
    ip_address = Column(String, nullable=False, index=True)
    session_id = Column(String, nullable=False, index=True)
    user_agent = Column(String, nullable=True)
    user_id = Column(String, nullable=True, index=True)
    request_body = Column(JSON, nullable=True)
    response_time = Column(Float, nullable=False, default=0)  # milliseconds
    project_id = Column(String, nullable=False, default="default", index=True)
    log_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "method": self.method,
            "endpoint": self.endpoint,
            "statusCode": self.status_code,
            "ipAddress": self.ip_address,
            "sessionId": self.session_id,
            "userAgent": self.user_agent,
            "userId": self.user_id,
            "requestBody": self.request_body,
            "responseTime": self.response_time,
            "projectId": self.project_id,
            "metadata": self.log_metadata,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AuditLog(id={self.id}, method={self.method}, endpoint={self.endpoint}, status={self.status_code})>"

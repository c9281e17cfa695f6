"""Database models"""
from app.db.models.error_log import ErrorLog, Severity, ErrorType
from app.db.models.retention_rule import RetentionRule, RetentionUnit
from app.db.models.audit_log import AuditLog, HTTP_METHODS

__all__ = [
    "ErrorLog",
    "Severity",
    "ErrorType",
    "RetentionRule",
    "RetentionUnit",
    "AuditLog",
    "HTTP_METHODS",
]

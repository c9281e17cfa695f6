"""Request bodies accepted by the HTTP API"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class ErrorLogCreate(BaseModel):
    # Required fields are checked by ErrorLogService so callers get one message for all of them
    severity: Optional[str] = None
    service: Optional[str] = None
    errorType: Optional[str] = None
    message: Optional[str] = None
    stackTrace: Optional[str] = None
    userAgent: Optional[str] = None
    url: Optional[str] = None
    userId: Optional[str] = None
    ipAddress: Optional[str] = None
    sessionId: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class RuleConditionsIn(BaseModel):
    severity: List[str] = []
    service: List[str] = []
    errorType: List[str] = []


class RuleCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    conditions: Optional[RuleConditionsIn] = None
    retentionDuration: Optional[float] = None
    retentionUnit: Optional[str] = None
    retentionDays: Optional[float] = None  # legacy
    autoArchive: bool = False


class RuleUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    conditions: Optional[RuleConditionsIn] = None
    retentionDuration: Optional[float] = None
    retentionUnit: Optional[str] = None
    retentionDays: Optional[float] = None  # legacy
    autoArchive: Optional[bool] = None
    isActive: Optional[bool] = None


class ArchiveToggle(BaseModel):
    autoArchive: Any = None


class ManualArchiveRequest(BaseModel):
    retentionDuration: Optional[float] = None
    retentionUnit: Optional[str] = None
    retentionDays: Optional[float] = None  # legacy
    severity: Optional[str] = None
    service: Optional[str] = None
    errorType: Optional[str] = None
    dryRun: bool = False


class AuditLogCreate(BaseModel):
    method: Optional[str] = None
    endpoint: Optional[str] = None
    statusCode: Optional[int] = None
    ipAddress: Optional[str] = None
    sessionId: Optional[str] = None
    userAgent: Optional[str] = None
    userId: Optional[str] = None
    requestBody: Optional[Any] = None
    responseTime: Optional[float] = None
    projectId: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

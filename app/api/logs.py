"""Error log routes"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config.timezone import to_naive_utc
from app.core.errors import ValidationError
from app.db.models.error_log import ErrorType, Severity
from app.db.queries import get_error_logs, get_error_stats, unarchive_error_log
from app.db.session import get_db
from app.schemas import ErrorLogCreate
from app.services.error_log_service import ErrorLogService

router = APIRouter(prefix="/api/logs", tags=["Error Logs"])


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(value) if value else None


def _check_filter(value: Optional[str], enum_cls, label: str) -> None:
    if value:
        try:
            enum_cls(value)
        except ValueError:
            raise ValidationError(f"Invalid {label} '{value}'")


# 1. List logs
@router.get("")
def list_logs(
    severity: Optional[str] = None,
    service: Optional[str] = None,
    errorType: Optional[str] = None,
    isArchived: Optional[bool] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    _check_filter(severity, Severity, "severity")
    _check_filter(errorType, ErrorType, "errorType")

    logs, total, severity_counts = get_error_logs(
        db,
        severity=severity,
        service=service,
        error_type=errorType,
        is_archived=isArchived,
        start_date=_naive(startDate),
        end_date=_naive(endDate),
        page=page,
        limit=limit,
    )
    return {
        "success": True,
        "data": {
            "logs": [log.to_dict() for log in logs],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": -(-total // limit),
            },
            "stats": severity_counts,
        },
    }


# 2. Ingest a log
@router.post("", status_code=201)
async def create_log(payload: ErrorLogCreate, request: Request, db: Session = Depends(get_db)):
    config = request.app.state.config
    service = ErrorLogService(
        db,
        email_service=getattr(request.app.state, "email_service", None),
        repeat_window_minutes=config.alerts.repeat_window_minutes,
    )

    client_ip = payload.ipAddress or (request.client.host if request.client else None)
    error_log, alert_status = await service.ingest(
        severity=payload.severity,
        service=payload.service,
        error_type=payload.errorType,
        message=payload.message,
        stack_trace=payload.stackTrace,
        url=payload.url,
        user_agent=payload.userAgent or request.headers.get("user-agent"),
        user_id=payload.userId,
        ip_address=client_ip,
        session_id=payload.sessionId or request.cookies.get("sessionId"),
        metadata=payload.metadata,
    )
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Error logged successfully",
            "data": error_log.to_dict(),
            "emailAlert": alert_status,
        },
    )


# 3. Dashboard stats
@router.get("/stats")
def log_stats(
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    return {
        "success": True,
        "data": get_error_stats(db, start_date=_naive(startDate), end_date=_naive(endDate)),
    }


# 4. Unarchive
@router.patch("/{log_id}/unarchive")
def unarchive_log(log_id: int, db: Session = Depends(get_db)):
    error_log = unarchive_error_log(db, log_id)
    return {
        "success": True,
        "message": "Error log unarchived successfully",
        "data": error_log.to_dict(),
    }

"""Audit log routes"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config.timezone import to_naive_utc
from app.core.errors import ValidationError
from app.db.queries import (
    create_audit_log,
    get_audit_logs,
    get_audit_stats,
    get_ip_activity,
    get_session_activity,
)
from app.db.session import get_db
from app.schemas import AuditLogCreate

router = APIRouter(prefix="/api/audit", tags=["Audit Logs"])


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(value) if value else None


@router.post("", status_code=201)
def create_audit_entry(payload: AuditLogCreate, request: Request, db: Session = Depends(get_db)):
    if not payload.method or not payload.endpoint or not payload.statusCode:
        raise ValidationError("Missing required fields: method, endpoint, statusCode")

    audit_log = create_audit_log(
        db,
        method=payload.method,
        endpoint=payload.endpoint,
        status_code=payload.statusCode,
        ip_address=payload.ipAddress or (request.client.host if request.client else None),
        session_id=payload.sessionId or request.cookies.get("sessionId"),
        user_agent=payload.userAgent or request.headers.get("user-agent"),
        user_id=payload.userId,
        request_body=payload.requestBody,
        response_time=payload.responseTime,
        project_id=payload.projectId,
        metadata=payload.metadata,
    )
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Audit log created successfully",
            "data": audit_log.to_dict(),
        },
    )


@router.get("")
def list_audit_entries(
    method: Optional[str] = None,
    endpoint: Optional[str] = None,
    statusCode: Optional[int] = None,
    ipAddress: Optional[str] = None,
    sessionId: Optional[str] = None,
    projectId: Optional[str] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    logs, total = get_audit_logs(
        db,
        page=page,
        limit=limit,
        method=method,
        endpoint=endpoint,
        status_code=statusCode,
        ip_address=ipAddress,
        session_id=sessionId,
        project_id=projectId,
        start_date=_naive(startDate),
        end_date=_naive(endDate),
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
        },
    }


@router.get("/stats")
def audit_stats(
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    ipAddress: Optional[str] = None,
    sessionId: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return {
        "success": True,
        "data": get_audit_stats(
            db,
            start_date=_naive(startDate),
            end_date=_naive(endDate),
            ip_address=ipAddress,
            session_id=sessionId,
        ),
    }


@router.get("/ip/{ip}")
def ip_activity(ip: str, hours: int = Query(24, ge=1), db: Session = Depends(get_db)):
    stats, recent = get_ip_activity(db, ip, hours=hours)
    return {
        "success": True,
        "data": {
            "ipAddress": ip,
            "stats": stats,
            "recentActivity": [log.to_dict() for log in recent],
        },
    }


@router.get("/session/{session_id}")
def session_activity(session_id: str, db: Session = Depends(get_db)):
    logs, stats = get_session_activity(db, session_id)
    return {
        "success": True,
        "data": {
            "sessionId": session_id,
            "logs": [log.to_dict() for log in logs],
            "stats": stats,
        },
    }

"""Database query utilities"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import and_, func, update
from sqlalchemy.exc import IntegrityError

from app.config.timezone import utc_now
from app.core.domain.retention import RetentionWindow, RuleConditions
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.models.error_log import ErrorLog, Severity, ErrorType
from app.db.models.retention_rule import RetentionRule
from app.db.models.audit_log import AuditLog, HTTP_METHODS


# ---------------------------------------------------------------------------
# Error logs
# ---------------------------------------------------------------------------

def create_error_log(
    db: Session,
    severity: Severity,
    service: str,
    error_type: ErrorType,
    message: str,
    stack_trace: Optional[str] = None,
    url: Optional[str] = None,
    user_agent: Optional[str] = None,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    session_id: Optional[str] = None,
    metadata: Optional[dict] = None,
    created_at: Optional[datetime] = None,
) -> ErrorLog:
    """Create a new (active) error log"""
    error_log = ErrorLog(
        severity=Severity(severity),
        service=service,
        error_type=ErrorType(error_type),
        message=message,
        stack_trace=stack_trace,
        url=url,
        user_agent=user_agent,
        user_id=user_id,
        ip_address=ip_address,
        session_id=session_id,
        log_metadata=metadata,
        is_archived=False,
        email_sent=False,
    )
    if created_at is not None:
        error_log.created_at = created_at
    db.add(error_log)
    db.commit()
    db.refresh(error_log)
    return error_log


def _error_log_filters(
    severity: Optional[str] = None,
    service: Optional[str] = None,
    error_type: Optional[str] = None,
    is_archived: Optional[bool] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> list:
    filters = []
    if severity:
        filters.append(ErrorLog.severity == Severity(severity))
    if service:
        filters.append(ErrorLog.service == service)
    if error_type:
        filters.append(ErrorLog.error_type == ErrorType(error_type))
    if is_archived is not None:
        filters.append(ErrorLog.is_archived.is_(is_archived))
    if start_date:
        filters.append(ErrorLog.created_at >= start_date)
    if end_date:
        filters.append(ErrorLog.created_at <= end_date)
    return filters


def get_error_logs(
    db: Session,
    severity: Optional[str] = None,
    service: Optional[str] = None,
    error_type: Optional[str] = None,
    is_archived: Optional[bool] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[ErrorLog], int, Dict[str, int]]:
    """
    Get one page of error logs, newest first.

    Returns:
        (logs, total matching, counts per severity over all matching logs)
    """
    filters = _error_log_filters(severity, service, error_type, is_archived, start_date, end_date)

    query = db.query(ErrorLog).filter(*filters)
    total = query.count()
    logs = (
        query.order_by(ErrorLog.created_at.desc(), ErrorLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    severity_rows = (
        db.query(ErrorLog.severity, func.count(ErrorLog.id))
        .filter(*filters)
        .group_by(ErrorLog.severity)
        .all()
    )
    severity_counts = {sev.value: count for sev, count in severity_rows}

    return logs, total, severity_counts


def get_error_log(db: Session, error_log_id: int) -> ErrorLog:
    """Get an error log by id"""
    error_log = db.query(ErrorLog).filter(ErrorLog.id == error_log_id).first()
    if not error_log:
        raise NotFoundError(f"Error log {error_log_id} not found")
    return error_log


def get_error_stats(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> dict:
    """Aggregate error log counts by severity, service and error type"""
    filters = _error_log_filters(start_date=start_date, end_date=end_date)

    def grouped(column) -> Dict[str, int]:
        rows = db.query(column, func.count(ErrorLog.id)).filter(*filters).group_by(column).all()
        return {
            (key.value if hasattr(key, "value") else key): count
            for key, count in rows
        }

    total = db.query(func.count(ErrorLog.id)).filter(*filters).scalar() or 0
    archived = (
        db.query(func.count(ErrorLog.id))
        .filter(*filters, ErrorLog.is_archived.is_(True))
        .scalar()
        or 0
    )

    return {
        "total": total,
        "bySeverity": grouped(ErrorLog.severity),
        "byService": grouped(ErrorLog.service),
        "byErrorType": grouped(ErrorLog.error_type),
        "archived": archived,
        "active": total - archived,
    }


def count_similar_recent(db: Session, error_log: ErrorLog, window: timedelta) -> int:
    """Count other logs with the same message/service/severity inside ``window``"""
    since = error_log.created_at - window
    return (
        db.query(func.count(ErrorLog.id))
        .filter(
            and_(
                ErrorLog.message == error_log.message,
                ErrorLog.service == error_log.service,
                ErrorLog.severity == error_log.severity,
                ErrorLog.created_at >= since,
                ErrorLog.id != error_log.id,
            )
        )
        .scalar()
        or 0
    )


def mark_email_sent(db: Session, error_log: ErrorLog, sent_at: datetime) -> ErrorLog:
    """Flag an error log as alerted"""
    error_log.email_sent = True
    error_log.email_sent_at = sent_at
    db.commit()
    db.refresh(error_log)
    return error_log


def unarchive_error_log(db: Session, error_log_id: int) -> ErrorLog:
    """
    Return an archived log to the active set.

    Single conditional update (only if currently archived); archived_at is
    cleared along with the flag.

    Raises:
        NotFoundError: no such log
        ValidationError: log is not archived
    """
    result = db.execute(
        update(ErrorLog)
        .where(ErrorLog.id == error_log_id, ErrorLog.is_archived.is_(True))
        .values(is_archived=False, archived_at=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    if result.rowcount == 0:
        # Distinguish a missing log from one that is already active
        get_error_log(db, error_log_id)
        raise ValidationError("Error log is not archived")

    error_log = get_error_log(db, error_log_id)
    db.refresh(error_log)
    return error_log


# ---------------------------------------------------------------------------
# Retention rules
# ---------------------------------------------------------------------------

def get_rules(db: Session) -> List[RetentionRule]:
    """Get all retention rules, newest first"""
    return db.query(RetentionRule).order_by(RetentionRule.created_at.desc(), RetentionRule.id.desc()).all()


def get_rule(db: Session, rule_id: int) -> RetentionRule:
    """Get a retention rule by id"""
    rule = db.query(RetentionRule).filter(RetentionRule.id == rule_id).first()
    if not rule:
        raise NotFoundError("Retention rule not found")
    return rule


def _ensure_unique_name(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(RetentionRule).filter(RetentionRule.name == name)
    if exclude_id is not None:
        query = query.filter(RetentionRule.id != exclude_id)
    if query.first():
        raise ConflictError("Rule with this name already exists")


def create_rule(
    db: Session,
    name: str,
    window: RetentionWindow,
    conditions: Optional[RuleConditions] = None,
    description: Optional[str] = None,
    auto_archive: bool = False,
    is_active: bool = True,
) -> RetentionRule:
    """Create a retention rule"""
    if not name or not name.strip():
        raise ValidationError("Rule name is required")
    _ensure_unique_name(db, name)

    conditions = conditions or RuleConditions()
    lists = conditions.as_lists()
    rule = RetentionRule(
        name=name,
        description=description,
        severity_conditions=lists["severity"],
        service_conditions=lists["service"],
        error_type_conditions=lists["errorType"],
        retention_duration=window.duration,
        retention_unit=window.unit,
        auto_archive=auto_archive,
        is_active=is_active,
    )
    db.add(rule)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Rule with this name already exists")
    db.refresh(rule)
    return rule


def update_rule(
    db: Session,
    rule_id: int,
    name: Optional[str] = None,
    description: Optional[str] = None,
    conditions: Optional[RuleConditions] = None,
    window: Optional[RetentionWindow] = None,
    auto_archive: Optional[bool] = None,
    is_active: Optional[bool] = None,
) -> RetentionRule:
    """Partially update a retention rule (None leaves a field unchanged)"""
    rule = get_rule(db, rule_id)

    if name and name != rule.name:
        _ensure_unique_name(db, name, exclude_id=rule.id)
        rule.name = name
    if description is not None:
        rule.description = description
    if conditions is not None:
        lists = conditions.as_lists()
        rule.severity_conditions = lists["severity"]
        rule.service_conditions = lists["service"]
        rule.error_type_conditions = lists["errorType"]
    if window is not None:
        rule.retention_duration = window.duration
        rule.retention_unit = window.unit
    if auto_archive is not None:
        rule.auto_archive = auto_archive
    if is_active is not None:
        rule.is_active = is_active

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Rule with this name already exists")
    db.refresh(rule)
    return rule


def delete_rule(db: Session, rule_id: int) -> None:
    """Delete a retention rule"""
    rule = get_rule(db, rule_id)
    db.delete(rule)
    db.commit()


def set_rule_auto_archive(db: Session, rule_id: int, auto_archive: bool) -> RetentionRule:
    """Enable or disable scheduled archival for a rule"""
    if not isinstance(auto_archive, bool):
        raise ValidationError("autoArchive must be a boolean value")
    return update_rule(db, rule_id, auto_archive=auto_archive)


# ---------------------------------------------------------------------------
# Audit logs
# ---------------------------------------------------------------------------

def create_audit_log(
    db: Session,
    method: str,
    endpoint: str,
    status_code: int,
    ip_address: Optional[str] = None,
    session_id: Optional[str] = None,
    user_agent: Optional[str] = None,
    user_id: Optional[str] = None,
    request_body: Optional[dict] = None,
    response_time: Optional[float] = None,
    project_id: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> AuditLog:
    """Create an audit log record"""
    method = (method or "").upper()
    if method not in HTTP_METHODS:
        raise ValidationError(f"Invalid method '{method}' (expected one of: {', '.join(HTTP_METHODS)})")

    audit_log = AuditLog(
        method=method,
        endpoint=endpoint,
        status_code=int(status_code),
        ip_address=ip_address or "unknown",
        session_id=session_id or "unknown",
        user_agent=user_agent,
        user_id=user_id,
        request_body=request_body,
        response_time=response_time or 0,
        project_id=project_id or "default",
        log_metadata=metadata or {},
    )
    db.add(audit_log)
    db.commit()
    db.refresh(audit_log)
    return audit_log


def _audit_filters(
    method: Optional[str] = None,
    endpoint: Optional[str] = None,
    status_code: Optional[int] = None,
    ip_address: Optional[str] = None,
    session_id: Optional[str] = None,
    project_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> list:
    filters = []
    if method:
        filters.append(AuditLog.method == method.upper())
    if endpoint:
        filters.append(AuditLog.endpoint == endpoint)
    if status_code is not None:
        filters.append(AuditLog.status_code == status_code)
    if ip_address:
        filters.append(AuditLog.ip_address == ip_address)
    if session_id:
        filters.append(AuditLog.session_id == session_id)
    if project_id:
        filters.append(AuditLog.project_id == project_id)
    if start_date:
        filters.append(AuditLog.created_at >= start_date)
    if end_date:
        filters.append(AuditLog.created_at <= end_date)
    return filters


def get_audit_logs(
    db: Session,
    page: int = 1,
    limit: int = 50,
    **filter_kwargs,
) -> Tuple[List[AuditLog], int]:
    """Get one page of audit logs, newest first"""
    query = db.query(AuditLog).filter(*_audit_filters(**filter_kwargs))
    total = query.count()
    logs = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return logs, total


def get_audit_stats(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    ip_address: Optional[str] = None,
    session_id: Optional[str] = None,
    top_endpoints: int = 10,
) -> dict:
    """Aggregate audit traffic statistics"""
    filters = _audit_filters(
        ip_address=ip_address,
        session_id=session_id,
        start_date=start_date,
        end_date=end_date,
    )

    total, unique_ips, unique_sessions, avg_response = (
        db.query(
            func.count(AuditLog.id),
            func.count(func.distinct(AuditLog.ip_address)),
            func.count(func.distinct(AuditLog.session_id)),
            func.avg(AuditLog.response_time),
        )
        .filter(*filters)
        .one()
    )

    if not total:
        return {
            "totalRequests": 0,
            "uniqueIPs": 0,
            "uniqueSessions": 0,
            "avgResponseTime": 0,
            "byMethod": {},
            "statusCodes": {},
            "topEndpoints": [],
        }

    method_rows = dict(
        db.query(AuditLog.method, func.count(AuditLog.id))
        .filter(*filters)
        .group_by(AuditLog.method)
        .all()
    )
    status_rows = (
        db.query(AuditLog.status_code, func.count(AuditLog.id))
        .filter(*filters)
        .group_by(AuditLog.status_code)
        .all()
    )
    endpoint_rows = (
        db.query(AuditLog.endpoint, func.count(AuditLog.id).label("hits"))
        .filter(*filters)
        .group_by(AuditLog.endpoint)
        .order_by(func.count(AuditLog.id).desc(), AuditLog.endpoint)
        .limit(top_endpoints)
        .all()
    )

    return {
        "totalRequests": total,
        "uniqueIPs": unique_ips,
        "uniqueSessions": unique_sessions,
        "avgResponseTime": round(float(avg_response or 0), 2),
        "byMethod": {m: method_rows.get(m, 0) for m in HTTP_METHODS},
        "statusCodes": {str(code): count for code, count in status_rows},
        "topEndpoints": [{"endpoint": ep, "count": hits} for ep, hits in endpoint_rows],
    }


def get_ip_activity(
    db: Session,
    ip_address: str,
    hours: int = 24,
    recent: int = 20,
    now: Optional[datetime] = None,
) -> Tuple[Optional[dict], List[AuditLog]]:
    """
    Traffic summary for one IP over the last ``hours``, plus its latest requests.

    Returns:
        (stats or None when the IP made no request in the window, newest entries)
    """
    filters = [
        AuditLog.ip_address == ip_address,
        AuditLog.created_at >= (now or utc_now()) - timedelta(hours=hours),
    ]

    total, unique_sessions, avg_response = (
        db.query(
            func.count(AuditLog.id),
            func.count(func.distinct(AuditLog.session_id)),
            func.avg(AuditLog.response_time),
        )
        .filter(*filters)
        .one()
    )

    stats = None
    if total:
        top_endpoint = (
            db.query(AuditLog.endpoint)
            .filter(*filters)
            .group_by(AuditLog.endpoint)
            .order_by(func.count(AuditLog.id).desc(), AuditLog.endpoint)
            .first()
        )
        stats = {
            "totalRequests": total,
            "uniqueSessions": unique_sessions,
            "mostCalledEndpoint": top_endpoint[0],
            "avgResponseTime": round(float(avg_response or 0), 2),
        }

    recent_logs = (
        db.query(AuditLog)
        .filter(AuditLog.ip_address == ip_address)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(recent)
        .all()
    )
    return stats, recent_logs


def get_session_activity(
    db: Session,
    session_id: str,
    limit: int = 100,
) -> Tuple[List[AuditLog], Optional[dict]]:
    """
    Latest requests of one session and a summary over all of them.

    Returns:
        (newest entries, stats or None for an unknown session)
    """
    logs = (
        db.query(AuditLog)
        .filter(AuditLog.session_id == session_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )

    total, unique_ips, first_request, last_request, avg_response = (
        db.query(
            func.count(AuditLog.id),
            func.count(func.distinct(AuditLog.ip_address)),
            func.min(AuditLog.created_at),
            func.max(AuditLog.created_at),
            func.avg(AuditLog.response_time),
        )
        .filter(AuditLog.session_id == session_id)
        .one()
    )

    if not total:
        return logs, None
    return logs, {
        "totalRequests": total,
        "uniqueIPs": unique_ips,
        "firstRequest": first_request.isoformat(),
        "lastRequest": last_request.isoformat(),
        "avgResponseTime": round(float(avg_response or 0), 2),
    }

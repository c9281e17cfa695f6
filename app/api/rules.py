"""Retention rule routes"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.domain.retention import RetentionWindow, RuleConditions, RuleSnapshot
from app.db.queries import (
    create_rule,
    delete_rule,
    get_rule,
    get_rules,
    set_rule_auto_archive,
    update_rule,
)
from app.db.session import get_db
from app.schemas import ArchiveToggle, RuleConditionsIn, RuleCreate, RuleUpdate

router = APIRouter(prefix="/api/rules", tags=["Retention Rules"])


def _conditions(conditions: RuleConditionsIn) -> RuleConditions:
    return RuleConditions.from_input(
        severity=conditions.severity,
        service=conditions.service,
        error_type=conditions.errorType,
    )


@router.get("")
def list_rules(db: Session = Depends(get_db)):
    return {"success": True, "data": [rule.to_dict() for rule in get_rules(db)]}


@router.post("", status_code=201)
def create_retention_rule(payload: RuleCreate, db: Session = Depends(get_db)):
    window = RetentionWindow.from_input(
        retention_duration=payload.retentionDuration,
        retention_unit=payload.retentionUnit,
        retention_days=payload.retentionDays,
    )
    rule = create_rule(
        db,
        name=payload.name,
        description=payload.description,
        conditions=_conditions(payload.conditions) if payload.conditions else None,
        window=window,
        auto_archive=payload.autoArchive,
    )
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Retention rule created successfully",
            "data": rule.to_dict(),
        },
    )


@router.put("/{rule_id}")
def update_retention_rule(rule_id: int, payload: RuleUpdate, db: Session = Depends(get_db)):
    window = None
    if payload.retentionDuration is not None or payload.retentionDays is not None:
        window = RetentionWindow.from_input(
            retention_duration=payload.retentionDuration,
            retention_unit=payload.retentionUnit,
            retention_days=payload.retentionDays,
        )
    rule = update_rule(
        db,
        rule_id,
        name=payload.name,
        description=payload.description,
        conditions=_conditions(payload.conditions) if payload.conditions else None,
        window=window,
        auto_archive=payload.autoArchive,
        is_active=payload.isActive,
    )
    return {
        "success": True,
        "message": "Retention rule updated successfully",
        "data": rule.to_dict(),
    }


@router.delete("/{rule_id}")
def delete_retention_rule(rule_id: int, db: Session = Depends(get_db)):
    delete_rule(db, rule_id)
    return {"success": True, "message": "Retention rule deleted successfully"}


@router.patch("/{rule_id}/archive-toggle")
def toggle_auto_archive(rule_id: int, payload: ArchiveToggle, db: Session = Depends(get_db)):
    rule = set_rule_auto_archive(db, rule_id, payload.autoArchive)
    state = "enabled" if rule.auto_archive else "disabled"
    return {
        "success": True,
        "message": f"Auto-archival {state} for rule",
        "data": rule.to_dict(),
    }


@router.post("/{rule_id}/apply")
def apply_retention_rule(rule_id: int, request: Request, db: Session = Depends(get_db)):
    """Apply one rule right now, whether or not it is scheduled"""
    rule = RuleSnapshot.from_model(get_rule(db, rule_id))
    archived = request.app.state.archive_service.apply_rule(rule)
    return {"success": True, "data": {"rule": rule.name, "logsArchived": archived}}

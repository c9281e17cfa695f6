"""Archival trigger routes"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.domain.retention import ArchiveCriteria
from app.schemas import ManualArchiveRequest

router = APIRouter(prefix="/api/archive", tags=["Archival"])


@router.post("/run")
async def run_archival_cycle(request: Request):
    """Run one archival cycle now (queued behind a cycle already in flight)"""
    result = await request.app.state.scheduler.trigger()
    return JSONResponse(status_code=200 if result.success else 500, content=result.to_dict())


@router.post("/manual")
def manual_archive(payload: ManualArchiveRequest, request: Request):
    """Archive once with explicit criteria; nothing is persisted as a rule"""
    criteria = ArchiveCriteria.from_input(
        retention_duration=payload.retentionDuration,
        retention_unit=payload.retentionUnit,
        retention_days=payload.retentionDays,
        severity=payload.severity,
        service=payload.service,
        error_type=payload.errorType,
    )
    archive_service = request.app.state.archive_service

    if payload.dryRun:
        return {"success": True, "dryRun": True, "logsMatched": archive_service.preview(criteria)}

    result = archive_service.manual_archive(criteria)
    return JSONResponse(status_code=200 if result.success else 500, content=result.to_dict())


@router.get("/status")
def scheduler_status(request: Request):
    return {"success": True, "data": request.app.state.scheduler.status()}

"""
Main application entry point.

This module wires the record store, archive service and archival scheduler
into the HTTP service.
"""
import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import archive, audit, logs, rules
from app.core.errors import ConflictError, EamsError, NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)


def _is_memory_database(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url in ("sqlite://", "sqlite:///"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    try:
        # Load configuration
        from app.config import get_config, get_timezone_converter
        config = get_config()

        from app.utils.logging_config import setup_logging
        setup_logging(config.log_level, structured=config.log_structured)

        logger.info("=" * 60)
        logger.info("Error & Audit Management Service Starting...")
        logger.info("=" * 60)
        logger.info("✓ Configuration loaded")

        # Initialize database
        from app.db.database import init_database, create_all_tables, get_session_factory
        from app.db.migration_runner import run_migrations

        init_database(config.database.url)
        logger.info("✓ Database initialized")

        if _is_memory_database(config.database.url):
            # Migrations would run against a separate in-memory database
            create_all_tables()
        else:
            run_migrations(config.database.url)
        logger.info("✓ Database schema ready")

        # Build services once for the whole process
        from app.core.retention.record_store import SqlAlchemyRecordStore
        from app.services.archive_service import ArchiveService
        from app.services.archive_scheduler import ArchiveScheduler
        from app.utils.error_handler import ErrorHandler

        session_factory = get_session_factory()
        archive_service = ArchiveService(SqlAlchemyRecordStore(session_factory))
        scheduler = ArchiveScheduler(
            archive_service,
            interval_seconds=config.archive.interval_seconds,
            tz_converter=get_timezone_converter(config.timezone),
        )

        email_service = None
        if config.alerts.enabled:
            from app.notifications.email_service import EmailNotificationService
            email_service = EmailNotificationService(
                server=config.smtp.server,
                port=config.smtp.port,
                user=config.smtp.user,
                password=config.smtp.password,
                from_email=config.smtp.from_email,
                to_email=config.smtp.to_email,
                use_ssl=config.smtp.use_ssl,
                timezone=config.timezone,
            )
            logger.info("✓ Email alerts enabled")
        else:
            logger.info("Email alerts disabled (ALERTS__ENABLED not set)")

        app.state.config = config
        app.state.archive_service = archive_service
        app.state.scheduler = scheduler
        app.state.email_service = email_service
        app.state.error_handler = ErrorHandler(session_factory, service_name=config.app_name)

        if config.archive.enabled:
            scheduler.start(run_immediately=config.archive.run_on_startup)
            logger.info(f"✓ Auto-archival scheduled every {config.archive.interval_seconds}s")
        else:
            logger.info("Auto-archival disabled (ARCHIVE__ENABLED=false); manual triggers only")

        logger.info("=" * 60)
        logger.info("Error & Audit Management Service Started Successfully")
        logger.info("=" * 60)

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Stopping archive scheduler...")
    await scheduler.stop()
    logger.info("Error & Audit Management Service Shutting Down...")


# Create FastAPI app
app = FastAPI(
    title="Error & Audit Management Service",
    description="Error and audit log ingestion, statistics and retention-based archival",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(logs.router)
app.include_router(rules.router)
app.include_router(archive.router)
app.include_router(audit.router)


ERROR_STATUS = {
    ValidationError: 400,
    ConflictError: 400,
    NotFoundError: 404,
    StoreError: 503,
}


@app.exception_handler(EamsError)
async def eams_error_handler(request: Request, exc: EamsError):
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        500
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": str(exc), "error": type(exc).__name__},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request", "error": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    error_handler = getattr(request.app.state, "error_handler", None)
    if error_handler is not None:
        error_handler.handle_runtime_error("HTTP", exc, url=str(request.url))
    else:
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "error": str(exc)},
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Error & Audit Management Service",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns:
        JSON with health status
    """
    try:
        # Check database connection
        from app.db.database import get_engine
        from sqlalchemy import text

        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        db_status = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "unhealthy"

    scheduler = getattr(request.app.state, "scheduler", None)

    # Overall status
    is_healthy = db_status == "healthy"

    response = {
        "status": "healthy" if is_healthy else "unhealthy",
        "database": db_status,
        "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
        "service": "running"
    }

    status_code = 200 if is_healthy else 503
    return JSONResponse(content=response, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
        access_log=True
    )

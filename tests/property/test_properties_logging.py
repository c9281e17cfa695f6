"""Property-based tests for logging and error handling"""
import pytest
import logging
import json
import sys
from app.utils.logging_config import StructuredFormatter, setup_logging


def _record(msg, level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# Structured log format, exception logging
def test_logging_properties():
    """Test logging properties"""
    formatter = StructuredFormatter()

    log_data = json.loads(formatter.format(_record("Test message")))

    # Should have required fields
    assert 'timestamp' in log_data
    assert log_data['level'] == 'INFO'
    assert log_data['logger'] == 'test'
    assert log_data['message'] == 'Test message'

    try:
        raise ValueError("Test exception")
    except ValueError:
        record_with_exc = _record("Error occurred", level=logging.ERROR, exc_info=sys.exc_info())

    log_data_exc = json.loads(formatter.format(record_with_exc))

    # Should have exception info
    assert log_data_exc['exception']['type'] == 'ValueError'
    assert log_data_exc['exception']['message'] == 'Test exception'
    assert 'Traceback' in log_data_exc['exception']['traceback']


def test_context_fields_are_included():
    formatter = StructuredFormatter()

    log_data = json.loads(formatter.format(
        _record("Rule applied", component="RuleEvaluator", rule="critical-10m")
    ))
    assert log_data['component'] == 'RuleEvaluator'
    assert log_data['rule'] == 'critical-10m'
    assert 'error_log_id' not in log_data


def test_setup_logging_writes_json_to_stdout():
    setup_logging("debug", structured=True)

    root_logger = logging.getLogger()
    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1

    handler = root_logger.handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    assert handler.stream is sys.stdout
    assert isinstance(handler.formatter, StructuredFormatter)
    assert logging.getLogger('sqlalchemy').level == logging.WARNING

    setup_logging("INFO", structured=False)
    assert not isinstance(logging.getLogger().handlers[0].formatter, StructuredFormatter)


def test_error_handler_records_own_failures():
    """Unexpected errors are logged and stored as this service's own error logs"""
    from app.db.database import init_database, create_all_tables, drop_all_tables, get_session_factory
    from app.db.models import ErrorLog, ErrorType, Severity
    from app.db.session import get_db_session
    from app.utils.error_handler import ErrorHandler

    init_database("sqlite:///:memory:")
    create_all_tables()

    try:
        handler = ErrorHandler(get_session_factory(), service_name="eams")
        try:
            raise RuntimeError("scheduler exploded")
        except RuntimeError as e:
            handler.handle_runtime_error("ArchiveScheduler", e, url="/api/archive/run")

        with get_db_session() as db:
            (stored,) = db.query(ErrorLog).all()
            assert stored.service == "eams"
            assert stored.severity == Severity.HIGH
            assert stored.error_type == ErrorType.SERVER
            assert "scheduler exploded" in stored.message
            assert "RuntimeError" in stored.stack_trace
            assert stored.url == "/api/archive/run"
            assert stored.log_metadata == {"component": "ArchiveScheduler"}

    finally:
        drop_all_tables()


def test_error_handler_survives_broken_database(caplog):
    from app.utils.error_handler import ErrorHandler

    def broken_session_factory():
        raise ConnectionError("database is gone")

    handler = ErrorHandler(broken_session_factory)
    with caplog.at_level(logging.ERROR):
        handler.handle_runtime_error("HTTP", ValueError("boom"))

    assert "Failed to log error to database" in caplog.text

import json
import logging

from textile_inventory.core.logging_config import (
    PerformanceFilter,
    SecurityFilter,
    StructuredFormatter,
    set_request_context,
    set_source_event,
)


def make_record(message, **extra):
    record = logging.LogRecord("textile_inventory.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_formatter_includes_trace_context():
    set_request_context(request_id="req-1")
    set_source_event("DYEING_PROCESS", 7)
    try:
        output = json.loads(StructuredFormatter("textile-inventory-service").format(
            make_record("Posted PRODUCTION +10", extra_fields={"inventory_id": 3})
        ))
    finally:
        set_source_event(None)
    assert output["message"] == "Posted PRODUCTION +10"
    assert output["service"] == "textile-inventory-service"
    assert output["trace"]["request_id"] == "req-1"
    assert output["trace"]["source_event"] == "DYEING_PROCESS#7"
    assert output["custom"] == {"inventory_id": 3}


def test_security_filter_redacts_database_password():
    record = make_record("connect failed: postgresql+psycopg2://textile:s3cret@db:5432/textile")
    SecurityFilter().filter(record)
    assert "s3cret" not in record.getMessage()
    assert "***REDACTED***" in record.getMessage()


def test_performance_filter_converts_duration():
    record = make_record("done", duration=0.25)
    PerformanceFilter().filter(record)
    assert record.duration_ms == 250

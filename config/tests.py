import json
import logging


def test_json_log_line_escapes_quotes(json_log_formatter):
    record = logging.LogRecord(
        "apps.scheduling.booking", logging.WARNING, __file__, 1, 'Slot "%s" refused', ("pm",), None
    )
    line = json.loads(json_log_formatter.format(record))
    assert line["message"] == 'Slot "pm" refused'
    assert line["level"] == "warning"
    assert line["logger"] == "apps.scheduling.booking"
    assert "timestamp" in line


def test_json_log_line_includes_extra_fields(json_log_formatter):
    logger = logging.getLogger("apps.tests")
    record = logger.makeRecord(
        "apps.tests", logging.INFO, __file__, 1, "Contact request received", (), None,
        extra={"contact_request_id": 7},
    )
    line = json.loads(json_log_formatter.format(record))
    assert line["contact_request_id"] == 7
    assert line["message"] == "Contact request received"

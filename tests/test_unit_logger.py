import json
import logging

from dispatched.utils import get_logger, log_business_event, setup_logging


def test_file_handler_writes_json_with_structured_fields(tmp_path):
    log_file = tmp_path / "logs" / "dispatched.log"
    setup_logging(log_level="INFO", log_file=str(log_file), enable_console=False)
    try:
        get_logger("tests.logger").info("Webhook delivered", job_id="abc", response_status=200, skipped=None)
        log_business_event("job_cancelled", {"reason": "user"}, job_id="abc")
        for handler in logging.getLogger("dispatched").handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
    finally:
        setup_logging(log_level="INFO", enable_console=False)

    delivered, event = lines[0], lines[1]
    assert delivered["message"] == "Webhook delivered"
    assert delivered["logger"] == "dispatched.tests.logger"
    assert delivered["job_id"] == "abc"
    assert delivered["response_status"] == 200
    assert "skipped" not in delivered
    assert event["event_type"] == "job_cancelled"
    assert event["reason"] == "user"


def test_get_logger_keeps_package_prefix():
    assert get_logger("dispatched.jobs.store").logger.name == "dispatched.jobs.store"
    assert get_logger("audit").logger.name == "dispatched.audit"


def test_console_formatter_appends_fields():
    from dispatched.utils.logger import KeyValueFormatter

    record = logging.LogRecord("dispatched.x", logging.INFO, __file__, 1, "Job received", None, None)
    record.extra_data = {"job_id": "abc", "status": "QUEUED"}
    line = KeyValueFormatter(fmt="%(levelname)s %(message)s").format(record)
    assert line == "INFO Job received | job_id=abc status=QUEUED"

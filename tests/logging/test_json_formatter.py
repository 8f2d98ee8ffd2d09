import json
import logging

from localbridge.logging.logger import CustomJsonFormatter, normalize_level, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="localbridge.repositories.base",
        level=logging.WARNING,
        pathname=__file__,
        lineno=20,
        msg="SQL query failed after %s attempts",
        args=(2,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_emits_one_object_per_record():
    line = CustomJsonFormatter().format(_record(database="mysql_main", rows=3))
    entry = json.loads(line)

    assert entry["message"] == "SQL query failed after 2 attempts"
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "localbridge.repositories.base"
    assert entry["database"] == "mysql_main"
    assert entry["rows"] == 3
    assert "timestamp" in entry
    assert "pathname" not in entry
    assert "trace_id" not in entry


def test_json_formatter_renders_unserializable_extras():
    entry = json.loads(CustomJsonFormatter().format(_record(details={"value": object()})))
    assert entry["details"]["value"].startswith("<object object")


def test_normalize_level_accepts_warn():
    assert normalize_level("warn") == "WARNING"
    assert normalize_level("debug") == "DEBUG"


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "bridge.log"
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level

    try:
        setup_logging("info", "json", str(log_file))
        logging.getLogger("localbridge.test").info("hello", extra={"database": "pg_main"})
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in root.handlers[:]:
            if handler not in previous_handlers:
                root.removeHandler(handler)
                handler.close()
        for handler in previous_handlers:
            if handler not in root.handlers:
                root.addHandler(handler)
        root.setLevel(previous_level)

    entry = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert entry["message"] == "hello"
    assert entry["database"] == "pg_main"
    assert "request_id" in entry

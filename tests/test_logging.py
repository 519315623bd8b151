import json
import logging

from loguru import logger

from stampcard.core.logging import configure_logging


def test_json_sink_writes_structured_lines_to_stderr(capsys) -> None:
    configure_logging(service_name="stampcard", environment="test", version="0.1.0")
    try:
        logger.info("Sync cycle finished", pushed=2, pulled=1)
        logging.getLogger("stampcard.test").warning("bridged {value}")
    finally:
        logger.remove()

    captured = capsys.readouterr()
    assert captured.out == ""
    lines = [json.loads(line) for line in captured.err.splitlines()]

    assert lines[0]["message"] == "Sync cycle finished"
    assert lines[0]["pushed"] == 2
    assert lines[0]["service"] == "stampcard"
    assert lines[0]["environment"] == "test"
    assert "trace_id" not in lines[0]
    assert lines[1]["message"] == "bridged {value}"
    assert lines[1]["level"] == "warning"
    assert lines[1]["stdlib_logger"] == "stampcard.test"

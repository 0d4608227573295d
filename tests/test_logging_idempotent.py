import logging
import os
import sys

from pagefeeds.utils import configure_logging, log_event


def test_configure_logging_idempotent(tmp_path, monkeypatch):
    log_file = tmp_path / "app.log"
    monkeypatch.setenv("PF_LOG_LEVEL", "INFO")
    monkeypatch.setenv("PF_LOG_FILE", str(log_file))

    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    try:
        root.handlers = []
        configure_logging("pagefeeds.api")
        configure_logging("pagefeeds.api")

        file_handlers = [
            handler for handler in root.handlers if isinstance(handler, logging.FileHandler)
        ]
        stream_handlers = [
            handler
            for handler in root.handlers
            if isinstance(handler, logging.StreamHandler) and handler not in file_handlers
        ]

        assert len(stream_handlers) == 1
        assert stream_handlers[0].stream is sys.stdout
        assert len(file_handlers) == 1
        assert os.path.abspath(file_handlers[0].baseFilename) == os.path.abspath(
            str(log_file)
        )
    finally:
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)


def test_log_level_overrides(monkeypatch):
    monkeypatch.setenv("PF_LOG_LEVELS", "pagefeeds.cache=DEBUG, pagefeeds.rendering=WARNING")
    monkeypatch.delenv("PF_LOG_FILE", raising=False)

    root = logging.getLogger()
    original_handlers = list(root.handlers)
    try:
        configure_logging("pagefeeds")
        assert logging.getLogger("pagefeeds.cache").level == logging.DEBUG
        assert logging.getLogger("pagefeeds.rendering").level == logging.WARNING
    finally:
        root.handlers = original_handlers
        logging.getLogger("pagefeeds.cache").setLevel(logging.NOTSET)
        logging.getLogger("pagefeeds.rendering").setLevel(logging.NOTSET)


def test_log_event_format(caplog):
    logger = logging.getLogger("pagefeeds.test")
    with caplog.at_level(logging.INFO, logger="pagefeeds.test"):
        log_event(logger, logging.INFO, "source_scraped", url="https://example.com", articles=3)
    assert "event=source_scraped url=https://example.com articles=3" in caplog.text

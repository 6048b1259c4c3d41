import logging
import logging.handlers

import pytest

from forecastguard.infrastructure.monitoring.logger_setup import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_rotating_file_handler(tmp_path):
    log_file = tmp_path / "logs" / "forecastguard.log"
    setup_logging(log_level=logging.DEBUG, log_file=str(log_file), max_bytes=1024, backup_count=2, console=False)

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    handler = handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 1024
    assert handler.backupCount == 2

    logging.getLogger("forecastguard.test").debug("written to file")
    handler.flush()
    assert "written to file" in log_file.read_text(encoding="utf-8")


def test_console_only():
    setup_logging(log_level=logging.WARNING)

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert [type(h) for h in root.handlers] == [logging.StreamHandler]


def test_no_handlers_requested():
    setup_logging(console=False)
    assert [type(h) for h in logging.getLogger().handlers] == [logging.NullHandler]

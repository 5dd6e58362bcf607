import logging

import pytest

from nimbus_admin.core.logging import QUIET_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    levels = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, lvl in levels.items():
        logging.getLogger(name).setLevel(lvl)


def test_level_and_noisy_loggers():
    assert setup_logging("debug") == logging.DEBUG
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("passlib").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    setup_logging("error")
    assert logging.getLogger("uvicorn.access").level == logging.ERROR


def test_unknown_level_falls_back_to_info():
    assert setup_logging("chatty") == logging.INFO

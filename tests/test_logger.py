import logging

import pytest

from rsshkit.logger import FatalLogError, Logger, Urgency, urgency_name

NAME = "rsshkit.logger"


def test_urgency_names():
    assert urgency_name(Urgency.INFO) == "INFO"
    assert urgency_name(Urgency.WARN) == "WARNING"
    assert urgency_name(Urgency.FATAL) == "FATAL"
    assert urgency_name(99) == "UNKNOWN_URGENCY"


def test_info_prefix_names_caller(caplog):
    caplog.set_level(logging.DEBUG, logger=NAME)
    Logger("svc").info("hello %s %d", "there", 5)
    assert len(caplog.records) == 1
    text = caplog.records[0].getMessage()
    assert text.startswith("[svc] INFO test_logger.py:")
    assert text.endswith("test_info_prefix_names_caller() : hello there 5")


def test_warning_and_error_levels(caplog):
    caplog.set_level(logging.DEBUG, logger=NAME)
    log = Logger("x")
    log.warning("w")
    log.error("e")
    assert [r.levelno for r in caplog.records] == [logging.WARNING, logging.ERROR]
    assert "] WARNING " in caplog.records[0].getMessage()


def test_fatal_raises(caplog):
    caplog.set_level(logging.DEBUG, logger=NAME)
    with pytest.raises(FatalLogError):
        Logger("x").fatal("boom")
    assert "] FATAL " in caplog.records[0].getMessage()


def test_disabled_logger_is_silent(caplog):
    caplog.set_level(logging.DEBUG, logger=NAME)
    log = Logger("x", enabled=False)
    log.info("nothing")
    log.fatal("nothing")
    assert caplog.records == []
"""Per-session logger."""

import logging

from flowcanvas.logging import SessionLogger, get_session_logger, remove_session_logger


def test_prefix_and_history(caplog):
    log = SessionLogger("wf-1", history=2)
    with caplog.at_level(logging.DEBUG, logger="flowcanvas.session.wf-1"):
        log.info("one")
        log.warning("two")
        log.error("three")

    assert [e.message for e in log.entries()] == ["two", "three"]
    assert [e.message for e in log.entries("error")] == ["three"]
    assert "[wf-1] three" in caplog.text


def test_registry():
    first = get_session_logger("wf-x")
    assert get_session_logger("wf-x") is first
    remove_session_logger("wf-x")
    assert get_session_logger("wf-x", create=False) is None


def test_entry_to_dict():
    log = SessionLogger("wf-1", history=5)
    log.debug("hello")
    entry = log.entries()[0].to_dict()
    assert entry["level"] == "DEBUG"
    assert entry["message"] == "hello"

"""Tests for the root logging setup and the job key stamping."""

import logging

import pytest

from vidgate.adapters.logging_adapter import LoggingAdapter
from vidgate.core.logging_config import coerce_level, configure_logging, job_key_var


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


@pytest.mark.parametrize(
    "value, expected",
    [(None, logging.INFO), ("debug", logging.DEBUG), (" WARNING ", logging.WARNING), (10, 10), ("nonsense", logging.INFO)],
)
def test_coerce_level(value, expected):
    assert coerce_level(value) == expected


def test_split_sinks_and_job_key(restore_root, capsys):
    configure_logging("DEBUG")
    log = LoggingAdapter("vidgate.test", "DEBUG")

    token = job_key_var.set("vidu:42")
    try:
        log.info("tick")
        log.error("broken")
    finally:
        job_key_var.reset(token)
    log.info("outside")

    out, err = capsys.readouterr()
    assert "vidu:42: tick" in out
    assert "broken" not in out
    assert "vidu:42: broken" in err
    assert "-: outside" in out


def test_reconfiguring_replaces_handlers(restore_root):
    configure_logging("INFO")
    configure_logging("INFO")
    assert len(restore_root.handlers) == 2


def test_adapter_level_can_change():
    log = LoggingAdapter("vidgate.level", "WARNING")
    assert not log.logger.isEnabledFor(logging.INFO)
    log.set_level("DEBUG")
    assert log.logger.isEnabledFor(logging.DEBUG)

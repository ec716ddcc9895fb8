import sys

import pytest
from loguru import logger

from modder.logger import add_file_sink, resolve_level, setup_logger


@pytest.fixture(autouse=True)
def _restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("MODDER_DEBUG", "1")
    assert resolve_level() == "DEBUG"
    assert resolve_level("warning") == "WARNING"
    monkeypatch.setenv("MODDER_DEBUG", "0")
    assert resolve_level() == "INFO"


def test_file_sink_receives_messages(tmp_path):
    setup_logger("INFO", enqueue=False, colorize=False)
    log_file = tmp_path / "logs" / "modder.log"

    add_file_sink(log_file, "INFO")
    logger.info("[下载] sodium.jar")
    logger.debug("不会写入")
    logger.complete()
    logger.remove()

    text = log_file.read_text(encoding="utf-8")
    assert "[下载] sodium.jar" in text
    assert "test_logger" in text
    assert "不会写入" not in text

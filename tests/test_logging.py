import pytest
from loguru import logger

from src.config import LoggingConfig
from src.rule_engine.infrastructure.logging import (
    LoggingContext,
    configure_structured_logging,
    get_logging_context,
)


def test_logging_context_nests_and_restores():
    assert get_logging_context() == {}

    with LoggingContext(recipient_id="u1"):
        with LoggingContext(rule_id=7):
            assert get_logging_context() == {"recipient_id": "u1", "rule_id": 7}
        assert get_logging_context() == {"recipient_id": "u1"}

    assert get_logging_context() == {}


def test_file_sink_carries_context(tmp_path):
    log_file = tmp_path / "engine.log"
    configure_structured_logging(LoggingConfig(level="DEBUG", file=str(log_file)))
    try:
        with LoggingContext(recipient_id="u42"):
            logger.info("evaluating")
        logger.info("outside")
    finally:
        logger.remove()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert "'recipient_id': 'u42'" in lines[0]
    assert "'recipient_id': '-'" in lines[1]


def test_logging_context_accepts_only_known_fields():
    with pytest.raises(TypeError):
        LoggingContext(user="u1")


def test_unset_field_keeps_enclosing_value():
    with LoggingContext(recipient_id="u1", rule_id=3):
        with LoggingContext(recipient_id="u2"):
            assert get_logging_context() == {"recipient_id": "u2", "rule_id": 3}

"""Tests for logging service configuration."""

import logging
from unittest.mock import patch

import pytest

from src.services.logging import get_log_level, setup_server_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Keep the root logger configuration of other tests intact."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers.copy()
    original_level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


class TestServerLogging:
    """Test server logging configuration."""

    def test_creates_log_directory_and_two_handlers(self, tmp_path, restore_root_logger) -> None:
        log_file = tmp_path / "nested" / "server.log"

        setup_server_logging(str(log_file))

        assert log_file.parent.exists()
        assert len(restore_root_logger.handlers) == 2

    def test_level_from_environment(self, tmp_path, restore_root_logger) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": "DEBUG"}, clear=False):
            setup_server_logging(str(tmp_path / "server.log"))

        assert restore_root_logger.level == logging.DEBUG
        for handler in restore_root_logger.handlers:
            assert handler.level == logging.DEBUG

    def test_writes_formatted_records_to_file(self, tmp_path) -> None:
        """Records carry an ISO timestamp, logger name and level."""
        log_file = tmp_path / "server.log"
        with patch.dict("os.environ", {"LOG_LEVEL": "INFO"}, clear=False):
            setup_server_logging(str(log_file))

        logging.getLogger("src.services.bills_service").info("Generated %d bill(s)", 3)

        contents = log_file.read_text()
        assert "[20" in contents
        assert "src.services.bills_service - INFO - Generated 3 bill(s)" in contents

    def test_repeated_setup_does_not_duplicate_handlers(self, tmp_path, restore_root_logger) -> None:
        dummy_handler = logging.StreamHandler()
        restore_root_logger.addHandler(dummy_handler)

        setup_server_logging(str(tmp_path / "server.log"))
        setup_server_logging(str(tmp_path / "server.log"))

        assert len(restore_root_logger.handlers) == 2
        assert dummy_handler not in restore_root_logger.handlers

    def test_sql_echo_is_quieted(self, tmp_path) -> None:
        setup_server_logging(str(tmp_path / "server.log"))

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


class TestGetLogLevel:
    """Tests for get_log_level()."""

    @pytest.mark.parametrize(
        "value, expected",
        [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("bogus", logging.INFO)],
    )
    def test_maps_names(self, value, expected) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": value}, clear=False):
            assert get_log_level() == expected

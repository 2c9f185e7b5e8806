"""Tests for logging service configuration."""

import logging
from unittest.mock import patch

import pytest

from src.services.logging import get_log_level, setup_server_logging


class TestServerLogging:
    """Test server logging configuration."""

    def setup_method(self):
        """Save original handlers before each test."""
        self.root_logger = logging.getLogger()
        self.original_handlers = self.root_logger.handlers.copy()
        self.original_level = self.root_logger.level
        self.original_sql_level = logging.getLogger("sqlalchemy.engine").level

    def teardown_method(self):
        """Restore original handlers after each test."""
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.original_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.original_level)
        logging.getLogger("sqlalchemy.engine").setLevel(self.original_sql_level)

    def test_creates_log_directory(self, tmp_path) -> None:
        """Verify setup_server_logging creates the log directory if missing."""
        log_file = tmp_path / "logs" / "server.log"
        assert not log_file.parent.exists()

        setup_server_logging(str(log_file), "INFO")

        assert log_file.parent.exists()

    def test_replaces_existing_handlers(self, tmp_path) -> None:
        """Verify only stdout + file handlers remain, even when called twice."""
        dummy_handler = logging.StreamHandler()
        self.root_logger.addHandler(dummy_handler)

        setup_server_logging(str(tmp_path / "server.log"), "INFO")
        setup_server_logging(str(tmp_path / "server.log"), "INFO")

        assert len(self.root_logger.handlers) == 2
        assert dummy_handler not in self.root_logger.handlers

    def test_explicit_level_wins_over_environment(self, tmp_path) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": "ERROR"}, clear=False):
            setup_server_logging(str(tmp_path / "server.log"), "DEBUG")

        assert self.root_logger.level == logging.DEBUG
        for handler in self.root_logger.handlers:
            assert handler.level == logging.DEBUG

    def test_level_from_environment(self, tmp_path) -> None:
        with patch.dict("os.environ", {"LOG_LEVEL": "WARNING"}, clear=False):
            setup_server_logging(str(tmp_path / "server.log"))

        assert self.root_logger.level == logging.WARNING

    def test_writes_formatted_lines_to_file(self, tmp_path) -> None:
        """Verify format: [timestamp] logger name - LEVEL - message."""
        log_file = tmp_path / "server.log"
        setup_server_logging(str(log_file), "INFO")

        logging.getLogger("src.services.utility_allocation_service").warning(
            "Allocation refused for bill %d: %s", 7, "MISSING_SPLIT_DATA"
        )

        contents = log_file.read_text()
        assert "[20" in contents
        assert (
            "src.services.utility_allocation_service - WARNING - "
            "Allocation refused for bill 7: MISSING_SPLIT_DATA"
        ) in contents

    def test_sql_echo_follows_debug(self, tmp_path) -> None:
        setup_server_logging(str(tmp_path / "server.log"), "INFO")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

        setup_server_logging(str(tmp_path / "server.log"), "DEBUG")
        assert logging.getLogger("sqlalchemy.engine").level == logging.INFO


class TestGetLogLevel:
    @pytest.mark.parametrize(
        ("name", "level"),
        [("debug", logging.DEBUG), ("INFO", logging.INFO), ("critical", logging.CRITICAL)],
    )
    def test_known_names(self, name, level):
        assert get_log_level(name) == level

    def test_unknown_name_falls_back_to_info(self):
        assert get_log_level("chatty") == logging.INFO

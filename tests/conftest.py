from unittest.mock import MagicMock

import pytest

from latency_monitor.logging import Entry, LoggingConfig, LogLevel

from tests.helpers import create_mock_stream_writer


@pytest.fixture(autouse=True)
def configure_log_level():
    config = LoggingConfig()
    config.update(log_level="debug")
    yield
    config.update(log_level="info")


@pytest.fixture
def temp_log_directory(tmp_path) -> str:
    return str(tmp_path)


@pytest.fixture
def mock_stdout_writer() -> MagicMock:
    return create_mock_stream_writer()


@pytest.fixture
def mock_stderr_writer() -> MagicMock:
    return create_mock_stream_writer()


@pytest.fixture
def sample_entry() -> Entry:
    return Entry(
        message="Test log message",
        level=LogLevel.INFO,
    )


@pytest.fixture
def sample_entry_factory():
    def create_entry(
        message: str = "Test log message",
        level: LogLevel = LogLevel.INFO,
    ) -> Entry:
        return Entry(message=message, level=level)

    return create_entry

"""Test logging setup and the remote failure report"""

import logging

import pytest

from media_mirror.core.logger import (
    REMOTE_FAILURES_PREFIX,
    get_logger,
    log_remote_failure,
    setup_logging,
    shutdown_logging,
)


@pytest.fixture
def logs_dir(temp_dir):
    setup_logging(temp_dir)
    yield temp_dir / "logs"
    shutdown_logging()


def read_log(logs_dir, prefix: str) -> str:
    (path,) = logs_dir.glob(f"{prefix}_*.log")
    return path.read_text(encoding="utf-8")


class TestLogging:
    """Test the log files written under the storage directory"""

    def test_creates_log_files(self, logs_dir):
        names = sorted(p.name.split("_2")[0] for p in logs_dir.iterdir())
        assert names == ["log_errors", "log_full", REMOTE_FAILURES_PREFIX]

    def test_error_file_only_has_errors(self, logs_dir):
        logger = get_logger("media_mirror.test")
        logger.info("routine message")
        logger.error("broken message")
        shutdown_logging()

        errors = read_log(logs_dir, "log_errors")
        assert "broken message" in errors
        assert "routine message" not in errors
        assert "routine message" in read_log(logs_dir, "log_full")

    def test_remote_failure_report(self, logs_dir):
        logger = get_logger("media_mirror.test")
        log_remote_failure(logger, "delete", "1AbC", RuntimeError("gone"))
        logger.warning("unrelated warning")
        shutdown_logging()

        report = read_log(logs_dir, REMOTE_FAILURES_PREFIX)
        assert report.splitlines() == ["delete  1AbC  gone"]

    def test_shutdown_removes_handlers(self, logs_dir):
        shutdown_logging()
        assert logging.getLogger().handlers == []

"""
Logging configuration for media-mirror.

This module sets up the logging system with multiple outputs:
    - Console: Colored, tqdm-compatible output
    - log_full_{timestamp}.log: Complete log of all events (DEBUG and above)
    - log_errors_{timestamp}.log: Only ERROR and CRITICAL level messages
    - remote_failures_{timestamp}.log: Best-effort remote operations that
      failed (permission grants, asynchronous remote deletes)

Everything printed to screen is also saved to file, then filtered into the
specialized files.

Usage:
    from media_mirror.core.logger import setup_logging, get_logger

    setup_logging(storage_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Starting sync")
    log_remote_failure(logger, "delete", file_id, error)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


REMOTE_FAILURES_PREFIX = "remote_failures"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Formatter that colors the level name on console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes through tqdm.write().

    Plain writes to stderr corrupt active progress bars; tqdm.write()
    prints above them instead.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class RemoteFailureHandler(logging.Handler):
    """
    Handler that captures best-effort remote failures for a report file.

    Listens for records carrying 'remote_failure_operation' and writes them
    in a simple, greppable format:

        delete  1AbCdEf...  File with ID 1AbCdEf... not found
        publish 1GhIjKl...  HttpError 403

    Records without the extra fields are ignored.

    Attributes:
        report_path: Path to the remote_failures log file.
        report_file: Open file handle (None until open() is called).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "remote_failure_operation"):
            return

        if self.report_file is None:
            return

        try:
            operation = getattr(record, "remote_failure_operation", "unknown")
            remote_id = getattr(record, "remote_failure_id", "")
            error = getattr(record, "remote_failure_error", "")

            self.acquire()
            try:
                self.report_file.write(f"{operation:<8}{remote_id}  {error}\n")
                self.report_file.flush()
            finally:
                self.release()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, verbose: bool = False) -> None:
    """
    Configure the logging system for the application.

    Call ONCE at application startup, after the configuration is loaded.

    Args:
        output_dir: Directory where log files will be created.
                    Logs are stored in a 'logs' subdirectory.
        verbose: Show DEBUG records on the console as well.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Configure root logger level to DEBUG and drop existing handlers
        3. Console handler (tqdm-compatible, colored), INFO or DEBUG
        4. Full log file handler, DEBUG
        5. Error-only log file handler
        6. Remote failures report handler

    Thread Safety:
        NOT thread-safe. Call from the main thread before any worker
        threads (e.g., the remote delete queue) are started.
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    file_formatter = logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT)

    full_handler = logging.FileHandler(
        logs_dir / f"log_full_{timestamp}.log", mode="w", encoding="utf-8"
    )
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(file_formatter)
    root_logger.addHandler(full_handler)

    error_handler = logging.FileHandler(
        logs_dir / f"log_errors_{timestamp}.log", mode="w", encoding="utf-8"
    )
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(file_formatter)
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    remote_handler = RemoteFailureHandler(logs_dir / f"{REMOTE_FAILURES_PREFIX}_{timestamp}.log")
    remote_handler.open()
    root_logger.addHandler(remote_handler)

    # googleapiclient logs every discovery cache miss at WARNING
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Example:
        logger = get_logger(__name__)
        logger.info("Sync complete")
    """
    return logging.getLogger(name)


def log_remote_failure(
    logger: logging.Logger,
    operation: str,
    remote_id: str,
    error: BaseException | str
) -> None:
    """
    Log a best-effort remote operation that failed.

    The failure is swallowed by the caller; this is the only place it
    surfaces. Attaches the extra fields RemoteFailureHandler picks up.

    Args:
        logger: The logger to use for the message.
        operation: Short operation name ("delete", "publish").
        remote_id: Drive file id the operation targeted.
        error: The exception (or message) that caused the failure.

    Example:
        try:
            client.set_public(file_id)
        except RemoteSourceError as e:
            log_remote_failure(logger, "publish", file_id, e)
    """
    logger.warning(
        f"Best-effort {operation} failed for {remote_id}: {error}",
        extra={
            "remote_failure_operation": operation,
            "remote_failure_id": remote_id,
            "remote_failure_error": str(error),
        }
    )


def shutdown_logging() -> None:
    """
    Flush, close and remove every handler on the root logger.

    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)

"""
Structured logging for scrapejobs.

Wraps stdlib logging with console and file outputs, key/value context and
counters for monitoring store contention and export volume.
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks counters for store retries and job processing.
    """

    def __init__(
        self,
        name: str = "scrapejobs",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = False,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self._lock = threading.Lock()
        self.metrics = {
            "store_calls": 0,
            "busy_retries": 0,
            "retries_exhausted": 0,
            "jobs_processed": 0,
            "jobs_failed": 0,
            "rows_written": 0,
            "errors_by_type": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"scrapejobs_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Counters

    def _incr(self, key: str, count: int = 1):
        with self._lock:
            self.metrics[key] += count

    def record_store_call(self):
        self._incr("store_calls")

    def record_busy_retry(self):
        self._incr("busy_retries")

    def record_retries_exhausted(self):
        self._incr("retries_exhausted")

    def record_rows_written(self, count: int = 1):
        self._incr("rows_written", count)

    def record_job_result(self, ok: bool, error_type: Optional[str] = None):
        """Record a finished job and, for failures, the error type."""
        with self._lock:
            self.metrics["jobs_processed"] += 1
            if ok:
                return
            self.metrics["jobs_failed"] += 1
            if error_type:
                errors = self.metrics["errors_by_type"]
                errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a copy of the current counters."""
        with self._lock:
            metrics_copy = dict(self.metrics)
            metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current counters."""
        metrics = self.get_metrics()

        self.info("=== Job Store Metrics ===")
        self.info(f"Store calls: {metrics['store_calls']}")
        self.info(
            f"Busy retries: {metrics['busy_retries']} "
            f"(exhausted: {metrics['retries_exhausted']})"
        )
        self.info(
            f"Jobs: {metrics['jobs_processed']} processed, "
            f"{metrics['jobs_failed']} failed, {metrics['rows_written']} rows written"
        )

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "scrapejobs",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the process logger.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the process logger (useful for testing)."""
    global _global_logger
    _global_logger = None

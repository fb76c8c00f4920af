"""
Advanced Logging Module

Provides structured logging with:
- Run ID tracking so every log line of one ordering run can be correlated
- Performance metrics (timing, throughput)
- Progress logging for long pairwise scans
- Context managers for automatic timing and exception logging
"""

import contextlib
import functools
import logging
import logging.handlers
import time
from pathlib import Path
from typing import Any, Callable, Optional

import structlog
from structlog.types import EventDict, Processor

from optics_clustering.utils.error_handling import OpticsError


# =============================================================================
# Structured Logging Configuration
# =============================================================================


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    service_name: str = "optics-clustering",
    max_size_mb: int = 100,
    backup_count: int = 5,
) -> None:
    """
    Configure structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format ("json" or "console")
        log_file: Optional log file path
        service_name: Service name for log context
        max_size_mb: Rotate the log file after this many megabytes
        backup_count: Number of rotated files to keep
    """
    level = getattr(logging, log_level.upper())

    # Configure stdlib logging
    logging.basicConfig(
        format="%(message)s",
        level=level,
    )
    logging.root.setLevel(level)

    # Add file handler if specified
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(level)
        logging.root.addHandler(file_handler)

    # Configure structlog processors
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context(service_name),
    ]

    # Add appropriate renderer
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    # Configure structlog
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_service_context(service_name: str) -> Processor:
    """
    Add service-level context to all log events.

    Args:
        service_name: Service name

    Returns:
        Processor function
    """

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["service"] = service_name
        run_id = LogContext.get_run_id()
        if run_id and "run_id" not in event_dict:
            event_dict["run_id"] = run_id
        return event_dict

    return processor


# =============================================================================
# Run ID Context
# =============================================================================


class LogContext:
    """
    Context manager for run ID tracking.

    Ties together the log lines of one ordering run and the extractions
    performed on its output.
    """

    _run_id: Optional[str] = None

    @classmethod
    def set_run_id(cls, run_id: str) -> None:
        """Set run ID for current context."""
        cls._run_id = run_id

    @classmethod
    def get_run_id(cls) -> Optional[str]:
        """Get current run ID."""
        return cls._run_id

    @classmethod
    def clear_run_id(cls) -> None:
        """Clear run ID."""
        cls._run_id = None

    @classmethod
    @contextlib.contextmanager
    def run_context(cls, run_id: str):
        """
        Context manager for run ID.

        Example:
            with LogContext.run_context("run-123"):
                engine.run()  # Log lines carry run_id
        """
        previous_id = cls._run_id
        cls._run_id = run_id
        try:
            yield
        finally:
            cls._run_id = previous_id


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get logger with automatic run ID binding.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Bound logger instance
    """
    logger = structlog.get_logger(name)

    run_id = LogContext.get_run_id()
    if run_id:
        logger = logger.bind(run_id=run_id)

    return logger


def _describe_exception(exc: BaseException) -> dict[str, Any]:
    event: dict[str, Any] = {
        "error": str(exc),
        "error_type": type(exc).__name__,
    }
    if isinstance(exc, OpticsError):
        event["error_code"] = exc.error_code
        event["error_details"] = exc.details
    return event


# =============================================================================
# Performance Logger
# =============================================================================


class PerformanceLogger:
    """
    Times a block and logs one completion event for it.

    Outcomes only known at the end of the block (ordered points, core
    points, clusters) are attached with add_result() and logged together
    with the duration.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.BoundLogger] = None,
        log_level: str = "info",
        item_count: Optional[int] = None,
        **extra_context: Any,
    ):
        """
        Initialize performance logger.

        Args:
            operation: Operation name for logging
            logger: Logger instance (creates new if None)
            log_level: Log level of the completion event
            item_count: Number of points handled (for throughput)
            **extra_context: Parameters logged with both events
        """
        self.operation = operation
        self.logger = logger or get_logger(__name__)
        self.log_level = log_level
        self.item_count = item_count
        self.context = {"operation": operation, **extra_context}
        self.results: dict[str, Any] = {}
        self._started: Optional[float] = None
        self._finished: Optional[float] = None

    def add_result(self, **results: Any) -> None:
        """Attach outcome fields to the completion event."""
        self.results.update(results)

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug("operation_started", **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._finished = time.perf_counter()
        elapsed = self.elapsed_time

        event = {**self.context, **self.results, "duration_seconds": round(elapsed, 3)}
        if self.item_count:
            event["item_count"] = self.item_count
            if elapsed > 0:
                event["items_per_second"] = round(self.item_count / elapsed, 2)

        if exc_type is not None:
            event.update(_describe_exception(exc_val))
            self.logger.error("operation_failed", **event)
        else:
            getattr(self.logger, self.log_level)("operation_completed", **event)

    @property
    def elapsed_time(self) -> float:
        """Seconds since the block started (final once it has exited)."""
        if self._started is None:
            return 0.0
        return (self._finished or time.perf_counter()) - self._started


def timed(
    operation: Optional[str] = None,
    log_level: str = "info",
) -> Callable:
    """
    Decorator for automatic timing of functions.

    Args:
        operation: Operation name (defaults to function name)
        log_level: Log level for output

    Example:
        @timed(operation="optics_clustering")
        def cluster(self, points, ...):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with PerformanceLogger(operation or func.__name__, log_level=log_level):
                return func(*args, **kwargs)

        return wrapper

    return decorator


# =============================================================================
# Progress Logger
# =============================================================================


class ProgressLogger:
    """
    Throttled progress events for a loop over a known number of points.

    Emits one debug event every ``log_interval`` points and one for the
    last point, then an info summary from complete(). Loop state such as
    the seed queue length can be passed to update() and is logged as is.
    """

    def __init__(
        self,
        total_items: int,
        operation: str,
        log_interval: int = 1000,
        logger: Optional[structlog.BoundLogger] = None,
    ):
        self.total_items = total_items
        self.operation = operation
        self.log_interval = max(1, log_interval)
        self.logger = logger or get_logger(__name__)

        self.processed_items = 0
        self._next_report = self.log_interval
        self._started = time.perf_counter()

    def update(self, count: int = 1, **state: Any) -> None:
        """Record ``count`` more points."""
        self.processed_items += count
        if self.processed_items >= self._next_report or self.processed_items >= self.total_items:
            self._log_progress(state)
            while self._next_report <= self.processed_items:
                self._next_report += self.log_interval

    def _log_progress(self, state: dict[str, Any]) -> None:
        elapsed = time.perf_counter() - self._started
        rate = self.processed_items / elapsed if elapsed > 0 else 0.0
        remaining = max(0, self.total_items - self.processed_items)

        self.logger.debug(
            "progress",
            operation=self.operation,
            processed=self.processed_items,
            total=self.total_items,
            progress_pct=round(100.0 * self.processed_items / self.total_items, 1) if self.total_items else 100.0,
            eta_seconds=round(remaining / rate, 1) if rate > 0 else None,
            **state,
        )

    def complete(self, **summary: Any) -> None:
        """Log the loop summary."""
        elapsed = time.perf_counter() - self._started
        self.logger.info(
            "progress_completed",
            operation=self.operation,
            total_items=self.processed_items,
            duration_seconds=round(elapsed, 3),
            **summary,
        )


# =============================================================================
# Utility Functions
# =============================================================================


@contextlib.contextmanager
def log_exceptions(
    logger: Optional[structlog.BoundLogger] = None,
    operation: Optional[str] = None,
    reraise: bool = True,
):
    """
    Log any exception raised inside the block.

    Library errors carry their error code and details into the event.

    Args:
        logger: Logger instance
        operation: Operation name for context
        reraise: Whether to reraise exception after logging

    Example:
        with log_exceptions(operation="cli_cluster"):
            points = cli.load_points(path)
    """
    log = logger or get_logger(__name__)
    try:
        yield
    except Exception as e:
        event = _describe_exception(e)
        if operation:
            event["operation"] = operation
        log.error("exception_caught", exc_info=True, **event)

        if reraise:
            raise

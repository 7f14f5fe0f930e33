"""Timing utilities for discovery and execution phases."""

import logging
import time
from contextlib import contextmanager
from typing import Dict, Optional, Any, Generator


class PerformanceLogger:
    """
    Timing helper for the phases of a sync run.

    Discovery (host listing, local scan, planning) and execution are each
    wrapped in time_operation() so slow phases show up in the log.
    """

    SLOW_OPERATION_SECONDS = 30.0

    def __init__(self, logger_name: str = 'repotree.performance'):
        self.logger = logging.getLogger(logger_name)

    @contextmanager
    def time_operation(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: int = logging.DEBUG
    ) -> Generator[None, None, None]:
        """
        Context manager for timing operations.

        Args:
            operation: Name of the operation being timed
            context: Additional context information
            log_level: Logging level for performance messages
        """
        start_time = time.monotonic()
        self.logger.log(log_level, f"Starting {operation}")

        success = True
        try:
            yield
        except Exception as e:
            success = False
            self.logger.debug(f"{operation} failed after {time.monotonic() - start_time:.3f}s: {e}")
            raise
        finally:
            duration = time.monotonic() - start_time

            if success:
                self.logger.log(log_level, f"{operation} completed in {duration:.3f}s")

                if context:
                    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
                    self.logger.debug(f"{operation} context: {context_str}")

            if duration > self.SLOW_OPERATION_SECONDS:
                self.logger.warning(f"Slow operation detected: '{operation}' took {duration:.3f}s")


# Global performance logger instance
_performance_logger: Optional[PerformanceLogger] = None


def get_performance_logger() -> PerformanceLogger:
    """Get or create the global performance logger instance."""
    global _performance_logger
    if _performance_logger is None:
        _performance_logger = PerformanceLogger()
    return _performance_logger

"""Logging utilities for standardized logging patterns."""

import logging
from typing import Optional

from tenacity import RetryCallState

logger = logging.getLogger(__name__)


def log_operation_start(
    operation: str,
    identifier: Optional[str] = None,
    **kwargs
) -> None:
    """
    Log the start of an operation.

    Args:
        operation: Operation name
        identifier: Optional identifier (e.g., task_id)
        **kwargs: Additional context to log
    """
    msg = f"Starting {operation}"
    if identifier:
        msg += f" for {identifier}"

    if kwargs:
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        msg += f" ({context})"

    logger.info(msg)


def log_operation_complete(
    operation: str,
    identifier: Optional[str] = None,
    success: bool = True,
    **kwargs
) -> None:
    """
    Log the completion of an operation.

    Args:
        operation: Operation name
        identifier: Optional identifier
        success: Whether operation succeeded
        **kwargs: Additional context to log
    """
    status = "completed successfully" if success else "failed"
    msg = f"{operation} {status}"

    if identifier:
        msg += f" for {identifier}"

    if kwargs:
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        msg += f" ({context})"

    if success:
        logger.info(msg)
    else:
        logger.error(msg)


def log_retry_attempt(
    operation: str,
    attempt: int,
    max_attempts: int,
    error: Optional[BaseException] = None,
    identifier: Optional[str] = None
) -> None:
    """
    Log a retry attempt.

    Args:
        operation: Operation being retried
        attempt: Current attempt number (1-based)
        max_attempts: Maximum number of attempts
        error: Optional error that caused retry
        identifier: Optional identifier
    """
    msg = f"{operation} attempt {attempt}/{max_attempts}"

    if identifier:
        msg += f" for {identifier}"

    if error:
        msg += f": {str(error)}"

    logger.warning(msg)


def tenacity_retry_logger(operation: str, max_attempts: int, identifier: Optional[str] = None):
    """Build a tenacity ``before_sleep`` callback that reports through log_retry_attempt."""
    def _before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        log_retry_attempt(operation, retry_state.attempt_number, max_attempts, error, identifier)
    return _before_sleep

# src/studio_batch/core/error_handling.py

import functools
import logging
from asyncio import sleep

from PIL import UnidentifiedImageError as PILUnidentifiedImageError

from .exceptions import (
    DecodeError,
    StudioBatchError,
    TerminalTransformError,
    TransientTransformError,
)


def with_error_handling(func):
    """
    A decorator to wrap synchronous image helpers with standardized error handling.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except StudioBatchError:
            raise
        except Exception as e:
            logger.error(
                f"Error in '{func.__name__}': {e}",
                exc_info=True
            )
            if isinstance(e, PILUnidentifiedImageError):
                raise DecodeError(f"Failed to identify image in {func.__name__}: {e}") from e
            if isinstance(e, (OSError, SyntaxError, ValueError)):
                raise DecodeError(f"Failed to load image for resizing: {e}") from e
            raise
    return wrapper


def retry_transient(max_retries=3, initial_delay=1.0, backoff_factor=2.0):
    """
    Decorator to retry async remote operations with exponential backoff.

    Only ``TransientTransformError`` is retried. With the defaults the
    operation runs at most four times, sleeping 1s, 2s and 4s in between.
    Every other exception propagates on the first failure.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__ + '.' + func.__name__)
            attempt = 0
            delay = initial_delay
            while True:
                try:
                    return await func(*args, **kwargs)
                except TransientTransformError as e:
                    if attempt >= max_retries:
                        logger.error(
                            f"Remote operation '{func.__name__}' failed after {attempt + 1} attempts. Error: {e}"
                        )
                        raise TerminalTransformError(e.message, e.status) from e

                    logger.info(
                        f"Remote operation '{func.__name__}' failed with status {e.status}. "
                        f"Retry {attempt + 1}/{max_retries} in {delay:.2f}s. Error: {e}"
                    )
                    await sleep(delay)
                    delay *= backoff_factor
                    attempt += 1
        return wrapper
    return decorator


class BatchOperationContextManager:
    """
    Collects per-item failures of one batch run and logs a grouped summary on exit.

    Failures are grouped by message, so a run where every item hit the same
    service error logs one line with a count instead of one line per item.
    """
    def __init__(self, operation_name="Batch run"):
        self.operation_name = operation_name
        self.errors = []
        self.logger = logging.getLogger(self.__class__.__module__ + '.' + self.__class__.__name__)

    def __enter__(self):
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(
                f"{self.operation_name} aborted: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb)
            )
        elif self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for message, items in self.grouped_errors().items():
                shown = ", ".join(items[:5]) + (f" and {len(items) - 5} more" if len(items) > 5 else "")
                self.logger.error(f"  {len(items)} item(s) failed with '{message}': {shown}")
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        return False

    @property
    def failed_items(self):
        return [detail["item"] for detail in self.errors]

    def grouped_errors(self):
        """Map each distinct error message to the items that failed with it, in report order."""
        groups = {}
        for detail in self.errors:
            groups.setdefault(detail["error"], []).append(detail["item"])
        return groups

    def add_error(self, error_message, item_identifier="Unknown item"):
        """
        Report a failed item from inside the ``with`` block.

        Args:
            error_message: Error message or exception
            item_identifier: Relative path of the item that failed
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(f"[{item_identifier}] Error recorded in {self.operation_name}: {error_message}")

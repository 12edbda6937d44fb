# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Bounded retry with exponential backoff.
"""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_bounded_retry(
    operation: Callable[[], T],
    retry_on: Union[Type[BaseException], Tuple[Type[BaseException], ...]],
    max_attempts: int,
    base_delay: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
    operation_name: str = "operation"
) -> T:
    """
    Run an operation, retrying it when it raises one of ``retry_on``.

    Delays grow as ``base_delay * 2 ** attempt``. Exceptions not listed
    in ``retry_on`` propagate immediately; after the last attempt the
    retryable exception propagates unchanged.

    Args:
        operation: Zero-argument callable to run
        retry_on: Exception type(s) that trigger another attempt
        max_attempts: Total number of attempts, at least 1
        base_delay: Delay in seconds before the second attempt
        sleep: Sleep function, replaceable in tests
        operation_name: Name used in log records

    Returns:
        The operation's return value
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(max_attempts):
        try:
            return operation()
        except retry_on as e:
            if attempt + 1 >= max_attempts:
                logger.error(
                    f"{operation_name} failed after all retries",
                    extra={
                        "extra_fields": {
                            "operation": operation_name,
                            "total_attempts": attempt + 1,
                            "error": str(e)
                        }
                    }
                )
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"{operation_name} failed, retrying",
                extra={
                    "extra_fields": {
                        "operation": operation_name,
                        "attempt": attempt + 1,
                        "retry_delay": delay,
                        "error": str(e)
                    }
                }
            )
            if delay > 0:
                sleep(delay)

    # Unreachable: the loop either returns or re-raises
    raise RuntimeError(f"{operation_name} exhausted retries")

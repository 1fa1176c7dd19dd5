"""Retry with exponential backoff for payment provider calls.

Only ``ProviderUnreachable`` is retried, and only here at the coordinator
boundary. Adapters never retry on their own.
"""

import time
from collections.abc import Callable
from typing import TypeVar

from storefront.config import get_settings
from storefront.domain import logger
from storefront.errors import ProviderUnreachable

T = TypeVar("T")


def call_with_retries(
    operation: Callable[[], T],
    *,
    action: str,
    attempts: int | None = None,
    backoff_seconds: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
    **log_context,
) -> T:
    settings = get_settings()
    attempts = max(1, attempts if attempts is not None else settings.provider_max_attempts)
    backoff = backoff_seconds if backoff_seconds is not None else settings.provider_backoff_seconds

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ProviderUnreachable as exc:
            if attempt == attempts:
                logger.warning("provider_retries_exhausted", action=action, attempts=attempts, error=exc.message, **log_context)
                raise
            delay = backoff * (2 ** (attempt - 1))
            logger.info("provider_call_retrying", action=action, attempt=attempt, delay=delay, **log_context)
            sleep(delay)

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

import anyio

logger = logging.getLogger(__name__)


async def run_best_effort(
    func: Callable[[], Awaitable[Any]],
    *,
    timeout: float,
    label: str,
    log_context: dict[str, Any] | None = None,
) -> bool:
    """
    Await a side effect with a time box, logging instead of raising.

    Used for work that happens after the durable write (notifications):
    a failure or timeout is only visible in logs.

    Returns:
        True if the call finished in time without raising.
    """
    extra = log_context or {}
    try:
        with anyio.fail_after(timeout):
            await func()
    except TimeoutError:
        logger.warning("%s timed out after %.1fs", label, timeout, extra=extra)
        return False
    except Exception:
        logger.exception("%s failed", label, extra=extra)
        return False
    return True

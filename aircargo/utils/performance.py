"""
Timing wrapper for units of work.

Replaces per-method decoration with an explicit call: the caller names the
work and hands over a zero-argument coroutine factory.
"""

import logging
import time
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def measure(label: str, work: Callable[[], Awaitable[T]]) -> T:
    """
    Await ``work()`` and log how long it took, whether it succeeded or not.

    Args:
        label: Name logged alongside the elapsed time
        work: Zero-argument callable returning an awaitable

    Returns:
        Whatever the awaited work returned
    """
    start = time.perf_counter()
    try:
        return await work()
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Performance: {label} took {elapsed_ms:.1f}ms")

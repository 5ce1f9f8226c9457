"""Bounded retry combinator shared by both readiness phases."""

import asyncio
import math


def attempts_for(timeout, interval):
    """Convert a time budget into an attempt count (at least one)."""
    if interval <= 0:
        return 1
    return max(1, math.ceil(timeout / interval))


async def poll(probe, attempts, interval):
    """Call *probe* until it returns something truthy, at most *attempts* times.

    Sleeps *interval* seconds between attempts, never after the last one.
    Exceptions raised by *probe* propagate, so do cancellations.

    Returns:
        The first truthy probe result, or None if every attempt came back falsy.
    """
    for attempt in range(1, attempts + 1):
        result = await probe(attempt)
        if result:
            return result
        if attempt < attempts:
            await asyncio.sleep(interval)
    return None

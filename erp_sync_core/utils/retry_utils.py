"""Backoff calculation shared by the transport's retry loop."""

import random


def calculate_exponential_backoff(
    retry_count: int,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    multiplier: float = 2.0,
    jitter: bool = False,
) -> float:
    """
    Calculate exponential backoff delay with optional jitter.

    Args:
        retry_count: Current retry attempt (0-based)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any delay, in seconds
        multiplier: Growth factor between consecutive retries
        jitter: Add +/-25% randomization (breaks monotonic delays)

    Returns:
        Delay in seconds before the next retry

    Example:
        retry_count=0: 1s
        retry_count=1: 2s
        retry_count=2: 4s
        retry_count=3: 8s
        retry_count=4: 10s (capped at max_delay)
    """
    if retry_count < 0:
        return base_delay

    delay = min(base_delay * (multiplier**retry_count), max_delay)

    if jitter:
        jitter_range = delay * 0.25
        delay = delay + random.uniform(-jitter_range, jitter_range)
        # Never shorter than the first step, never past the cap
        delay = min(max(delay, base_delay), max_delay)

    return delay

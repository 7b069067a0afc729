"""Backoff helpers shared by the MSAL wrappers and the Graph client."""

import random

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAYS = [1.0, 2.0, 4.0]


def jittered(delay: float) -> float:
    """Return delay with ±20% jitter to avoid synchronized retry storms."""
    return delay + delay * 0.2 * (2 * random.random() - 1)


def backoff_delay(attempt: int, delays: list[float] | None = None) -> float:
    """Jittered delay for a 0-based attempt, reusing the last delay past the end."""
    delays = delays or DEFAULT_RETRY_DELAYS
    base = delays[attempt] if attempt < len(delays) else delays[-1]
    return jittered(base)

"""Retry backoff computation.

:func:`compute_backoff` is pure: it never sleeps and has no jitter, so
the executor's retry schedule is deterministic and testable.

Schedule with the default 1 s unit: 1, 2, 4, 8, 16, 30, 30, ...
Rate-limited (429) responses start at 5 s, or use the server's
``Retry-After`` seconds when it sends a positive integer.
"""

from __future__ import annotations

from pincho.core.errors import parse_retry_after

MAX_BACKOFF = 30.0
RATE_LIMIT_BACKOFF = 5.0
DEFAULT_INITIAL_BACKOFF = 1.0

_RATE_LIMIT_STATUS = 429


def compute_backoff(
    attempt: int,
    status_code: int,
    retry_after: str | None = None,
    *,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
) -> float:
    """Return the delay in seconds before retrying after *attempt*.

    Parameters
    ----------
    attempt:
        Zero-based index of the attempt that just failed.
    status_code:
        HTTP status of the failed attempt, or 0 for transport failures.
    retry_after:
        Raw ``Retry-After`` header value, if any.  Only honoured for 429.
    initial_backoff:
        Base unit for non-rate-limit failures.

    """
    if status_code == _RATE_LIMIT_STATUS:
        hint = parse_retry_after(retry_after)
        if hint is not None:
            return min(float(hint), MAX_BACKOFF)
        base = RATE_LIMIT_BACKOFF
    else:
        base = initial_backoff if initial_backoff > 0 else DEFAULT_INITIAL_BACKOFF

    # Large exponents overflow float conversion.
    exponent = min(max(attempt, 0), 32)
    return min(base * (2**exponent), MAX_BACKOFF)

"""
exact_sdk.core.ratelimit - Rate-limit quota tracking
====================================================

Immutable records of the quota state reported by the API through the
``X-RateLimit-*`` response headers. A new snapshot replaces the old one
after every completed exchange; nothing is mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional

from requests.structures import CaseInsensitiveDict


DAILY_LIMIT_HEADER = "X-RateLimit-Limit"
DAILY_REMAINING_HEADER = "X-RateLimit-Remaining"
DAILY_RESET_HEADER = "X-RateLimit-Reset"
MINUTELY_LIMIT_HEADER = "X-RateLimit-Minutely-Limit"
MINUTELY_REMAINING_HEADER = "X-RateLimit-Minutely-Remaining"
MINUTELY_RESET_HEADER = "X-RateLimit-Minutely-Reset"


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class RateLimit:
    """
    Quota state for a single rate-limit window.

    Attributes
    ----------
    limit : int, optional
        Number of calls allowed in the window
    remaining : int, optional
        Number of calls left before the window resets
    reset : int, optional
        Reset moment as epoch milliseconds
    """
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset: Optional[int] = None

    @property
    def reset_at(self) -> Optional[datetime]:
        """The reset moment as an aware UTC datetime."""
        if self.reset is None:
            return None
        return datetime.fromtimestamp(self.reset / 1000.0, tz=timezone.utc)

    def delay_ms(self, now_ms: float) -> float:
        """
        Milliseconds to wait before the next call may be issued.

        Only an exhausted window (``remaining == 0``) with a known reset
        moment produces a delay; everything else yields ``0``.
        """
        if self.remaining != 0 or self.reset is None:
            return 0.0
        return max(0.0, self.reset - now_ms)


@dataclass(frozen=True)
class RateLimitSnapshot:
    """
    Latest known quota state, daily and minutely.

    Examples
    --------
    >>> snap = RateLimitSnapshot.from_headers({"X-RateLimit-Minutely-Remaining": "0"})
    >>> snap.minutely.remaining
    0
    """
    daily: RateLimit = field(default_factory=RateLimit)
    minutely: RateLimit = field(default_factory=RateLimit)

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitSnapshot":
        """Build a snapshot from response headers; absent headers stay ``None``."""
        h = CaseInsensitiveDict(headers or {})
        return cls(
            daily=RateLimit(
                limit=_to_int(h.get(DAILY_LIMIT_HEADER)),
                remaining=_to_int(h.get(DAILY_REMAINING_HEADER)),
                reset=_to_int(h.get(DAILY_RESET_HEADER)),
            ),
            minutely=RateLimit(
                limit=_to_int(h.get(MINUTELY_LIMIT_HEADER)),
                remaining=_to_int(h.get(MINUTELY_REMAINING_HEADER)),
                reset=_to_int(h.get(MINUTELY_RESET_HEADER)),
            ),
        )

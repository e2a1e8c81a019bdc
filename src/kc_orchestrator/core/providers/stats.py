"""Per-provider execution statistics.

Counters are shared mutable state keyed by provider name. Each update
method is synchronous so that callers can place it directly next to the
awaited provider call it describes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class ProviderStats:
    """Attempt, success and failure counters for one provider.

    ``attempts == successes + failures`` holds after every completed
    attempt; an in-flight attempt is counted in ``attempts`` only.
    ``consecutive_failures`` is the current failure streak and is cleared
    by any success.
    """

    attempts: int = 0
    successes: int = 0
    failures: int = 0
    consecutive_failures: int = 0
    last_used: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Fraction of attempts that succeeded (0.0 with no attempts)."""
        if self.attempts <= 0:
            return 0.0
        return self.successes / self.attempts

    def record_attempt(self, now: Optional[datetime] = None) -> None:
        self.attempts += 1
        self.last_used = now or utc_now()

    def record_success(self, now: Optional[datetime] = None) -> None:
        self.successes += 1
        self.consecutive_failures = 0
        self.last_success = now or utc_now()

    def record_failure(self, now: Optional[datetime] = None) -> None:
        self.failures += 1
        self.consecutive_failures += 1
        self.last_failure = now or utc_now()

    def reset(self) -> None:
        """Clear all counters and timestamps."""
        self.attempts = 0
        self.successes = 0
        self.failures = 0
        self.consecutive_failures = 0
        self.last_used = None
        self.last_success = None
        self.last_failure = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "attempts": self.attempts,
            "successes": self.successes,
            "failures": self.failures,
            "consecutive_failures": self.consecutive_failures,
            "success_rate": self.success_rate,
            "last_used": _iso(self.last_used),
            "last_success": _iso(self.last_success),
            "last_failure": _iso(self.last_failure),
        }


__all__ = ["ProviderStats", "utc_now"]

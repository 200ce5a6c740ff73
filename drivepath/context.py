"""
Cooperative cancellation for remote calls.

Every client call takes an optional Context. The context is checked before a
request is issued and between streamed chunks, and its remaining time bounds
the request timeout.
"""
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .storage.errors import ServiceError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OperationCancelled(ServiceError):
    pass


class DeadlineExceeded(ServiceError):
    pass


@dataclass(frozen=True)
class Deadline:
    """Wall-clock expiration."""

    expires_at: datetime

    def __post_init__(self):
        if self.expires_at.tzinfo is None or self.expires_at.utcoffset() is None:
            raise ValueError("Deadline expires_at must be timezone-aware.")

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(_utcnow() + timedelta(seconds=seconds))

    def remaining(self, now: Optional[datetime] = None) -> timedelta:
        return self.expires_at - (now or _utcnow())

    def expired(self, now: Optional[datetime] = None) -> bool:
        return self.remaining(now) <= timedelta(0)


class Context:
    def __init__(self, deadline: Optional[Deadline] = None):
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float) -> "Context":
        return cls(Deadline.after(seconds))

    def cancel(self):
        self._cancelled.set()

    def check(self):
        if self._cancelled.is_set():
            raise OperationCancelled("operation cancelled")
        if self.deadline is not None and self.deadline.expired():
            raise DeadlineExceeded(f"deadline exceeded at {self.deadline.expires_at.isoformat()}")

    def timeout(self, default: Optional[float] = None) -> Optional[float]:
        """Seconds left for the next request, capped by `default`."""
        if self.deadline is None:
            return default
        remaining = max(self.deadline.remaining().total_seconds(), 0.0)
        if default is None:
            return remaining
        return min(remaining, default)

"""Base classes for data providers."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import deque

from ..core.models import AuditEntry
from ..core.types import DataSource

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """Abstract base class for all outbound data providers."""

    # Subclasses must define their data source
    SOURCE: DataSource = DataSource.UNKNOWN

    # Oldest entries are dropped beyond this many
    AUDIT_TRAIL_LIMIT = 1000

    def __init__(
        self,
        rate_limit_calls: int | None = None,
        rate_limit_period: int = 60,
    ):
        """
        Initialize provider with optional rate limiting.

        Args:
            rate_limit_calls: Maximum calls per period (None disables limiting)
            rate_limit_period: Period in seconds
        """
        self.rate_limit_calls = rate_limit_calls
        self.rate_limit_period = rate_limit_period
        self._call_timestamps: list[float] = []
        self._audit_entries: deque[AuditEntry] = deque(maxlen=self.AUDIT_TRAIL_LIMIT)

    async def _wait_for_rate_limit(self) -> None:
        """Enforce rate limiting by sleeping if necessary."""
        if self.rate_limit_calls is None:
            return

        now = time.monotonic()
        # Clean old timestamps
        self._call_timestamps = [
            ts for ts in self._call_timestamps if now - ts < self.rate_limit_period
        ]

        if len(self._call_timestamps) >= self.rate_limit_calls:
            sleep_time = self._call_timestamps[0] + self.rate_limit_period - now
            if sleep_time > 0:
                logger.debug(
                    f"[{self.SOURCE.value}] Rate limit: sleeping {sleep_time:.1f}s"
                )
                await asyncio.sleep(sleep_time)

        self._call_timestamps.append(time.monotonic())

    def _record_audit(
        self,
        action: str,
        endpoint: str | None = None,
        success: bool = True,
        error_message: str | None = None,
        duration_ms: int | None = None,
        notes: str | None = None,
    ) -> AuditEntry:
        """Record an audit entry for this provider action."""
        entry = AuditEntry(
            source=self.SOURCE,
            action=action,
            endpoint=endpoint,
            success=success,
            error_message=error_message,
            duration_ms=duration_ms,
            notes=notes,
        )
        self._audit_entries.append(entry)
        return entry

    def get_audit_trail(self) -> list[AuditEntry]:
        """Return the most recent audit entries recorded by this provider."""
        return list(self._audit_entries)

    @abstractmethod
    async def aclose(self) -> None:
        """Release network resources held by the provider."""

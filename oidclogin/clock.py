"""The system clock."""

from __future__ import annotations

from datetime import datetime, timezone


class Clock:
    """Provides the current time."""

    def now(self) -> datetime:
        """Return the current time in UTC."""
        return datetime.now(timezone.utc)
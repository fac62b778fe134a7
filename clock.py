from datetime import datetime, timezone


class SystemClock:
    """Wall-clock time source used for room expiry and timestamps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

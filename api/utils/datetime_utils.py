from datetime import datetime
from zoneinfo import ZoneInfo


class DateTimeManager:
    """
    Centralized DateTime access
    UTC for token claims and database storage
    """

    @classmethod
    def utc_now(cls) -> datetime:
        """Get current UTC time for database storage and token claims"""
        return datetime.now(ZoneInfo("UTC"))

    @staticmethod
    def to_utc(value: datetime) -> datetime:
        """Normalize a datetime to UTC; naive values are treated as UTC"""
        if value.tzinfo is None:
            return value.replace(tzinfo=ZoneInfo("UTC"))
        return value.astimezone(ZoneInfo("UTC"))

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from attendance_desk.config import settings


APP_ZONEINFO = ZoneInfo(settings.app_timezone or 'Africa/Cairo')


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def today(self) -> date:
        return self.now().date()

    def utc_timestamp(self) -> int:
        return int(datetime.now(timezone.utc).timestamp())


class FixedTimeProvider(TimeProvider):
    def __init__(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=APP_ZONEINFO)
        self._moment = moment

    def now(self) -> datetime:
        return self._moment

    def utc_timestamp(self) -> int:
        return int(self._moment.timestamp())


default_time_provider = TimeProvider()

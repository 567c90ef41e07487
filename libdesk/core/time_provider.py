from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from libdesk.config import settings


APP_TIMEZONE = settings.app_timezone or "Asia/Kolkata"
APP_ZONEINFO = ZoneInfo(APP_TIMEZONE)


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def today(self) -> date:
        return self.now().date()

    def naive_now(self) -> datetime:
        """Local wall-clock time without tzinfo, as stored in DateTime columns."""
        return self.now().replace(tzinfo=None)

    def current_month(self) -> str:
        return self.today().strftime('%Y-%m')


def utc_now() -> datetime:
    return datetime.now(ZoneInfo('UTC')).replace(tzinfo=None)


default_time_provider = TimeProvider()

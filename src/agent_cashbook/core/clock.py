from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

DEFAULT_TZ = ZoneInfo("Asia/Jakarta")


@dataclass(frozen=True)
class BusinessClock:
    """
    Wall clock of the agent's counter. "Today" is the calendar date in the
    business timezone, not in UTC.
    """

    tz: ZoneInfo = DEFAULT_TZ

    @classmethod
    def from_name(cls, tz_name: str) -> "BusinessClock":
        return cls(tz=ZoneInfo(tz_name))

    def now(self) -> datetime:
        return datetime.now(tz=self.tz)

    def today(self) -> date:
        return self.now().date()

    def __call__(self) -> date:
        return self.today()

    def timestamp(self) -> str:
        # createdAt: ISO-8601 with offset, microseconds keep same-minute entries apart
        return self.now().isoformat(timespec="microseconds")

    def current_time(self) -> str:
        return self.now().strftime("%H:%M")

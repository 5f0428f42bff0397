"""
Calling Schedule Model
Timezone cascade: which lead bucket to call at each hour of the reference day
"""
from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict
from datetime import datetime, date, time
import pytz

from powerdialer.domain.models.lead import DialerTimezone


class ScheduleBlock(BaseModel):
    """One hour of the cascade"""
    hour: int = Field(..., ge=0, le=23, description="Hour of day in the reference timezone")
    timezone: DialerTimezone
    label: str


DEFAULT_SCHEDULE: List[ScheduleBlock] = [
    ScheduleBlock(hour=8, timezone=DialerTimezone.ET, label="8-9 AM ET → Eastern leads"),
    ScheduleBlock(hour=9, timezone=DialerTimezone.ET, label="9-10 AM ET → Eastern leads"),
    ScheduleBlock(hour=10, timezone=DialerTimezone.CT, label="10-11 AM ET → Central leads (9 AM their time)"),
    ScheduleBlock(hour=11, timezone=DialerTimezone.MT, label="11 AM-12 PM ET → Mountain leads (9 AM their time)"),
    ScheduleBlock(hour=12, timezone=DialerTimezone.PT, label="12-1 PM ET → Pacific leads (9 AM their time)"),
    ScheduleBlock(hour=13, timezone=DialerTimezone.PT, label="1-2 PM ET → Pacific leads (10 AM their time)"),
    ScheduleBlock(hour=14, timezone=DialerTimezone.MT, label="2-3 PM ET → Mountain leads (12 PM their time)"),
    ScheduleBlock(hour=15, timezone=DialerTimezone.CT, label="3-4 PM ET → Central leads (2 PM their time)"),
    ScheduleBlock(hour=16, timezone=DialerTimezone.PT, label="4-5 PM ET → Pacific leads (1 PM their time)"),
    ScheduleBlock(hour=17, timezone=DialerTimezone.MT, label="5-6 PM ET → Mountain leads (3 PM their time)"),
    ScheduleBlock(hour=18, timezone=DialerTimezone.CT, label="6-7 PM ET → Central leads (5 PM their time)"),
    ScheduleBlock(hour=19, timezone=DialerTimezone.ET, label="7-8 PM ET → Eastern leads (7 PM their time)"),
]


class CallingSchedule(BaseModel):
    """
    Hour-of-day lookup table in a reference timezone.

    The table is configuration: each block names the bucket of leads that
    should be called while the reference clock shows that hour. Hours
    without a block have no active calling bucket.
    """

    reference_timezone: str = Field(
        default="America/New_York",
        description="Timezone whose wall clock drives the cascade"
    )
    blocks: List[ScheduleBlock] = Field(default_factory=lambda: list(DEFAULT_SCHEDULE))

    def tzinfo(self):
        """Reference timezone (UTC if the name is unknown)"""
        try:
            return pytz.timezone(self.reference_timezone)
        except pytz.exceptions.UnknownTimeZoneError:
            return pytz.UTC

    def to_reference(self, check_time: Optional[datetime] = None) -> datetime:
        """
        Convert a timestamp to the reference timezone.

        Naive timestamps are taken to be UTC.
        """
        tz = self.tzinfo()
        if check_time is None:
            return datetime.now(tz)
        if check_time.tzinfo is None:
            check_time = pytz.UTC.localize(check_time)
        return check_time.astimezone(tz)

    def current_block(self, now: Optional[datetime] = None) -> Optional[ScheduleBlock]:
        """Block active at `now`, or None outside the covered hours."""
        hour = self.to_reference(now).hour
        for block in self.blocks:
            if block.hour == hour:
                return block
        return None

    def current_bucket(self, now: Optional[datetime] = None) -> Optional[DialerTimezone]:
        """Timezone bucket to call at `now`."""
        block = self.current_block(now)
        return block.timezone if block else None

    def reference_date(self, now: Optional[datetime] = None) -> date:
        """Calendar date in the reference timezone ("today")."""
        return self.to_reference(now).date()

    def end_of_day(self, now: Optional[datetime] = None) -> datetime:
        """Last instant of the reference-timezone day containing `now`, in UTC."""
        tz = self.tzinfo()
        local_end = datetime.combine(self.reference_date(now), time(23, 59, 59, 999999))
        return tz.localize(local_end).astimezone(pytz.UTC)

    @classmethod
    def default(cls) -> "CallingSchedule":
        """Create the default cascade."""
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CallingSchedule":
        """
        Create from the `dialer` configuration section.

        Missing keys fall back to the defaults.
        """
        if not data:
            return cls.default()

        kwargs: Dict[str, Any] = {}
        if data.get("reference_timezone"):
            kwargs["reference_timezone"] = data["reference_timezone"]
        if data.get("schedule"):
            kwargs["blocks"] = [ScheduleBlock(**block) for block in data["schedule"]]
        return cls(**kwargs)

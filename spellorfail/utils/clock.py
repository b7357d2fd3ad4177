"""
Clock Helpers

"Today" is passed into the statistics code instead of being read from
the system, so streaks can be evaluated at any simulated date.
"""

import datetime


class SystemClock:
    """Calendar day in UTC, matching how game dates are stamped."""

    def today(self) -> datetime.date:
        return datetime.datetime.now(datetime.timezone.utc).date()


class FixedClock:
    """Clock pinned to one day."""

    def __init__(self, day: datetime.date):
        self.day = day

    def today(self) -> datetime.date:
        return self.day

    def advance(self, days: int = 1) -> None:
        self.day = self.day + datetime.timedelta(days=days)

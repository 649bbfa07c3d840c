from datetime import date
from typing import Protocol


class Clock(Protocol):
    """Source of the current calendar date"""

    def today(self) -> date: ...


class SystemClock:
    def today(self) -> date:
        return date.today()


system_clock = SystemClock()

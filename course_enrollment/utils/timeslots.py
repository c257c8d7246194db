from datetime import time
from enum import Enum
from typing import Iterable, Optional, Union


class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def ordinal(self) -> int:
        return _WEEKDAY_ORDER.index(self)


_WEEKDAY_ORDER = list(Weekday)

VALID_DAYS = [d.value for d in Weekday]


def parse_weekday(value: Union[str, Weekday, None]) -> Weekday:
    """
    "Monday" / "monday" / Weekday.MONDAY -> Weekday.MONDAY
    """
    if isinstance(value, Weekday):
        return value
    if not isinstance(value, str):
        raise ValueError("Invalid day of week. Must be one of: " + ", ".join(VALID_DAYS))
    s = value.strip().capitalize()
    try:
        return Weekday(s)
    except ValueError:
        raise ValueError("Invalid day of week. Must be one of: " + ", ".join(VALID_DAYS))


def parse_time(value: Union[str, time, None]) -> time:
    """
    "09:00:00" / "09:00" -> time(9, 0)
    """
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM:SS")
    s = value.strip()
    parts = s.split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time '{s}', expected HH:MM:SS")
    try:
        nums = [int(p) for p in parts]
    except ValueError:
        raise ValueError(f"Invalid time '{s}', expected HH:MM:SS")
    try:
        return time(*nums)
    except ValueError:
        raise ValueError(f"Invalid time '{s}', expected HH:MM:SS")


def format_time(t: Optional[time]) -> Optional[str]:
    if t is None:
        return None
    return t.strftime("%H:%M:%S")


def slot_sort_key(slot):
    return (slot.day_of_week.ordinal, slot.start_time, slot.timetable_id or 0)


def format_timetable(slots: Iterable) -> Optional[str]:
    """
    [Mon 9-10, Tue 10-11] -> "Monday 09:00:00-10:00:00; Tuesday 10:00:00-11:00:00"
    """
    parts = [
        f"{s.day_of_week.value} {format_time(s.start_time)}-{format_time(s.end_time)}"
        for s in sorted(slots, key=slot_sort_key)
    ]
    return "; ".join(parts) or None

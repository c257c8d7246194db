from dataclasses import dataclass
from datetime import time
from typing import Dict, Iterable, List, Optional

from course_enrollment.utils.timeslots import Weekday, format_time


def intervals_overlap(start1, end1, start2, end2) -> bool:
    """
    Half-open intervals [start1, end1) and [start2, end2).
    Back-to-back (end1 == start2) is not an overlap.
    """
    return start1 < end2 and end1 > start2


@dataclass(frozen=True)
class SlotRef:
    weekday: Weekday
    start: time
    end: time
    # course code, only used for reporting
    label: str
    course_id: Optional[int] = None
    timetable_id: Optional[int] = None

    @classmethod
    def from_timetable(cls, slot, label: Optional[str] = None) -> "SlotRef":
        return cls(
            weekday=slot.day_of_week,
            start=slot.start_time,
            end=slot.end_time,
            label=label or slot.course.course_code,
            course_id=slot.course_id,
            timetable_id=slot.timetable_id,
        )

    def overlaps(self, other: "SlotRef") -> bool:
        return self.weekday == other.weekday and intervals_overlap(
            self.start, self.end, other.start, other.end
        )

    def describe(self) -> str:
        return f"{self.label} ({format_time(self.start)}-{format_time(self.end)})"

    def as_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "course_code": self.label,
            "timetable_id": self.timetable_id,
            "day_of_week": self.weekday.value,
            "start_time": format_time(self.start),
            "end_time": format_time(self.end),
        }


@dataclass(frozen=True)
class Conflict:
    weekday: Weekday
    # first: already scanned, second: the incoming slot that clashed with it
    first: SlotRef
    second: SlotRef

    @property
    def message(self) -> str:
        return (
            f"Timetable clash detected on {self.weekday.value}: "
            f"{self.second.describe()} overlaps with {self.first.describe()}"
        )

    def as_list(self) -> List[dict]:
        return [self.first.as_dict(), self.second.as_dict()]


def find_conflict(slots: Iterable[SlotRef]) -> Optional[Conflict]:
    """
    Scan slots in the given order, bucketed by weekday.

    Every incoming slot is compared with the slots already placed in its
    weekday bucket; the first overlapping pair (in input order) is returned.
    None means the whole set is conflict free.
    """
    by_day: Dict[Weekday, List[SlotRef]] = {}
    for slot in slots:
        bucket = by_day.setdefault(slot.weekday, [])
        for existing in bucket:
            if intervals_overlap(slot.start, slot.end, existing.start, existing.end):
                return Conflict(weekday=slot.weekday, first=existing, second=slot)
        bucket.append(slot)
    return None


def find_overlaps(candidate: SlotRef, slots: Iterable[SlotRef]) -> List[SlotRef]:
    """All slots that share the candidate's weekday and overlap it."""
    return [s for s in slots if candidate.overlaps(s)]

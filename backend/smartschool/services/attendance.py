"""
Attendance register - daily P/A/L marks per student.

An unmarked date is neither present nor absent: it is left out of both the
numerator and the denominator of a student's presence percentage, and shows
up as "unmarked" in the class register for the day.
"""

from datetime import date as Date
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, field_validator

from smartschool.records import AttendanceStatus, StudentRecord, round_half_up


def normalize_date(value: str) -> str:
    """
    Validate an ISO calendar date and return it as YYYY-MM-DD.

    Raises:
        ValueError: when the value is not a valid date
    """
    return Date.fromisoformat(str(value).strip()).isoformat()


class AttendanceUpdate(BaseModel):
    student_id: str
    date: str
    status: AttendanceStatus

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return normalize_date(value)


class DayStats(BaseModel):
    grade: str
    date: str
    present: int = 0
    absent: int = 0
    leave: int = 0
    unmarked: int = 0


class AttendanceSummary(BaseModel):
    student_id: str
    present: int
    absent: int
    leave: int
    marked_days: int
    percentage: Optional[int] = None


def class_roster(students: Iterable[StudentRecord], grade: str) -> List[StudentRecord]:
    return [s for s in students if s.grade == grade]


def day_stats(students: Iterable[StudentRecord], grade: str, date: str) -> DayStats:
    """Count statuses for one grade on one date."""
    stats = DayStats(grade=grade, date=date)
    for student in class_roster(students, grade):
        status = student.attendance.get(date)
        if status == AttendanceStatus.PRESENT:
            stats.present += 1
        elif status == AttendanceStatus.ABSENT:
            stats.absent += 1
        elif status == AttendanceStatus.LEAVE:
            stats.leave += 1
        else:
            stats.unmarked += 1
    return stats


def apply_updates(students: Sequence[StudentRecord],
                  updates: Iterable[AttendanceUpdate]) -> Dict[str, StudentRecord]:
    """
    Apply a batch of status changes.

    Returns:
        The changed records keyed by student id. Updates naming an unknown
        student are ignored; several updates for one student accumulate.
    """
    by_id = {s.id: s for s in students}
    changed = {}
    for update in updates:
        current = changed.get(update.student_id) or by_id.get(update.student_id)
        if current is None:
            continue
        changed[update.student_id] = current.with_attendance(update.date, update.status)
    return changed


def mark_all_present(students: Sequence[StudentRecord], grade: str, date: str) -> Dict[str, StudentRecord]:
    updates = [
        AttendanceUpdate(student_id=s.id, date=date, status=AttendanceStatus.PRESENT)
        for s in class_roster(students, grade)
    ]
    return apply_updates(students, updates)


def summarize(student: StudentRecord, start: Optional[str] = None,
              end: Optional[str] = None) -> AttendanceSummary:
    """
    Presence percentage over marked dates, optionally within [start, end].

    Bounds are normalized to YYYY-MM-DD first so they compare correctly with
    the stored dates. percentage is None when no date in the range is marked.

    Raises:
        ValueError: when start or end is not a valid ISO date
    """
    start = normalize_date(start) if start else None
    end = normalize_date(end) if end else None
    counts = {status: 0 for status in AttendanceStatus}
    for date, status in student.attendance.items():
        if start and date < start:
            continue
        if end and date > end:
            continue
        counts[AttendanceStatus(status)] += 1

    marked = sum(counts.values())
    present = counts[AttendanceStatus.PRESENT]
    return AttendanceSummary(
        student_id=student.id,
        present=present,
        absent=counts[AttendanceStatus.ABSENT],
        leave=counts[AttendanceStatus.LEAVE],
        marked_days=marked,
        percentage=round_half_up(present / marked * 100) if marked else None,
    )

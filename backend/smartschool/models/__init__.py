from smartschool.models.student import Student
from smartschool.models.semester_result import SemesterResultRow
from smartschool.models.attendance import AttendanceEntry

__all__ = ["Student", "SemesterResultRow", "AttendanceEntry"]

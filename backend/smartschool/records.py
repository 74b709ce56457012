"""
Record model - students, semester results and attendance.

Records are immutable pydantic values. Every edit (profile change, marks
entry, attendance mark, CSV merge) returns a new StudentRecord built with
model_copy(), so a record handed to a caller is never changed underneath it.
"""

import math
import uuid
from enum import Enum
from typing import Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Subject(str, Enum):
    """The fixed subject list, in report-card order."""
    ENGLISH = "English"
    URDU = "Urdu"
    PASHTO = "Pashto"
    MATH = "Math"
    GENERAL_SCIENCE = "General Science"
    SOCIAL_STUDY = "Social Study"
    ISLAMIYAT = "Islamiyat"
    NAZIRA = "Nazira"
    DRAWING = "Drawing"


class Grade(str, Enum):
    ONE = "1"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class AttendanceStatus(str, Enum):
    PRESENT = "P"
    ABSENT = "A"
    LEAVE = "L"


SUBJECTS = list(Subject)
GRADES = [grade.value for grade in Grade]
SEMESTERS = (1, 2)
TOTAL_MARKS_PER_SUBJECT = 100

SemesterNo = Literal[1, 2]


def generate_student_id() -> str:
    return str(uuid.uuid4())


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (2.5 -> 3, not 2)."""
    return int(math.floor(value + 0.5))


def parse_mark(raw: Union[str, int, float]) -> int:
    """
    Convert a typed or imported mark to an integer score.

    Raises:
        ValueError: when the value is not a number
    """
    if isinstance(raw, bool):
        raise ValueError(f"Not a mark: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return round_half_up(raw)
    text = str(raw).strip()
    try:
        return int(text)
    except ValueError:
        number = float(text)
        if math.isnan(number) or math.isinf(number):
            raise ValueError(f"Not a mark: {raw!r}")
        return round_half_up(number)


class SemesterResult(BaseModel):
    """One semester's marks for one student. Owned by its StudentRecord."""
    model_config = ConfigDict(frozen=True)

    semester: SemesterNo
    marks: Dict[Subject, int] = Field(default_factory=dict)
    remarks: Optional[str] = None
    generated_insight: Optional[str] = None

    def mark(self, subject: Subject) -> int:
        """Obtained mark for a subject; 0 when the subject was never entered."""
        return self.marks.get(subject, 0)

    def total(self) -> int:
        return sum(self.mark(subject) for subject in SUBJECTS)

    def merge_marks(self, updates: Mapping[Subject, int]) -> "SemesterResult":
        """Overwrite only the given subjects, keeping every other mark."""
        merged = dict(self.marks)
        merged.update(updates)
        return self.model_copy(update={"marks": merged})

    def with_insight(self, text: str) -> "SemesterResult":
        return self.model_copy(update={"generated_insight": text})


class StudentResults(BaseModel):
    """Container for the two semester results; either may be absent."""
    model_config = ConfigDict(frozen=True)

    sem1: Optional[SemesterResult] = None
    sem2: Optional[SemesterResult] = None

    def get(self, semester: int) -> Optional[SemesterResult]:
        if semester not in SEMESTERS:
            raise ValueError(f"Semester must be 1 or 2, got {semester!r}")
        return self.sem1 if semester == 1 else self.sem2

    def replace(self, result: SemesterResult) -> "StudentResults":
        return self.model_copy(update={f"sem{result.semester}": result})


class StudentRecord(BaseModel):
    """
    One enrolled learner with bio-data, results and attendance.

    grade and gender are plain strings: the API validates them against
    Grade and Gender, CSV import stores what the file carried.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    serial_no: str = ""
    registration_no: str = ""
    name: str = ""
    father_name: str = ""
    gender: str = Gender.MALE.value
    grade: str = Grade.ONE.value
    dob: str = ""
    form_b: str = ""
    contact: str = ""
    results: StudentResults = Field(default_factory=StudentResults)
    attendance: Dict[str, AttendanceStatus] = Field(default_factory=dict)

    @classmethod
    def new(cls, **fields) -> "StudentRecord":
        """Create a student with a fresh id and empty results/attendance."""
        fields.pop("id", None)
        return cls(id=generate_student_id(), **fields)

    def with_fields(self, **changes) -> "StudentRecord":
        return self.model_copy(update=changes)

    def with_result(self, result: SemesterResult) -> "StudentRecord":
        return self.model_copy(update={"results": self.results.replace(result)})

    def with_attendance(self, date: str, status: AttendanceStatus) -> "StudentRecord":
        attendance = dict(self.attendance)
        attendance[date] = AttendanceStatus(status)
        return self.model_copy(update={"attendance": attendance})


class MarksDraft(BaseModel):
    """
    Marks as typed into an edit form: each value is text and may be blank.

    Nothing is coerced while editing; commit() is the one place blanks become
    0 and text becomes integers.
    """
    marks: Dict[Subject, Optional[Union[int, float, str]]] = Field(default_factory=dict)
    remarks: Optional[str] = None

    def commit(self, semester: int, previous: Optional[SemesterResult] = None) -> SemesterResult:
        """
        Produce the SemesterResult that replaces the stored one.

        Every subject is written. Remarks fall back to the previous result's
        remarks, and an existing generated insight is carried over.

        Raises:
            ValueError: when a non-blank entry is not a number
        """
        committed = {}
        for subject in SUBJECTS:
            raw = self.marks.get(subject)
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                committed[subject] = 0
            else:
                committed[subject] = parse_mark(raw)

        return SemesterResult(
            semester=semester,
            marks=committed,
            remarks=self.remarks if self.remarks is not None else (previous.remarks if previous else None),
            generated_insight=previous.generated_insight if previous else None,
        )

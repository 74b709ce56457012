"""
Transcript Calculator - semester views and the weighted annual transcript.

Implements the annual formula:
1. Per subject: weighted = round(sem1 * 0.45) + round(sem2 * 0.55),
   each half rounded on its own before adding
2. grand total = sum of weighted subject scores (missing marks count 0)
3. percentage = round(grand total / (subjects * 100) * 100)
4. letter grade from the percentage; F means Fail, anything else Pass

A missing semester zeroes its half for every subject; the scale stays at
subjects * 100 so the missing half is not prorated away.

All rounding goes through round_half_up, and percentages are whole numbers
in every view.
"""

from typing import List, Optional

from pydantic import BaseModel

from smartschool.records import (
    SUBJECTS, TOTAL_MARKS_PER_SUBJECT, StudentRecord, round_half_up,
)
from smartschool.logging_config import get_logger, log_with_context

logger = get_logger("transcript")

SEMESTER_WEIGHTS = {1: 0.45, 2: 0.55}
SUBJECT_PASS_MARK = 40

# (lower bound, grade), checked top-down
GRADE_BOUNDARIES = (
    (80, "A+"),
    (70, "A"),
    (60, "B"),
    (50, "C"),
    (40, "D"),
)
FAIL_GRADE = "F"


class SubjectLine(BaseModel):
    subject: str
    sem1: Optional[int] = None
    sem2: Optional[int] = None
    weighted_sem1: int
    weighted_sem2: int
    weighted_total: int
    max_marks: int = TOTAL_MARKS_PER_SUBJECT
    passed: bool


class Transcript(BaseModel):
    student_id: str
    name: str
    grade: str
    academic_year: Optional[str] = None
    subjects: List[SubjectLine]
    grand_total_obtained: int
    max_grand_total: int
    percentage: int
    letter_grade: str
    result: str


class SemesterSubjectLine(BaseModel):
    subject: str
    obtained: int
    weighted: int
    max_marks: int = TOTAL_MARKS_PER_SUBJECT
    passed: bool


class SemesterView(BaseModel):
    student_id: str
    semester: int
    weight: float
    subjects: List[SemesterSubjectLine]
    total_obtained: int
    max_total: int
    percentage: int
    letter_grade: str
    result: str
    remarks: Optional[str] = None
    generated_insight: Optional[str] = None


def letter_grade(percentage: float) -> str:
    for lower_bound, grade in GRADE_BOUNDARIES:
        if percentage >= lower_bound:
            return grade
    return FAIL_GRADE


def pass_fail(grade: str) -> str:
    return "Fail" if grade == FAIL_GRADE else "Pass"


def weighted_mark(mark: int, semester: int) -> int:
    """A raw subject mark's rounded contribution for its semester."""
    return round_half_up(mark * SEMESTER_WEIGHTS[semester])


def percentage_of(obtained: int, maximum: int) -> int:
    if maximum <= 0:
        return 0
    return round_half_up(obtained / maximum * 100)


def max_grand_total() -> int:
    return len(SUBJECTS) * TOTAL_MARKS_PER_SUBJECT


def compute_transcript(student: StudentRecord, academic_year: Optional[str] = None) -> Transcript:
    """
    Combine both semesters into the annual transcript.

    Args:
        student: The record to report on; either semester may be absent
        academic_year: Session label shown on the transcript

    Returns:
        Transcript with per-subject lines and the aggregate result
    """
    sem1 = student.results.get(1)
    sem2 = student.results.get(2)

    lines = []
    for subject in SUBJECTS:
        raw1 = sem1.marks.get(subject) if sem1 else None
        raw2 = sem2.marks.get(subject) if sem2 else None
        weighted1 = weighted_mark(raw1 or 0, 1)
        weighted2 = weighted_mark(raw2 or 0, 2)
        total = weighted1 + weighted2
        lines.append(SubjectLine(
            subject=subject.value,
            sem1=raw1,
            sem2=raw2,
            weighted_sem1=weighted1,
            weighted_sem2=weighted2,
            weighted_total=total,
            passed=total >= SUBJECT_PASS_MARK,
        ))

    grand_total = sum(line.weighted_total for line in lines)
    maximum = max_grand_total()
    percentage = percentage_of(grand_total, maximum)
    grade = letter_grade(percentage)

    log_with_context(logger, "DEBUG",
        "Transcript computed: {}/{} ({}%, {})".format(grand_total, maximum, percentage, grade),
        context={"student_id": student.id},
        extra_data={"has_sem1": sem1 is not None, "has_sem2": sem2 is not None})

    return Transcript(
        student_id=student.id,
        name=student.name,
        grade=student.grade,
        academic_year=academic_year,
        subjects=lines,
        grand_total_obtained=grand_total,
        max_grand_total=maximum,
        percentage=percentage,
        letter_grade=grade,
        result=pass_fail(grade),
    )


def semester_view(student: StudentRecord, semester: int) -> Optional[SemesterView]:
    """
    Single-semester result card, or None when that semester has no result.

    Percentage here is the unweighted raw total over subjects * 100; the
    weighted figure per subject is for display only.
    """
    result = student.results.get(semester)
    if result is None:
        return None

    lines = []
    for subject in SUBJECTS:
        obtained = result.mark(subject)
        lines.append(SemesterSubjectLine(
            subject=subject.value,
            obtained=obtained,
            weighted=weighted_mark(obtained, semester),
            passed=obtained >= SUBJECT_PASS_MARK,
        ))

    total = sum(line.obtained for line in lines)
    maximum = max_grand_total()
    percentage = percentage_of(total, maximum)
    grade = letter_grade(percentage)

    return SemesterView(
        student_id=student.id,
        semester=semester,
        weight=SEMESTER_WEIGHTS[semester],
        subjects=lines,
        total_obtained=total,
        max_total=maximum,
        percentage=percentage,
        letter_grade=grade,
        result=pass_fail(grade),
        remarks=result.remarks,
        generated_insight=result.generated_insight,
    )

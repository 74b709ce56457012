"""
Dashboard statistics: enrollment per grade and semester-1 performance.
"""

from typing import Iterable, List

from pydantic import BaseModel

from smartschool.records import GRADES, SUBJECTS, StudentRecord, round_half_up


class GradeCount(BaseModel):
    name: str
    value: int


class GradePerformance(BaseModel):
    grade: str
    avg_score: int


class DashboardStats(BaseModel):
    school_name: str
    session_year: str
    total_students: int
    grade_distribution: List[GradeCount]
    performance: List[GradePerformance]
    overall_average: int


def grade_distribution(students: List[StudentRecord]) -> List[GradeCount]:
    return [
        GradeCount(name="Class {}".format(grade), value=sum(1 for s in students if s.grade == grade))
        for grade in GRADES
    ]


def grade_performance(students: List[StudentRecord], grade: str) -> GradePerformance:
    """
    Mean of each student's semester-1 subject average within a grade.

    Students without a semester-1 result are not counted.
    """
    averages = []
    for student in students:
        if student.grade != grade:
            continue
        result = student.results.get(1)
        if result is None:
            continue
        averages.append(result.total() / len(SUBJECTS))

    avg = round_half_up(sum(averages) / len(averages)) if averages else 0
    return GradePerformance(grade="Class {}".format(grade), avg_score=avg)


def build_stats(students: Iterable[StudentRecord], school_name: str, session_year: str) -> DashboardStats:
    students = list(students)
    performance = [grade_performance(students, grade) for grade in GRADES]
    overall = round_half_up(sum(p.avg_score for p in performance) / len(GRADES))
    return DashboardStats(
        school_name=school_name,
        session_year=session_year,
        total_students=len(students),
        grade_distribution=grade_distribution(students),
        performance=performance,
        overall_average=overall,
    )

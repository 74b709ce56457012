import pytest

from smartschool.records import Subject, round_half_up
from smartschool.services.transcript import (
    compute_transcript, letter_grade, pass_fail, semester_view, weighted_mark,
)


def test_weighted_annual_transcript(make_student):
    student = make_student(sem1=80, sem2=90)

    transcript = compute_transcript(student, academic_year="2024-2025")

    math = next(line for line in transcript.subjects if line.subject == "Math")
    assert (math.weighted_sem1, math.weighted_sem2, math.weighted_total) == (36, 50, 86)
    assert transcript.grand_total_obtained == 774
    assert transcript.max_grand_total == 900
    assert transcript.percentage == 86
    assert transcript.letter_grade == "A+"
    assert transcript.result == "Pass"
    assert transcript.academic_year == "2024-2025"


def test_each_half_is_rounded_before_adding(make_student):
    # 50 * 0.45 = 22.5 and 50 * 0.55 = 27.5 round to 23 and 28
    transcript = compute_transcript(make_student(sem1=50, sem2=50))

    assert all(line.weighted_total == 51 for line in transcript.subjects)
    assert transcript.grand_total_obtained == 459
    assert transcript.percentage == 51
    assert transcript.letter_grade == "C"


def test_missing_semester_counts_as_zero_on_full_scale(make_student):
    transcript = compute_transcript(make_student(sem1=80))

    assert transcript.grand_total_obtained == 324
    assert transcript.max_grand_total == 900
    assert transcript.percentage == 36
    assert transcript.letter_grade == "F"
    assert transcript.result == "Fail"
    assert all(line.sem2 is None and line.weighted_sem2 == 0 for line in transcript.subjects)


def test_unentered_subjects_score_zero(make_student):
    transcript = compute_transcript(make_student(sem1={Subject.MATH: 100}, sem2={Subject.MATH: 100}))

    lines = {line.subject: line for line in transcript.subjects}
    assert lines["Math"].weighted_total == 100
    assert lines["Math"].passed
    assert lines["Urdu"].sem1 is None
    assert lines["Urdu"].weighted_total == 0
    assert not lines["Urdu"].passed
    assert transcript.percentage == 11


def test_student_without_results(make_student):
    transcript = compute_transcript(make_student())
    assert transcript.grand_total_obtained == 0
    assert transcript.percentage == 0
    assert transcript.result == "Fail"


@pytest.mark.parametrize("percentage, grade", [
    (100, "A+"), (80, "A+"), (79, "A"), (70, "A"), (69, "B"),
    (60, "B"), (50, "C"), (40, "D"), (39, "F"), (0, "F"),
])
def test_letter_grade_boundaries(percentage, grade):
    assert letter_grade(percentage) == grade


def test_pass_fail():
    assert pass_fail("F") == "Fail"
    assert pass_fail("D") == "Pass"


def test_semester_view(make_student):
    student = make_student(sem1=50)

    view = semester_view(student, 1)

    assert view.total_obtained == 450
    assert view.max_total == 900
    assert view.percentage == 50
    assert view.letter_grade == "C"
    assert view.weight == 0.45
    assert all(line.weighted == 23 and line.passed for line in view.subjects)


def test_semester_view_absent_semester(make_student):
    assert semester_view(make_student(sem1=50), 2) is None


def test_semester_view_rejects_unknown_semester(make_student):
    with pytest.raises(ValueError):
        semester_view(make_student(sem1=50), 3)


@pytest.mark.parametrize("value, expected", [
    (2.5, 3), (3.5, 4), (0.5, 1), (1.49, 1), (36.0, 36), (49.5, 50), (0, 0),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_weighted_mark():
    assert weighted_mark(80, 1) == 36
    assert weighted_mark(90, 2) == 50
    assert weighted_mark(0, 2) == 0

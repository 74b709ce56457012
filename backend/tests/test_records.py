import pytest
from pydantic import ValidationError

from smartschool.records import (
    MarksDraft, SemesterResult, StudentRecord, StudentResults, Subject, parse_mark,
)


def test_new_students_get_distinct_ids():
    first = StudentRecord.new(name="Ali", id="ignored")
    second = StudentRecord.new(name="Ali")
    assert first.id != second.id
    assert first.id != "ignored"
    assert first.results == StudentResults()


def test_records_are_immutable(make_student):
    student = make_student()
    with pytest.raises(ValidationError):
        student.name = "Changed"


def test_edits_return_new_records(make_student):
    student = make_student(sem1={Subject.MATH: 40})

    renamed = student.with_fields(name="Bilal")
    marked = student.with_attendance("2025-03-01", "P")

    assert student.name == "Ahmed Khan"
    assert renamed.name == "Bilal"
    assert renamed.id == student.id
    assert student.attendance == {}
    assert marked.attendance == {"2025-03-01": "P"}


def test_merge_marks_keeps_other_subjects():
    result = SemesterResult(semester=1, marks={Subject.ENGLISH: 50, Subject.URDU: 60})
    merged = result.merge_marks({Subject.URDU: 70, Subject.MATH: 90})
    assert merged.marks == {Subject.ENGLISH: 50, Subject.URDU: 70, Subject.MATH: 90}
    assert result.marks == {Subject.ENGLISH: 50, Subject.URDU: 60}


def test_results_only_hold_two_semesters():
    with pytest.raises(ValueError):
        StudentResults().get(3)
    with pytest.raises(ValidationError):
        SemesterResult(semester=3)


@pytest.mark.parametrize("raw, expected", [(85, 85), (" 85 ", 85), ("72.5", 73), (64.4, 64)])
def test_parse_mark(raw, expected):
    assert parse_mark(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "nan", True, ""])
def test_parse_mark_rejects_non_numbers(raw):
    with pytest.raises(ValueError):
        parse_mark(raw)


def test_draft_commit_fills_every_subject():
    draft = MarksDraft(marks={Subject.ENGLISH: "85", Subject.MATH: "", Subject.URDU: 70}, remarks="Good")

    result = draft.commit(1)

    assert len(result.marks) == 9
    assert result.marks[Subject.ENGLISH] == 85
    assert result.marks[Subject.MATH] == 0
    assert result.marks[Subject.DRAWING] == 0
    assert result.remarks == "Good"
    assert result.generated_insight is None


def test_draft_commit_keeps_previous_remarks_and_insight():
    previous = SemesterResult(semester=2, marks={Subject.MATH: 40}, remarks="Old", generated_insight="Steady work.")

    result = MarksDraft(marks={Subject.MATH: "55"}).commit(2, previous)

    assert result.marks[Subject.MATH] == 55
    assert result.remarks == "Old"
    assert result.generated_insight == "Steady work."


def test_draft_commit_rejects_text():
    with pytest.raises(ValueError):
        MarksDraft(marks={Subject.MATH: "abc"}).commit(1)


def test_draft_accepts_subject_names_as_keys():
    draft = MarksDraft.model_validate({"marks": {"General Science": "66"}})
    assert draft.commit(1).marks[Subject.GENERAL_SCIENCE] == 66

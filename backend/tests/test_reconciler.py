from smartschool.records import SemesterResult, StudentRecord, Subject
from smartschool.services.csv_codec import export_students
from smartschool.services.gateway import PersistenceGateway
from smartschool.services.reconciler import (
    FIELD_ALIASES, ImportFile, Reconciler, find_match, resolve_field, resolve_row,
)


def run_import(gateway, *texts):
    files = [ImportFile(name="file{}.csv".format(i), content=text) for i, text in enumerate(texts, start=1)]
    return Reconciler(gateway).import_files(files)


def by_serial(students, serial_no):
    return next(s for s in students if s.serial_no == serial_no)


class FailingGateway(PersistenceGateway):
    """Refuses to save students named 'Broken'."""

    def save(self, record):
        if record.name == "Broken":
            return False
        return super().save(record)


def test_resolve_field_first_present_alias_wins():
    row = {"roll": "7", "serialno": "", "id": "99"}
    assert resolve_field(row, FIELD_ALIASES["serial_no"]) is None
    assert resolve_field({"roll": " 7 ", "id": "99"}, FIELD_ALIASES["serial_no"]) == "7"
    assert resolve_field({"name": "x"}, FIELD_ALIASES["contact"]) is None


def test_resolve_row_reads_marks_under_several_spellings():
    resolved = resolve_row({"sem1maths": "81", "semester2science": "64.5", "s1urdu": "", "sem1chemistry": "90"})
    assert resolved.marks[1] == {Subject.MATH: 81}
    assert resolved.marks[2] == {Subject.GENERAL_SCIENCE: 65}
    assert resolved.rejected_marks == []


def test_fuzzy_headers_populate_canonical_fields(gateway):
    students, summary = run_import(gateway, "RollNo,Student Name,Guardian Name,Class\n7,Sara,Imran,3\n")

    assert summary.created == 1
    sara = by_serial(students, "7")
    assert sara.name == "Sara"
    assert sara.father_name == "Imran"
    assert sara.grade == "3"
    assert sara.gender == "Male"


def test_created_student_defaults_grade_and_gender(gateway):
    students, _ = run_import(gateway, "SerialNo,Name\n12,Hina\n")
    hina = by_serial(students, "12")
    assert hina.grade == "1"
    assert hina.gender == "Male"
    assert hina.results.sem1 is None
    assert hina.attendance == {}


def test_reimporting_the_same_file_creates_nothing(gateway, make_student):
    source = [
        make_student(serial_no="1", registration_no="R-1", name="Ali", sem1=70),
        make_student(serial_no="2", registration_no="R-2", name="Sana, B.", father_name='Noor "Jr"', sem2={Subject.URDU: 55}),
    ]
    text = export_students(source)

    first, first_summary = run_import(gateway, text)
    second, second_summary = run_import(gateway, text)

    assert first_summary.created == 2
    assert second_summary.created == 0
    assert second_summary.updated == 2
    assert sorted(first, key=lambda s: s.id) == sorted(second, key=lambda s: s.id)
    assert by_serial(second, "2").father_name == 'Noor "Jr"'


def test_marks_only_file_leaves_bio_and_other_subjects_alone(gateway, make_student):
    existing = make_student(
        serial_no="101", name="Ahmed", father_name="Bilal", contact="0300", dob="2015-05-12",
        sem1={Subject.ENGLISH: 50, Subject.URDU: 60},
    )
    gateway.save(existing)

    students, summary = run_import(gateway, "SerialNo,Sem1_Math,Sem1_English\n101,90,\n")

    assert summary.updated == 1
    updated = by_serial(students, "101")
    assert updated.model_dump(exclude={"results"}) == existing.model_dump(exclude={"results"})
    assert updated.results.sem1.marks == {Subject.ENGLISH: 50, Subject.URDU: 60, Subject.MATH: 90}
    assert updated.results.sem2 is None


def test_missing_semester_is_created_before_merging(gateway, make_student):
    gateway.save(make_student(serial_no="101", sem1={Subject.MATH: 40}))

    students, _ = run_import(gateway, "Roll,Sem2_Urdu\n101,70\n")

    student = by_serial(students, "101")
    assert student.results.sem2 == SemesterResult(semester=2, marks={Subject.URDU: 70})
    assert student.results.sem1.marks == {Subject.MATH: 40}


def test_registration_number_takes_priority_over_serial(gateway, make_student):
    first = make_student(serial_no="1", registration_no="R-1", name="First")
    second = make_student(serial_no="2", registration_no="R-2", name="Second")
    gateway.save(first)
    gateway.save(second)

    students, summary = run_import(gateway, "SerialNo,RegistrationNo,Name\n1,R-2,Renamed\n")

    assert summary.updated == 1 and summary.created == 0
    assert next(s for s in students if s.id == second.id).name == "Renamed"
    assert next(s for s in students if s.id == first.id).name == "First"


def test_serial_is_the_fallback_when_registration_is_unknown(make_student):
    first = make_student(serial_no="1", registration_no="R-1")
    assert find_match([first], "1", "R-999") is first
    assert find_match([first], "2", "R-999") is None
    assert find_match([first], None, None) is None


def test_identity_match_is_exact_on_trimmed_values(make_student):
    student = make_student(serial_no=" 5 ", registration_no="ab-1")
    assert find_match([student], "5", None) is student
    assert find_match([student], None, "AB-1") is None


def test_rows_without_roll_and_name_are_skipped(gateway, make_student):
    gateway.save(make_student(serial_no="1", registration_no="R-1"))

    students, summary = run_import(gateway, "RegistrationNo,Contact\nR-1,0311\n")

    assert summary.skipped == 1
    assert summary.updated == 0
    assert by_serial(students, "1").contact == ""


def test_gender_is_title_cased(gateway):
    students, _ = run_import(gateway, "Roll,Name,Sex\n5,Ali,fEMALE\n")
    assert by_serial(students, "5").gender == "Female"


def test_unknown_subjects_and_bad_marks_are_not_stored(gateway):
    students, summary = run_import(gateway, "Roll,Name,Sem1_Chemistry,Sem2_Math\n1,Ali,90,absent\n")

    ali = by_serial(students, "1")
    assert ali.results.sem1 is None
    assert ali.results.sem2 is None
    assert any(d["status"] == "WARNING" for d in summary.details)


def test_later_rows_match_students_created_earlier_in_the_batch(gateway):
    students, summary = run_import(
        gateway,
        "Roll,Name\n1,Ali\n",
        "Roll,Sem1_Math\n1,88\n",
    )

    assert summary.created == 1
    assert summary.updated == 1
    assert len(students) == 1
    assert students[0].results.sem1.marks == {Subject.MATH: 88}


def test_unreadable_files_are_counted_and_import_continues(gateway):
    files = [
        ImportFile(name="binary.csv", content=b"\xff\xfe\x00garbage"),
        ImportFile(name="empty.csv", content=""),
        ImportFile(name="good.csv", content="Roll,Name\n1,Ali\n".encode("utf-8")),
    ]

    students, summary = Reconciler(gateway).import_files(files)

    assert summary.files_received == 3
    assert summary.file_errors == 2
    assert summary.files_processed == 1
    assert summary.created == 1
    assert summary.total_students == 1
    assert [s.name for s in students] == ["Ali"]


def test_failed_row_save_is_counted_without_aborting(db_session):
    gateway = FailingGateway(db_session)

    students, summary = Reconciler(gateway).import_files(
        [ImportFile(name="roster.csv", content="Roll,Name\n1,Broken\n2,Fine\n")]
    )

    assert summary.errors == 1
    assert summary.created == 1
    assert [s.name for s in students] == ["Fine"]


def test_import_never_mutates_the_records_it_was_given(gateway, make_student):
    original = make_student(serial_no="1", name="Ali")
    gateway.save(original)
    snapshot = original.model_dump()

    Reconciler(gateway).import_files(
        [ImportFile(name="a.csv", content="Roll,Name,Sem1_Math\n1,Ali Raza,70\n")],
        students=[original],
    )

    assert original.model_dump() == snapshot
    assert isinstance(original, StudentRecord)


def test_details_report_file_line_numbers(gateway):
    text = 'Roll,Name,Contact\n1,"Ali\nKhan",0300\n\n,,0311\n2,Sara,0322\n'

    _, summary = run_import(gateway, text)

    assert summary.created == 2
    assert summary.details == [{
        "file": "file1.csv", "row": 5, "status": "SKIPPED",
        "reason": "Row has neither a roll number nor a name",
    }]

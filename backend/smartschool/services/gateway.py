"""
Persistence Gateway - loads, saves and deletes whole student records.

Translates between immutable StudentRecord values and the ORM rows
(students, semester_results, attendance_entries). Callers only ever see
records; a save writes the student row and replaces its semester results
and attendance entries in one commit.

Failure policy:
- load_all() fails closed: errors are logged and an empty list returned.
- save() and delete() return False on failure after rolling back, so the
  caller decides how to surface it. Nothing is retried here.
"""

import json
import time
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from smartschool.models.student import Student
from smartschool.models.semester_result import SemesterResultRow
from smartschool.models.attendance import AttendanceEntry
from smartschool.records import (
    AttendanceStatus, SemesterResult, StudentRecord, StudentResults, Subject,
)
from smartschool.logging_config import get_logger, log_with_context

logger = get_logger("db")

BIO_FIELDS = (
    "serial_no", "registration_no", "name", "father_name", "gender",
    "grade", "dob", "form_b", "contact",
)


def _to_result(row: SemesterResultRow) -> SemesterResult:
    marks = {}
    for subject_name, mark in row.marks_dict.items():
        try:
            marks[Subject(subject_name)] = int(mark)
        except (ValueError, TypeError):
            log_with_context(logger, "WARNING",
                "Ignoring stored mark {}={!r}".format(subject_name, mark),
                context={"student_id": row.student_id, "semester": row.semester})
    return SemesterResult(
        semester=row.semester,
        marks=marks,
        remarks=row.remarks,
        generated_insight=row.generated_insight,
    )


def to_record(student: Student) -> StudentRecord:
    """Build the immutable record for an ORM student and its owned rows."""
    results = StudentResults()
    for row in student.results:
        if row.semester in (1, 2):
            results = results.replace(_to_result(row))

    attendance = {}
    for entry in student.attendance:
        try:
            attendance[entry.date] = AttendanceStatus(entry.status)
        except ValueError:
            log_with_context(logger, "WARNING",
                "Ignoring unknown attendance status {!r}".format(entry.status),
                context={"student_id": student.id, "date": entry.date})

    return StudentRecord(
        id=student.id,
        **{field: getattr(student, field) or "" for field in BIO_FIELDS},
        results=results,
        attendance=attendance,
    )


class PersistenceGateway:
    """Record-level storage over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Student).options(
            selectinload(Student.results),
            selectinload(Student.attendance),
        )

    def load_all(self) -> List[StudentRecord]:
        """
        Return every student in creation order.

        An outage presents as an empty roster: the error is logged, not raised.
        """
        start_time = time.time()
        try:
            students = self._query().order_by(Student.seq).all()
            records = [to_record(s) for s in students]
        except SQLAlchemyError as e:
            self.db.rollback()
            log_with_context(logger, "ERROR", "Failed to load students: {}".format(e))
            return []

        duration_ms = (time.time() - start_time) * 1000
        log_with_context(logger, "DEBUG", "Loaded {} students".format(len(records)),
                        extra_data={"duration_ms": round(duration_ms, 2)})
        return records

    def get(self, student_id: str) -> Optional[StudentRecord]:
        try:
            student = self._query().filter(Student.id == student_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_with_context(logger, "ERROR", "Failed to load student: {}".format(e),
                           context={"student_id": student_id})
            return None
        return to_record(student) if student else None

    def save(self, record: StudentRecord) -> bool:
        """
        Upsert a record by id.

        The student's semester results and attendance entries are replaced by
        the record's, so the stored state always equals the saved value.
        """
        try:
            student = self.db.get(Student, record.id)
            created = student is None
            if created:
                next_seq = (self.db.query(func.max(Student.seq)).scalar() or 0) + 1
                student = Student(id=record.id, seq=next_seq)
                self.db.add(student)

            for field in BIO_FIELDS:
                setattr(student, field, getattr(record, field))

            self._sync_results(student, record.results)
            self._sync_attendance(student, record.attendance)

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_with_context(logger, "ERROR", "Failed to save student: {}".format(e),
                           context={"student_id": record.id})
            return False

        log_with_context(logger, "DEBUG",
            "{} student {}".format("Created" if created else "Updated", record.name),
            context={"student_id": record.id})
        return True

    def _sync_results(self, student: Student, results: StudentResults):
        existing = {row.semester: row for row in student.results}
        for semester in (1, 2):
            result = results.get(semester)
            row = existing.get(semester)
            if result is None:
                if row is not None:
                    student.results.remove(row)
                continue
            if row is None:
                row = SemesterResultRow(semester=semester)
                student.results.append(row)
            row.marks = json.dumps({subject.value: mark for subject, mark in result.marks.items()})
            row.remarks = result.remarks
            row.generated_insight = result.generated_insight

    def _sync_attendance(self, student: Student, attendance: dict):
        existing = {entry.date: entry for entry in student.attendance}
        for date, entry in existing.items():
            if date not in attendance:
                student.attendance.remove(entry)
        for date, status in attendance.items():
            code = AttendanceStatus(status).value
            entry = existing.get(date)
            if entry is None:
                student.attendance.append(AttendanceEntry(date=date, status=code))
            elif entry.status != code:
                entry.status = code

    def delete(self, student_id: str) -> bool:
        """Hard delete a student and everything it owns."""
        try:
            student = self.db.get(Student, student_id)
            if student is None:
                return False
            self.db.delete(student)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log_with_context(logger, "ERROR", "Failed to delete student: {}".format(e),
                           context={"student_id": student_id})
            return False

        log_with_context(logger, "INFO", "Deleted student", context={"student_id": student_id})
        return True

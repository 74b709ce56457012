"""
Import Reconciler - merges uploaded roster files into the student collection.

Processing pipeline for each row of each file:
1. Resolve canonical fields through the alias table (first alias present wins)
2. Skip rows that carry neither a roll/serial number nor a name
3. Find the existing student: registration number first, then serial number
4. Matched: overwrite only the fields and subjects the row actually carries
5. Unmatched: create a new student with policy defaults for grade and gender
6. Save the resulting record before moving to the next row

Design Decision: staff often upload a bio-data sheet and separate marks
sheets against the same roster, so an update must never blank out columns a
file does not carry. There is no batch transaction; a failure part-way
through leaves earlier rows saved. Unreadable files and failed row saves are
counted in the summary instead of raised.
"""

import time
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from smartschool.records import (
    Gender, Grade, SEMESTERS, SUBJECTS, SemesterResult, StudentRecord, Subject, parse_mark,
)
from smartschool.services.csv_codec import CsvParseError, parse_csv_lines
from smartschool.services.gateway import PersistenceGateway
from smartschool.logging_config import get_logger, log_with_context

logger = get_logger("import")

# ──────────────────────────────────────────────────────────────
# Alias tables (normalized header names, in priority order)
# ──────────────────────────────────────────────────────────────
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "serial_no": ("serialno", "rollno", "roll", "id", "srno", "serialnumber", "rollnumber", "classrollno"),
    "registration_no": ("registrationno", "regno", "registration", "registrationnumber",
                        "admissionno", "admissionnumber", "admno"),
    "name": ("name", "studentname", "fullname", "student"),
    "father_name": ("fathername", "guardianname", "father", "guardian", "fathersname", "parentname"),
    "gender": ("gender", "sex"),
    "grade": ("grade", "class", "classlevel", "standard"),
    "dob": ("dob", "dateofbirth", "birthdate", "birthday"),
    "form_b": ("formb", "bform", "formbno", "cnic", "nationalid"),
    "contact": ("contact", "contactno", "phone", "phoneno", "mobile", "mobileno"),
}

SUBJECT_ALIASES: Dict[Subject, Tuple[str, ...]] = {
    Subject.ENGLISH: ("english", "eng"),
    Subject.URDU: ("urdu",),
    Subject.PASHTO: ("pashto",),
    Subject.MATH: ("math", "maths", "mathematics"),
    Subject.GENERAL_SCIENCE: ("generalscience", "science", "gscience"),
    Subject.SOCIAL_STUDY: ("socialstudy", "socialstudies", "sst"),
    Subject.ISLAMIYAT: ("islamiyat", "islamiat", "islamic"),
    Subject.NAZIRA: ("nazira", "nazra"),
    Subject.DRAWING: ("drawing", "art"),
}

SEMESTER_PREFIXES = ("sem{}", "semester{}", "s{}")


def _build_mark_aliases() -> Dict[Tuple[int, Subject], Tuple[str, ...]]:
    table = {}
    for semester in SEMESTERS:
        for subject in SUBJECTS:
            table[(semester, subject)] = tuple(
                prefix.format(semester) + alias
                for prefix in SEMESTER_PREFIXES
                for alias in SUBJECT_ALIASES[subject]
            )
    return table


MARK_ALIASES = _build_mark_aliases()

DEFAULT_GRADE = Grade.ONE.value
DEFAULT_GENDER = Gender.MALE.value


class ImportFile(NamedTuple):
    """An uploaded file: display name and raw content (text or bytes)."""
    name: str
    content: Union[str, bytes]


class ResolvedRow(NamedTuple):
    fields: Dict[str, str]
    marks: Dict[int, Dict[Subject, int]]
    rejected_marks: List[str]


class ImportSummary(BaseModel):
    """Counts reported back after an import."""
    files_received: int = 0
    files_processed: int = 0
    file_errors: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    total_students: int = 0
    details: list = Field(default_factory=list)


def normalize_gender(value: str) -> str:
    """Title-case a gender value: 'female' and 'FEMALE' both become 'Female'."""
    return value[:1].upper() + value[1:].lower()


def resolve_field(row: Dict[str, str], aliases: Sequence[str]) -> Optional[str]:
    """
    Return the trimmed value of the first alias present in the row.

    Only the first present alias is consulted; a blank value there resolves
    to None rather than falling through to later aliases.
    """
    for alias in aliases:
        if alias in row:
            value = (row[alias] or "").strip()
            return value or None
    return None


def resolve_row(row: Dict[str, str]) -> ResolvedRow:
    """Map one parsed row onto canonical fields and per-semester marks."""
    fields = {}
    for field, aliases in FIELD_ALIASES.items():
        value = resolve_field(row, aliases)
        if value is not None:
            fields[field] = normalize_gender(value) if field == "gender" else value

    marks = {semester: {} for semester in SEMESTERS}
    rejected = []
    for (semester, subject), aliases in MARK_ALIASES.items():
        value = resolve_field(row, aliases)
        if value is None:
            continue
        try:
            marks[semester][subject] = parse_mark(value)
        except ValueError:
            rejected.append("sem{} {}={!r}".format(semester, subject.value, value))

    return ResolvedRow(fields=fields, marks=marks, rejected_marks=rejected)


def find_match(students: Sequence[StudentRecord], serial_no: Optional[str],
               registration_no: Optional[str]) -> Optional[StudentRecord]:
    """
    Find the student a row refers to.

    Registration number takes priority when the row has one; the serial
    number is the fallback. Comparison is exact on trimmed values and the
    first student in collection order wins.
    """
    if registration_no:
        for student in students:
            if student.registration_no.strip() == registration_no:
                return student
    if serial_no:
        for student in students:
            if student.serial_no.strip() == serial_no:
                return student
    return None


def apply_row(existing: Optional[StudentRecord], resolved: ResolvedRow) -> Tuple[StudentRecord, bool]:
    """
    Merge a resolved row into an existing record, or create a new one.

    Returns:
        (record, created) where record is a new value; existing is untouched
    """
    if existing is not None:
        record = existing.with_fields(**resolved.fields)
        created = False
    else:
        initial = {"grade": DEFAULT_GRADE, "gender": DEFAULT_GENDER}
        initial.update(resolved.fields)
        record = StudentRecord.new(**initial)
        created = True

    for semester, marks in resolved.marks.items():
        if not marks:
            continue
        current = record.results.get(semester) or SemesterResult(semester=semester)
        record = record.with_result(current.merge_marks(marks))

    return record, created


def decode_content(content: Union[str, bytes]) -> str:
    """Decode uploaded bytes as UTF-8 (a BOM is left for the parser)."""
    if isinstance(content, bytes):
        return content.decode("utf-8")
    return content


class Reconciler:
    """Runs imports against the persistence gateway, one row write at a time."""

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    def import_files(self, files: Sequence[ImportFile],
                     students: Optional[List[StudentRecord]] = None
                     ) -> Tuple[List[StudentRecord], ImportSummary]:
        """
        Import files in order and return the post-import collection.

        Args:
            files: Uploaded files, processed sequentially
            students: Current collection; loaded from the gateway when omitted

        Returns:
            (students, summary) with students re-fetched from the gateway
        """
        start_time = time.time()
        collection = list(students) if students is not None else self.gateway.load_all()
        summary = ImportSummary(files_received=len(files))

        log_with_context(logger, "INFO", "Starting import of {} files".format(len(files)),
                        extra_data={"existing_students": len(collection)})

        for upload in files:
            try:
                rows = parse_csv_lines(decode_content(upload.content))
            except (CsvParseError, UnicodeDecodeError) as e:
                summary.file_errors += 1
                summary.details.append({"file": upload.name, "status": "ERROR", "reason": str(e)})
                log_with_context(logger, "ERROR", "Could not read {}: {}".format(upload.name, e),
                               context={"file": upload.name})
                continue

            summary.files_processed += 1
            for row_no, row in rows:
                self._import_row(upload.name, row_no, row, collection, summary)

        collection = self.gateway.load_all()
        summary.total_students = len(collection)

        duration_ms = (time.time() - start_time) * 1000
        log_with_context(logger, "INFO",
            "Import complete: {} created, {} updated, {} skipped, {} errors, {} unreadable files".format(
                summary.created, summary.updated, summary.skipped, summary.errors, summary.file_errors),
            extra_data={"duration_ms": round(duration_ms, 2), "total_students": summary.total_students})

        return collection, summary

    def _import_row(self, file_name: str, row_no: int, row: Dict[str, str],
                    collection: List[StudentRecord], summary: ImportSummary):
        context = {"file": file_name, "row": row_no}
        resolved = resolve_row(row)
        serial_no = resolved.fields.get("serial_no")
        registration_no = resolved.fields.get("registration_no")

        if not serial_no and not resolved.fields.get("name"):
            summary.skipped += 1
            summary.details.append({**context, "status": "SKIPPED",
                                    "reason": "Row has neither a roll number nor a name"})
            return

        if resolved.rejected_marks:
            summary.details.append({**context, "status": "WARNING",
                                    "reason": "Ignored non-numeric marks: " + ", ".join(resolved.rejected_marks)})

        existing = find_match(collection, serial_no, registration_no)
        record, created = apply_row(existing, resolved)

        if not self.gateway.save(record):
            summary.errors += 1
            summary.details.append({**context, "status": "ERROR", "reason": "Could not save student"})
            return

        if created:
            collection.append(record)
            summary.created += 1
        else:
            position = next(i for i, s in enumerate(collection) if s.id == record.id)
            collection[position] = record
            summary.updated += 1

        log_with_context(logger, "DEBUG",
            "{} {} from row {}".format("Created" if created else "Updated", record.name, row_no),
            context={**context, "student_id": record.id})

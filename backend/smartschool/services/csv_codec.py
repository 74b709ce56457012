"""
CSV Codec - reads roster spreadsheets and writes exports/templates.

Parsing:
1. Drop a leading byte-order mark
2. Pick the delimiter from the header line (comma vs semicolon, ties to comma)
3. Tokenize quote-aware; a doubled quote inside a quoted field is one
   literal quote, and CRLF or LF both end a line
4. Normalize header names (lowercase, alphanumerics only) so that
   "Sem1_English" becomes "sem1english" and "Father Name" becomes "fathername"
5. Skip blank lines and drop rows with fewer cells than headers

Writing quotes every field and doubles interior quotes, joins rows with CRLF
and prefixes U+FEFF so spreadsheet applications open non-ASCII text as UTF-8.
"""

import csv
import io
import re
from typing import Dict, Iterable, List, Sequence, Tuple

from smartschool.records import SUBJECTS, SEMESTERS, StudentRecord, Subject
from smartschool.logging_config import get_logger, log_with_context

logger = get_logger("import")

BOM = "\ufeff"
LINE_SEPARATOR = "\r\n"

BIO_HEADERS = [
    "SerialNo", "RegistrationNo", "Name", "FatherName", "Gender",
    "Grade", "DOB", "FormB", "Contact",
]

# Export header -> StudentRecord attribute
BIO_HEADER_FIELDS = {
    "SerialNo": "serial_no",
    "RegistrationNo": "registration_no",
    "Name": "name",
    "FatherName": "father_name",
    "Gender": "gender",
    "Grade": "grade",
    "DOB": "dob",
    "FormB": "form_b",
    "Contact": "contact",
}

TEMPLATE_CATEGORIES = ("bio", "sem1", "sem2")

_SAMPLE_BIO = {
    "SerialNo": "101",
    "RegistrationNo": "R-2024-001",
    "Name": "Ahmed Khan",
    "FatherName": "Bilal Khan",
    "Gender": "Male",
    "Grade": "5",
    "DOB": "2015-05-12",
    "FormB": "12345-1234567-1",
    "Contact": "0300-1234567",
}
_SAMPLE_MARK = "75"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class CsvParseError(ValueError):
    """Raised when text cannot be read as a roster (no header row)."""


def normalize_header(name: str) -> str:
    """Lowercase and strip everything that is not a letter or digit."""
    return _NON_ALNUM.sub("", (name or "").lower())


def sniff_delimiter(header_line: str) -> str:
    """Semicolon only when the header line has more semicolons than commas."""
    return ";" if header_line.count(";") > header_line.count(",") else ","


def mark_header(semester: int, subject: Subject) -> str:
    """Export header for a mark column, e.g. Sem1_GeneralScience."""
    return "Sem{}_{}".format(semester, subject.value.replace(" ", ""))


def parse_csv_lines(text: str) -> List[Tuple[int, Dict[str, str]]]:
    """
    Parse roster text into (line number, row) pairs.

    Rows are keyed by normalized header and values are untrimmed strings.
    The line number is the 1-based file line the record starts on, so it
    stays correct past skipped blank lines and quoted fields spanning lines.

    Raises:
        CsvParseError: when no header row is present
    """
    if text.startswith(BOM):
        text = text[len(BOM):]

    first_line = text.split("\n", 1)[0].rstrip("\r")
    if not first_line.strip():
        raise CsvParseError("File has no header row")

    delimiter = sniff_delimiter(first_line)
    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        header_cells = next(reader)
        headers = [normalize_header(h) for h in header_cells]

        rows = []
        dropped = 0
        line_no = reader.line_num
        for cells in reader:
            start_line, line_no = line_no + 1, reader.line_num
            if not cells or not any(cell.strip() for cell in cells):
                continue
            if len(cells) < len(headers):
                dropped += 1
                continue
            rows.append((start_line, {header: cells[i] for i, header in enumerate(headers) if header}))
    except csv.Error as e:
        raise CsvParseError("Malformed CSV: {}".format(e)) from e

    if dropped:
        log_with_context(logger, "WARNING",
            "Dropped {} short rows (fewer than {} cells)".format(dropped, len(headers)),
            extra_data={"delimiter": delimiter})
    return rows


def parse_csv(text: str) -> List[Dict[str, str]]:
    """Parse roster text into row mappings keyed by normalized header."""
    return [row for _, row in parse_csv_lines(text)]


def _quote(value) -> str:
    text = "" if value is None else str(value)
    return '"' + text.replace('"', '""') + '"'


def serialize_csv(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    """Quote every field, join rows with CRLF and prefix the BOM."""
    lines = [",".join(_quote(h) for h in headers)]
    for row in rows:
        lines.append(",".join(_quote(value) for value in row))
    return BOM + LINE_SEPARATOR.join(lines)


def export_headers() -> List[str]:
    headers = list(BIO_HEADERS)
    for semester in SEMESTERS:
        headers.extend(mark_header(semester, subject) for subject in SUBJECTS)
    return headers


def student_to_row(student: StudentRecord) -> List[str]:
    """Flatten a record in export_headers() order; absent marks are blank."""
    row = [getattr(student, BIO_HEADER_FIELDS[h]) for h in BIO_HEADERS]
    for semester in SEMESTERS:
        result = student.results.get(semester)
        for subject in SUBJECTS:
            if result is not None and subject in result.marks:
                row.append(str(result.marks[subject]))
            else:
                row.append("")
    return row


def export_students(students: Iterable[StudentRecord]) -> str:
    return serialize_csv(export_headers(), (student_to_row(s) for s in students))


def build_template(category: str) -> str:
    """
    Import template with one illustrative row.

    bio carries the bio-data columns; sem1/sem2 carry the identity columns
    plus that semester's subject marks.

    Raises:
        ValueError: for an unknown category
    """
    if category == "bio":
        headers = list(BIO_HEADERS)
        sample = [_SAMPLE_BIO[h] for h in headers]
    elif category in ("sem1", "sem2"):
        semester = int(category[-1])
        headers = ["SerialNo", "RegistrationNo", "Name"]
        sample = [_SAMPLE_BIO[h] for h in headers]
        headers.extend(mark_header(semester, subject) for subject in SUBJECTS)
        sample.extend(_SAMPLE_MARK for _ in SUBJECTS)
    else:
        raise ValueError("Unknown template category: {}".format(category))
    return serialize_csv(headers, [sample])

import pytest

from smartschool.records import Subject
from smartschool.services.csv_codec import (
    BIO_HEADERS, BOM, CsvParseError, build_template, export_headers, export_students,
    normalize_header, parse_csv, parse_csv_lines, serialize_csv, sniff_delimiter,
)


def test_normalize_header_strips_case_and_punctuation():
    assert normalize_header("Sem1_English") == "sem1english"
    assert normalize_header("Father Name") == "fathername"
    assert normalize_header("  Roll-No. ") == "rollno"


def test_sniff_delimiter_prefers_more_frequent_and_ties_to_comma():
    assert sniff_delimiter("SerialNo;Name;Grade") == ";"
    assert sniff_delimiter("SerialNo,Name;Grade") == ","
    assert sniff_delimiter("SerialNo") == ","


def test_serialize_quotes_every_field_with_crlf_and_bom():
    text = serialize_csv(["A", "B"], [['say "hi"', "1,2"], ["", None]])
    assert text == BOM + '"A","B"\r\n"say ""hi""","1,2"\r\n"",""'


def test_round_trip_preserves_field_values():
    headers = ["SerialNo", "Name", "Father Name", "Notes"]
    rows = [
        ["101", "Khan, Ahmed", "Bilal", 'He said "present"'],
        ["102", "Zainab Bibi", "", "line one\nline two"],
        ["103", "Ümit", "Gül", "semi;colon"],
    ]

    parsed = parse_csv(serialize_csv(headers, rows))

    keys = [normalize_header(h) for h in headers]
    assert parsed == [dict(zip(keys, row)) for row in rows]


def test_parse_strips_bom_and_reads_semicolon_files():
    text = BOM + 'SerialNo;Name\r\n1;"Ali; Khan"\r\n'
    assert parse_csv(text) == [{"serialno": "1", "name": "Ali; Khan"}]


def test_parse_skips_blank_lines_and_drops_short_rows():
    text = "A,B,C\n1,2,3\n\n   \n4,5\n6,7,8\n"
    assert parse_csv(text) == [
        {"a": "1", "b": "2", "c": "3"},
        {"a": "6", "b": "7", "c": "8"},
    ]


def test_parse_accepts_lf_and_crlf():
    assert parse_csv("A,B\n1,2\r\n3,4") == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]


@pytest.mark.parametrize("text", ["", BOM, "\n\nA,B\n1,2"])
def test_parse_without_header_raises(text):
    with pytest.raises(CsvParseError):
        parse_csv(text)


def test_export_column_order(make_student):
    headers = export_headers()
    assert headers[:9] == BIO_HEADERS
    assert headers[9] == "Sem1_English"
    assert headers[13] == "Sem1_GeneralScience"
    assert headers[18] == "Sem2_English"
    assert headers[-1] == "Sem2_Drawing"
    assert len(headers) == 27


def test_export_writes_marks_and_blanks_for_missing(make_student):
    student = make_student(sem1={Subject.MATH: 80}, father_name='Bilal "Sr." Khan')

    rows = parse_csv(export_students([student]))

    assert len(rows) == 1
    row = rows[0]
    assert row["serialno"] == "101"
    assert row["fathername"] == 'Bilal "Sr." Khan'
    assert row["sem1math"] == "80"
    assert row["sem1english"] == ""
    assert row["sem2math"] == ""


def test_templates_carry_one_sample_row():
    bio = parse_csv(build_template("bio"))
    assert len(bio) == 1
    assert set(bio[0]) == {normalize_header(h) for h in BIO_HEADERS}

    sem2 = parse_csv(build_template("sem2"))
    assert sem2[0]["serialno"] == "101"
    assert sem2[0]["sem2socialstudy"] == "75"
    assert "gender" not in sem2[0]
    assert not any(key.startswith("sem1") for key in sem2[0])


def test_unknown_template_category():
    with pytest.raises(ValueError):
        build_template("sem3")


def test_rows_carry_the_file_line_they_start_on():
    text = 'Roll,Name,Notes\n1,Ali,"first\nsecond"\n\n2,Sara,x\n3\n4,Hina,y\n'
    assert [line for line, _ in parse_csv_lines(text)] == [2, 5, 7]

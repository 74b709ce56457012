"""
Text-Insight Gateway - report-card comments from the Gemini API.

One blocking request per call through httpx. The gateway never raises:
a missing API key, a transport or HTTP error, or an unexpected payload all
degrade to a fixed fallback sentence so the surrounding save is unaffected.
"""

import time
from typing import Iterable, Optional

import httpx

from smartschool.records import StudentRecord
from smartschool.logging_config import get_logger, log_with_context

logger = get_logger("insight")

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

NO_RESULT_TEXT = "No result data available for this semester."
FALLBACK_TEXT = "Evaluation complete. Please check the profile manually for details."
EMPTY_TEXT = "Performance review finalized."
SUMMARY_FALLBACK_TEXT = "Analyzing school performance metrics..."
SUMMARY_EMPTY_TEXT = "Institutional health analysis finalized."


class InsightUnavailable(Exception):
    """Internal signal that the model could not be reached or answered badly."""


def build_report_prompt(student: StudentRecord, semester: int, school_name: str) -> str:
    result = student.results.get(semester)
    marks = ", ".join("{}: {}".format(subject.value, mark) for subject, mark in result.marks.items())
    return (
        "Act as a highly experienced pedagogical expert and school principal at {school}.\n"
        "Write a sophisticated, encouraging, and highly personalized report card comment for:\n\n"
        "Student: {name} (Grade {grade})\n"
        "Father's Name: {father}\n"
        "Semester: {semester}\n\n"
        "Marks Data (Out of 100):\n{marks}\n\n"
        "Instructions:\n"
        "1. Analyze strengths and specific areas needing attention.\n"
        "2. Provide 3 concise, professional sentences.\n"
        "3. Return ONLY the text, no markdown."
    ).format(school=school_name, name=student.name, grade=student.grade,
             father=student.father_name, semester=semester, marks=marks)


def build_summary_prompt(students: Iterable[StudentRecord], session_year: str) -> str:
    students = list(students)
    grade_counts = {}
    for student in students:
        grade_counts[student.grade] = grade_counts.get(student.grade, 0) + 1
    return (
        "Analyze school stats for {session}:\n"
        "Total Enrollment: {total}\n"
        "Grade Distribution: {counts}\n"
        "Summarize institutional performance in 2 sentences. No markdown."
    ).format(session=session_year, total=len(students), counts=grade_counts)


class InsightGateway:
    """
    Client for the Gemini generateContent endpoint.

    Args:
        api_key: Gemini API key; without one every call returns the fallback
        model: Model name in the request path
        timeout: Request timeout in seconds
        school_name: Used in the report-card prompt
        transport: Optional httpx transport (tests pass a MockTransport)
    """

    def __init__(self, api_key: Optional[str], model: str, timeout: float = 30.0,
                 school_name: str = "", transport: httpx.BaseTransport = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.school_name = school_name
        self.transport = transport

    def _generate_text(self, prompt: str) -> str:
        if not self.api_key:
            raise InsightUnavailable("API key not configured")

        url = GEMINI_URL.format(model=self.model)
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        start_time = time.time()
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(url, params={"key": self.api_key}, json=payload)
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise InsightUnavailable(str(e)) from e

        try:
            parts = body["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise InsightUnavailable("Unexpected response shape") from e

        duration_ms = (time.time() - start_time) * 1000
        log_with_context(logger, "INFO", "Text generated",
                        extra_data={"duration_ms": round(duration_ms, 2), "model": self.model,
                                    "chars": len(text)})
        return text.strip()

    def generate(self, student: StudentRecord, semester: int) -> str:
        """Report-card comment for one semester; never raises."""
        if student.results.get(semester) is None:
            return NO_RESULT_TEXT
        try:
            text = self._generate_text(build_report_prompt(student, semester, self.school_name))
        except InsightUnavailable as e:
            log_with_context(logger, "WARNING", "Insight fell back: {}".format(e),
                           context={"student_id": student.id, "semester": semester})
            return FALLBACK_TEXT
        return text or EMPTY_TEXT

    def summarize_school(self, students: Iterable[StudentRecord], session_year: str) -> str:
        """Two-sentence enrollment summary for the dashboard; never raises."""
        try:
            text = self._generate_text(build_summary_prompt(students, session_year))
        except InsightUnavailable as e:
            log_with_context(logger, "WARNING", "School summary fell back: {}".format(e))
            return SUMMARY_FALLBACK_TEXT
        return text or SUMMARY_EMPTY_TEXT

"""
SemesterResultRow model - stores one semester's marks for one student.

Marks are kept as a JSON object {subject name: obtained mark}.
"""

import json
from sqlalchemy import Column, Integer, Text, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship
from smartschool.database import Base


class SemesterResultRow(Base):
    __tablename__ = "semester_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    semester = Column(Integer, nullable=False, doc="1 or 2")
    marks = Column(Text, nullable=False, default="{}",
                   doc="Marks as JSON: {subject: obtained}")
    remarks = Column(Text, nullable=True)
    generated_insight = Column(Text, nullable=True,
                               doc="Narrative written by the text-insight service")

    student = relationship("Student", back_populates="results")

    __table_args__ = (
        UniqueConstraint("student_id", "semester", name="uq_semester_results_student_semester"),
    )

    @property
    def marks_dict(self):
        """Parse the marks JSON string to a dict."""
        if isinstance(self.marks, dict):
            return self.marks
        try:
            return json.loads(self.marks) if self.marks else {}
        except (json.JSONDecodeError, TypeError):
            return {}

    def __repr__(self):
        return f"<SemesterResultRow(student={self.student_id}, semester={self.semester})>"

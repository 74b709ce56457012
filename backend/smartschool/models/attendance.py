"""
AttendanceEntry model - one status (P/A/L) per student per calendar date.

A date without a row is unmarked, which is not the same as absent.
"""

from sqlalchemy import Column, Integer, ForeignKey, String, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from smartschool.database import Base


class AttendanceEntry(Base):
    __tablename__ = "attendance_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    date = Column(String(10), nullable=False, doc="ISO date YYYY-MM-DD")
    status = Column(String(1), nullable=False, doc="P | A | L")

    student = relationship("Student", back_populates="attendance")

    __table_args__ = (
        UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),
        Index("ix_attendance_entries_date", "date"),
    )

    def __repr__(self):
        return f"<AttendanceEntry(student={self.student_id}, date={self.date}, status='{self.status}')>"

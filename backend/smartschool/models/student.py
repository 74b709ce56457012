"""
Student model - one enrolled learner's bio-data.

Semester results and attendance entries hang off the student and are
deleted with it (hard delete, no tombstone).
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, Text, DateTime, String, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from smartschool.database import Base


class Student(Base):
    """
    SQLAlchemy model for the students table.

    serial_no and registration_no are the identity keys used by CSV import.
    They are indexed but not unique: duplicates are tolerated and resolved by
    first match during reconciliation.
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Opaque student identifier, never reused")
    serial_no = Column(Text, nullable=False, default="",
                       doc="Class roll number")
    registration_no = Column(Text, nullable=False, default="",
                             doc="Admission/registration number")
    name = Column(Text, nullable=False, default="")
    father_name = Column(Text, nullable=False, default="")
    gender = Column(Text, nullable=False, default="Male",
                    doc="Male | Female | Other (imports may store other values)")
    grade = Column(Text, nullable=False, default="1",
                   doc="Class level 1-5 (imports may store other values)")
    dob = Column(Text, nullable=False, default="")
    form_b = Column(Text, nullable=False, default="",
                    doc="National identity (Form-B) number")
    contact = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    seq = Column(Integer, nullable=False,
                 doc="Creation order, assigned on first save; identity matching prefers lower values")

    results = relationship("SemesterResultRow", back_populates="student",
                           cascade="all, delete-orphan", order_by="SemesterResultRow.semester")
    attendance = relationship("AttendanceEntry", back_populates="student",
                              cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_students_serial_no", "serial_no"),
        Index("ix_students_registration_no", "registration_no"),
        Index("ix_students_grade", "grade"),
        UniqueConstraint("seq", name="uq_students_seq"),
    )

    def __repr__(self):
        return f"<Student(id={self.id}, serial_no='{self.serial_no}', name='{self.name}')>"

"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2024-03-01

Creates the tables of the records service:
- students: bio-data and identity keys (serial/roll and registration numbers)
- semester_results: one row per student per semester, marks as JSON text
- attendance_entries: one P/A/L status per student per date

Owned rows cascade on student delete.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('serial_no', sa.Text(), nullable=False, server_default=''),
        sa.Column('registration_no', sa.Text(), nullable=False, server_default=''),
        sa.Column('name', sa.Text(), nullable=False, server_default=''),
        sa.Column('father_name', sa.Text(), nullable=False, server_default=''),
        sa.Column('gender', sa.Text(), nullable=False, server_default='Male'),
        sa.Column('grade', sa.Text(), nullable=False, server_default='1'),
        sa.Column('dob', sa.Text(), nullable=False, server_default=''),
        sa.Column('form_b', sa.Text(), nullable=False, server_default=''),
        sa.Column('contact', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(),
                  server_default=sa.func.now(), nullable=True),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.UniqueConstraint('seq', name='uq_students_seq'),
    )

    # Identity keys are looked up on every import row
    op.create_index('ix_students_serial_no', 'students', ['serial_no'])
    op.create_index('ix_students_registration_no', 'students', ['registration_no'])
    op.create_index('ix_students_grade', 'students', ['grade'])

    # ── Semester Results Table ────────────────────────────────
    op.create_table(
        'semester_results',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('student_id', sa.String(36),
                  sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('semester', sa.Integer(), nullable=False),
        sa.Column('marks', sa.Text(), nullable=False, server_default='{}'),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('generated_insight', sa.Text(), nullable=True),
        sa.UniqueConstraint('student_id', 'semester', name='uq_semester_results_student_semester'),
    )

    # ── Attendance Entries Table ──────────────────────────────
    op.create_table(
        'attendance_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('student_id', sa.String(36),
                  sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.String(10), nullable=False),
        sa.Column('status', sa.String(1), nullable=False),
        sa.UniqueConstraint('student_id', 'date', name='uq_attendance_student_date'),
    )

    op.create_index('ix_attendance_entries_date', 'attendance_entries', ['date'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_attendance_entries_date', table_name='attendance_entries')
    op.drop_table('attendance_entries')
    op.drop_table('semester_results')
    op.drop_index('ix_students_grade', table_name='students')
    op.drop_index('ix_students_registration_no', table_name='students')
    op.drop_index('ix_students_serial_no', table_name='students')
    op.drop_table('students')

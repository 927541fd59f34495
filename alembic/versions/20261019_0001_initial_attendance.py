"""students, weekly records, history and assistants

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = '20261019_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)
    tables = set(inspector.get_table_names())

    if 'students' not in tables:
        op.create_table(
            'students',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=False),
            sa.Column('name', sa.String(length=160), nullable=False),
            sa.Column('age', sa.Integer(), nullable=True),
            sa.Column('grade', sa.String(length=60), nullable=False),
            sa.Column('school', sa.String(length=160), nullable=True),
            sa.Column('phone', sa.String(length=20), nullable=False),
            sa.Column('parents_phone', sa.String(length=20), nullable=False),
            sa.Column('main_center', sa.String(length=80), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_students_grade', 'students', ['grade'])
        op.create_index('ix_students_main_center', 'students', ['main_center'])

    if 'student_weeks' not in tables:
        op.create_table(
            'student_weeks',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
            sa.Column('week', sa.Integer(), nullable=False),
            sa.Column('attended', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('last_attendance', sa.String(length=120), nullable=True),
            sa.Column('last_attendance_center', sa.String(length=80), nullable=True),
            sa.Column('hw_done', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('paid_session', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('quiz_degree', sa.String(length=40), nullable=True),
            sa.Column('message_state', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.UniqueConstraint('student_id', 'week', name='uq_student_weeks_student_week'),
        )
        op.create_index('ix_student_weeks_id', 'student_weeks', ['id'])
        op.create_index('ix_student_weeks_student_id', 'student_weeks', ['student_id'])
        op.create_index('ix_student_weeks_attended_center', 'student_weeks', ['attended', 'last_attendance_center'])

    if 'history' not in tables:
        op.create_table(
            'history',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('student_id', sa.Integer(), nullable=False),
            sa.Column('week', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_history_id', 'history', ['id'])
        op.create_index('ix_history_student_week', 'history', ['student_id', 'week'])

    if 'assistants' not in tables:
        op.create_table(
            'assistants',
            sa.Column('pk', sa.Integer(), primary_key=True),
            sa.Column('id', sa.String(length=60), nullable=False),
            sa.Column('name', sa.String(length=160), nullable=False),
            sa.Column('phone', sa.String(length=20), nullable=False, server_default=''),
            sa.Column('password_hash', sa.String(length=255), nullable=False),
            sa.Column('role', sa.String(length=20), nullable=False, server_default='assistant'),
            sa.Column('created_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_assistants_id', 'assistants', ['id'], unique=True)
        op.create_index('ix_assistants_role', 'assistants', ['role'])


def downgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)
    tables = set(inspector.get_table_names())

    for table in ('assistants', 'history', 'student_weeks', 'students'):
        if table in tables:
            op.drop_table(table)

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attendance_desk.db import Base


WEEKS_PER_TERM = 20


class Role(str, Enum):
    ADMIN = 'admin'
    ASSISTANT = 'assistant'


class Student(Base):
    __tablename__ = 'students'

    # Assigned by the service as max(id) + 1, never autoincremented by the database.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(160))
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    grade: Mapped[str] = mapped_column(String(60), index=True)
    school: Mapped[str | None] = mapped_column(String(160), nullable=True)
    phone: Mapped[str] = mapped_column(String(20))
    parents_phone: Mapped[str] = mapped_column(String(20))
    main_center: Mapped[str] = mapped_column(String(80), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    weeks: Mapped[list['WeekRecord']] = relationship(
        back_populates='student',
        order_by='WeekRecord.week',
        cascade='all, delete-orphan',
    )


class WeekRecord(Base):
    __tablename__ = 'student_weeks'
    __table_args__ = (
        UniqueConstraint('student_id', 'week', name='uq_student_weeks_student_week'),
        Index('ix_student_weeks_attended_center', 'attended', 'last_attendance_center'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[int] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    week: Mapped[int] = mapped_column(Integer)
    attended: Mapped[bool] = mapped_column(Boolean, default=False)
    last_attendance: Mapped[str | None] = mapped_column(String(120), nullable=True)
    last_attendance_center: Mapped[str | None] = mapped_column(String(80), nullable=True)
    hw_done: Mapped[bool] = mapped_column(Boolean, default=False)
    paid_session: Mapped[bool] = mapped_column(Boolean, default=False)
    quiz_degree: Mapped[str | None] = mapped_column(String(40), nullable=True)
    message_state: Mapped[bool] = mapped_column(Boolean, default=False)

    student: Mapped[Student] = relationship(back_populates='weeks')

    def clear(self) -> None:
        self.attended = False
        self.last_attendance = None
        self.last_attendance_center = None
        self.hw_done = False
        self.paid_session = False
        self.quiz_degree = None
        self.message_state = False

    def to_dict(self) -> dict:
        return {
            'week': self.week,
            'attended': bool(self.attended),
            'lastAttendance': self.last_attendance,
            'lastAttendanceCenter': self.last_attendance_center,
            'hwDone': bool(self.hw_done),
            'paidSession': bool(self.paid_session),
            'quizDegree': self.quiz_degree,
            'message_state': bool(self.message_state),
        }


class HistoryRecord(Base):
    __tablename__ = 'history'
    __table_args__ = (
        Index('ix_history_student_week', 'student_id', 'week'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # Plain column: deleting a student leaves its history rows behind, readers skip them.
    student_id: Mapped[int] = mapped_column(Integer)
    week: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Assistant(Base):
    __tablename__ = 'assistants'

    pk: Mapped[int] = mapped_column(Integer, primary_key=True)
    id: Mapped[str] = mapped_column(String(60), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(160))
    phone: Mapped[str] = mapped_column(String(20), default='')
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=Role.ASSISTANT.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

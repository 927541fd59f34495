from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from attendance_desk.cache import invalidate_student_views
from attendance_desk.core.errors import NotFoundError, ValidationError
from attendance_desk.core.time_provider import TimeProvider, default_time_provider
from attendance_desk.domain.weeks import (
    attendance_stamp,
    extract_student_id,
    flatten_student,
    normalize_grade,
    same_text,
    week_at,
    zeroed_weeks,
)
from attendance_desk.models import WEEKS_PER_TERM, HistoryRecord, Student, WeekRecord


logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = ('name', 'grade', 'phone', 'parents_phone', 'main_center', 'school')
EDITABLE_FIELDS = ('name', 'grade', 'phone', 'parents_phone', 'main_center', 'age', 'school')


def _clean_text(value: Any) -> str:
    return str(value).strip() if value is not None else ''


def _next_student_id(db: Session) -> int:
    current_max = db.query(func.max(Student.id)).scalar()
    return int(current_max or 0) + 1


def _load_student(db: Session, student_id: int) -> Student:
    student = (
        db.query(Student)
        .options(selectinload(Student.weeks))
        .filter(Student.id == int(student_id))
        .first()
    )
    if not student:
        raise NotFoundError('Student not found')
    return student


def profile_dict(student: Student) -> dict[str, Any]:
    return {
        'id': student.id,
        'name': student.name,
        'age': student.age,
        'grade': student.grade,
        'school': student.school,
        'phone': student.phone,
        'parents_phone': student.parents_phone,
        'main_center': student.main_center,
    }


def week_dicts(student: Student) -> list[dict[str, Any]]:
    return [week.to_dict() for week in sorted(student.weeks, key=lambda row: row.week)]


def student_view(student: Student) -> dict[str, Any]:
    return flatten_student(profile_dict(student), week_dicts(student))


def matches_search(student: Student, q: str | None) -> bool:
    term = _clean_text(q).lower()
    if not term:
        return True
    if term.isdigit() and int(term) == student.id:
        return True
    return term in (student.name or '').lower() or term in (student.school or '').lower()


def _fresh_week_rows() -> list[WeekRecord]:
    return [
        WeekRecord(
            week=item['week'],
            attended=item['attended'],
            last_attendance=item['lastAttendance'],
            last_attendance_center=item['lastAttendanceCenter'],
            hw_done=item['hwDone'],
            paid_session=item['paidSession'],
            quiz_degree=item['quizDegree'],
            message_state=item['message_state'],
        )
        for item in zeroed_weeks()
    ]


def create_student(db: Session, payload: dict[str, Any]) -> Student:
    missing = [field for field in REQUIRED_TEXT_FIELDS if not _clean_text(payload.get(field))]
    if missing or 'age' not in payload:
        raise ValidationError('All fields are required')

    # Read-then-insert: two concurrent creates can pick the same id; the primary key rejects the loser.
    student = Student(
        id=_next_student_id(db),
        name=_clean_text(payload['name']),
        age=payload.get('age'),
        grade=_clean_text(payload['grade']),
        school=_clean_text(payload['school']),
        phone=_clean_text(payload['phone']),
        parents_phone=_clean_text(payload['parents_phone']),
        main_center=_clean_text(payload['main_center']),
    )
    student.weeks = _fresh_week_rows()
    db.add(student)
    db.commit()
    db.refresh(student)
    invalidate_student_views()
    logger.info('student_created student_id=%s grade=%s main_center=%s', student.id, student.grade, student.main_center)
    return student


def get_student(db: Session, student_id: int) -> dict[str, Any]:
    return student_view(_load_student(db, student_id))


def list_students(
    db: Session,
    *,
    grade: str | None = None,
    center: str | None = None,
    q: str | None = None,
) -> list[dict[str, Any]]:
    rows = db.query(Student).options(selectinload(Student.weeks)).order_by(Student.id.asc()).all()
    wanted_grade = normalize_grade(grade)
    result = []
    for student in rows:
        if wanted_grade and normalize_grade(student.grade) != wanted_grade:
            continue
        if center and not same_text(student.main_center, center):
            continue
        if not matches_search(student, q):
            continue
        result.append(student_view(student))
    return result


def update_student(db: Session, student_id: int, changes: dict[str, Any]) -> Student:
    update: dict[str, Any] = {}
    for field in EDITABLE_FIELDS:
        value = changes.get(field)
        if value is None:
            continue
        if isinstance(value, str):
            if not value.strip():
                continue
            value = value.strip()
        update[field] = value

    if not update:
        raise ValidationError('No valid fields to update')

    student = _load_student(db, student_id)
    for field, value in update.items():
        setattr(student, field, value)
    db.commit()
    db.refresh(student)
    invalidate_student_views()
    logger.info('student_updated student_id=%s fields=%s', student.id, ','.join(sorted(update)))
    return student


def delete_student(db: Session, student_id: int) -> None:
    student = _load_student(db, student_id)
    db.delete(student)
    db.commit()
    invalidate_student_views()
    logger.info('student_deleted student_id=%s', student_id)


def reset_student(db: Session, student_id: int) -> Student:
    student = _load_student(db, student_id)
    # Rows are zeroed in place; recreating them would collide on (student_id, week) before the deletes flush.
    kept_numbers = set()
    for week in list(student.weeks):
        if week.week > WEEKS_PER_TERM or week.week in kept_numbers:
            student.weeks.remove(week)
            continue
        week.clear()
        kept_numbers.add(week.week)
    for fresh in _fresh_week_rows():
        if fresh.week not in kept_numbers:
            student.weeks.append(fresh)
    removed = (
        db.query(HistoryRecord)
        .filter(HistoryRecord.student_id == student.id)
        .delete(synchronize_session=False)
    )
    db.commit()
    db.refresh(student)
    invalidate_student_views()
    logger.info('student_reset student_id=%s history_removed=%s', student.id, removed)
    return student


def _week_row(student: Student, week_number: int | None) -> WeekRecord:
    return week_at(sorted(student.weeks, key=lambda row: row.week), week_number)


def toggle_attendance(
    db: Session,
    student_id: int,
    *,
    attended: bool,
    last_attendance: str | None = None,
    last_attendance_center: str | None = None,
    attendance_week: int | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> WeekRecord:
    student = _load_student(db, student_id)
    week = _week_row(student, attendance_week)

    if attended:
        center = _clean_text(last_attendance_center) or None
        week.attended = True
        week.last_attendance = _clean_text(last_attendance) or attendance_stamp(time_provider.today(), center)
        week.last_attendance_center = center
        already_logged = (
            db.query(HistoryRecord)
            .filter(HistoryRecord.student_id == student.id, HistoryRecord.week == week.week)
            .first()
        )
        if not already_logged:
            db.add(HistoryRecord(student_id=student.id, week=week.week))
        db.commit()
        logger.info('attendance_marked student_id=%s week=%s center=%s', student.id, week.week, center)
    else:
        week.clear()
        removed = (
            db.query(HistoryRecord)
            .filter(HistoryRecord.student_id == student.id, HistoryRecord.week == week.week)
            .delete(synchronize_session=False)
        )
        db.commit()
        logger.info('attendance_cleared student_id=%s week=%s history_removed=%s', student.id, week.week, removed)

    db.refresh(week)
    invalidate_student_views()
    return week


def _attended_week(db: Session, student_id: int, week_number: int | None) -> WeekRecord:
    week = _week_row(_load_student(db, student_id), week_number)
    if not week.attended:
        raise ValidationError(f'Student has not attended week {week.week}')
    return week


def _save_week(db: Session, week: WeekRecord, event: str) -> WeekRecord:
    db.commit()
    db.refresh(week)
    invalidate_student_views()
    logger.info('%s student_id=%s week=%s', event, week.student_id, week.week)
    return week


def update_homework(db: Session, student_id: int, *, week: int | None, hw_done: bool) -> WeekRecord:
    row = _attended_week(db, student_id, week)
    row.hw_done = bool(hw_done)
    return _save_week(db, row, 'homework_updated')


def update_payment(db: Session, student_id: int, *, week: int | None, paid_session: bool) -> WeekRecord:
    row = _attended_week(db, student_id, week)
    row.paid_session = bool(paid_session)
    return _save_week(db, row, 'payment_updated')


def update_quiz_grade(db: Session, student_id: int, *, week: int | None, quiz_degree: str | None) -> WeekRecord:
    if quiz_degree is not None and not _clean_text(quiz_degree):
        raise ValidationError('Quiz degree cannot be empty')
    row = _attended_week(db, student_id, week)
    row.quiz_degree = _clean_text(quiz_degree) or None
    return _save_week(db, row, 'quiz_updated')


def update_message_state(db: Session, student_id: int, *, week: int | None, message_state: bool) -> WeekRecord:
    row = _attended_week(db, student_id, week)
    row.message_state = bool(message_state)
    return _save_week(db, row, 'message_state_updated')


def check_in(
    db: Session,
    qr_text: str,
    *,
    attendance_week: int | None,
    center: str,
    time_provider: TimeProvider = default_time_provider,
) -> dict[str, Any]:
    student_id = extract_student_id(qr_text)
    if student_id is None:
        raise ValidationError('Unrecognised QR code')
    if not _clean_text(center):
        raise ValidationError('Attendance center is required')

    student = _load_student(db, student_id)
    week = _week_row(student, attendance_week)
    already_attended = bool(week.attended)
    if not already_attended:
        toggle_attendance(
            db,
            student.id,
            attended=True,
            last_attendance_center=center,
            attendance_week=week.week,
            time_provider=time_provider,
        )
        db.refresh(student)
    return {'already_attended': already_attended, 'student': student_view(student)}

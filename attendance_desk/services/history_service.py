from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session, selectinload

from attendance_desk.domain.weeks import normalize_grade, same_text
from attendance_desk.metrics import timed_service
from attendance_desk.models import HistoryRecord, Student
from attendance_desk.services.student_service import matches_search


logger = logging.getLogger(__name__)


def _enrich(record: HistoryRecord, student: Student, week: dict[str, Any]) -> dict[str, Any]:
    return {
        'studentId': record.student_id,
        'week': record.week,
        'main_center': student.main_center or 'n/a',
        'center': week.get('lastAttendanceCenter') or 'n/a',
        'attendanceDate': week.get('lastAttendance') or 'n/a',
        'hwDone': bool(week.get('hwDone')),
        'paidSession': bool(week.get('paidSession')),
        'quizDegree': week.get('quizDegree') or None,
        'message_state': bool(week.get('message_state')),
    }


def _student_header(student: Student) -> dict[str, Any]:
    return {
        'id': student.id,
        'name': student.name,
        'grade': student.grade,
        'school': student.school,
        'phone': student.phone,
        'parentsPhone': student.parents_phone,
        'historyRecords': [],
    }


@timed_service('history_list')
def list_history(
    db: Session,
    *,
    grade: str | None = None,
    center: str | None = None,
    week: int | None = None,
    q: str | None = None,
) -> list[dict[str, Any]]:
    """Attendance history grouped per student, joined against each student's live week data.

    Rows pointing at a deleted student or at a week that is no longer
    attended are dropped, so the listing never shows an un-attended week.
    """
    records = db.query(HistoryRecord).order_by(HistoryRecord.id.asc()).all()
    students = {
        student.id: student
        for student in db.query(Student).options(selectinload(Student.weeks)).all()
    }

    wanted_grade = normalize_grade(grade)
    grouped: dict[int, dict[str, Any]] = {}
    orphaned = 0
    stale = 0
    for record in records:
        student = students.get(record.student_id)
        if student is None:
            orphaned += 1
            continue
        weeks_by_number = {row.week: row for row in student.weeks}
        week_row = weeks_by_number.get(record.week)
        if week_row is None or not week_row.attended:
            stale += 1
            continue

        if wanted_grade and normalize_grade(student.grade) != wanted_grade:
            continue
        if week is not None and record.week != int(week):
            continue
        if center and not same_text(week_row.last_attendance_center, center):
            continue
        if not matches_search(student, q):
            continue

        entry = grouped.setdefault(student.id, _student_header(student))
        entry['historyRecords'].append(_enrich(record, student, week_row.to_dict()))

    if orphaned or stale:
        logger.warning('history_rows_skipped orphaned=%s stale=%s', orphaned, stale)
    return [grouped[student_id] for student_id in sorted(grouped)]

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session, selectinload

from attendance_desk.core.errors import ValidationError
from attendance_desk.domain.weeks import attended_in_center, check_week_number, normalize_grade, same_text
from attendance_desk.metrics import timed_service
from attendance_desk.models import WEEKS_PER_TERM, Student
from attendance_desk.services.student_service import week_dicts


def _week(weeks: list[dict[str, Any]], week_number: int) -> dict[str, Any] | None:
    index = week_number - 1
    return weeks[index] if 0 <= index < len(weeks) else None


def _attended(weeks: list[dict[str, Any]], week_number: int | None) -> bool:
    if week_number is None:
        return any(week.get('attended') for week in weeks)
    week = _week(weeks, week_number)
    return bool(week and week.get('attended'))


def _flag(weeks: list[dict[str, Any]], week_number: int | None, field: str) -> bool:
    if week_number is None:
        return any(week.get(field) for week in weeks)
    week = _week(weeks, week_number)
    return bool(week and week.get(field))


def _attended_center(weeks: list[dict[str, Any]], week_number: int | None, center: str) -> bool:
    if week_number is None:
        return any(attended_in_center(week, center) for week in weeks)
    return attended_in_center(_week(weeks, week_number), center)


@timed_service('session_stats')
def session_stats(
    db: Session,
    *,
    grade: str | None = None,
    center: str | None = None,
    week: int | None = None,
) -> dict[str, Any]:
    """Session summary for one grade and center, optionally narrowed to one week.

    ``mc`` counts main-center students of the grade who attended in that
    center, ``nmc`` students from other centers who attended there, and
    ``namc`` main-center students who did not attend.
    """
    if week is not None:
        check_week_number(week, WEEKS_PER_TERM)
    wanted_grade = normalize_grade(grade)
    if center is not None and not center.strip():
        raise ValidationError('Center cannot be blank')

    rows = db.query(Student).options(selectinload(Student.weeks)).order_by(Student.id.asc()).all()
    in_grade = [
        (student, week_dicts(student))
        for student in rows
        if not wanted_grade or normalize_grade(student.grade) == wanted_grade
    ]

    attended = sum(1 for _, weeks in in_grade if _attended(weeks, week))
    hw_done = sum(1 for _, weeks in in_grade if _flag(weeks, week, 'hwDone'))
    paid = sum(1 for _, weeks in in_grade if _flag(weeks, week, 'paidSession'))

    center_counts: dict[str, int] = {}
    for _, weeks in in_grade:
        for item in weeks:
            label = item.get('lastAttendanceCenter')
            if not label or (week is not None and item.get('week') != week):
                continue
            center_counts[label] = center_counts.get(label, 0) + 1

    summary: dict[str, Any] = {
        'grade': grade,
        'center': center,
        'week': week,
        'total': len(in_grade),
        'attended': attended,
        'not_attended': len(in_grade) - attended,
        'hw_done': hw_done,
        'hw_not_done': len(in_grade) - hw_done,
        'paid': paid,
        'not_paid': len(in_grade) - paid,
        'center_counts': center_counts,
        'mc': 0,
        'nmc': 0,
        'namc': 0,
        'namc_ids': [],
        'total_attended': 0,
        'main_center_total': 0,
        'mc_percent': 0,
    }
    if not wanted_grade or not center:
        return summary

    main_center = [(s, weeks) for s, weeks in in_grade if same_text(s.main_center, center)]
    other_center = [(s, weeks) for s, weeks in in_grade if s.main_center and not same_text(s.main_center, center)]
    mc = sum(1 for _, weeks in main_center if _attended_center(weeks, week, center))
    nmc = sum(1 for _, weeks in other_center if _attended_center(weeks, week, center))
    namc_ids = [s.id for s, weeks in main_center if not _attended(weeks, week)]

    summary.update(
        {
            'mc': mc,
            'nmc': nmc,
            'namc': len(namc_ids),
            'namc_ids': namc_ids,
            'total_attended': mc + nmc,
            'main_center_total': len(main_center),
            'mc_percent': int(mc * 100 / len(main_center) + 0.5) if main_center else 0,
        }
    )
    return summary

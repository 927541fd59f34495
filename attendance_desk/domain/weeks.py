"""Derived views over a student's weekly records.

Everything here is pure: inputs are plain dicts shaped like
``WeekRecord.to_dict()`` and outputs are new dicts, so pages and services
share one definition of "current week" instead of scanning the list ad hoc.
"""
from __future__ import annotations

import re
from typing import Any, Sequence
from urllib.parse import parse_qs, urlparse

from attendance_desk.core.errors import ValidationError
from attendance_desk.models import WEEKS_PER_TERM


_DATE_RE = re.compile(r'(\d{2})[-/](\d{2})[-/](\d{4})')
_WEEK_LABEL_RE = re.compile(r'week\s*(\d+)', re.IGNORECASE)


def zeroed_week(week: int) -> dict[str, Any]:
    return {
        'week': week,
        'attended': False,
        'lastAttendance': None,
        'lastAttendanceCenter': None,
        'hwDone': False,
        'paidSession': False,
        'quizDegree': None,
        'message_state': False,
    }


def zeroed_weeks(count: int = WEEKS_PER_TERM) -> list[dict[str, Any]]:
    return [zeroed_week(number) for number in range(1, count + 1)]


def check_week_number(week_number: int, week_count: int = WEEKS_PER_TERM) -> int:
    number = int(week_number)
    if number < 1 or number > week_count:
        raise ValidationError('Invalid week number')
    return number


def resolve_week_index(week_count: int, week_number: int | None) -> int:
    # Missing or zero means week 1.
    number = int(week_number) if week_number else 1
    return check_week_number(number, week_count) - 1


def week_at(weeks: Sequence[Any], week_number: int | None) -> Any:
    return weeks[resolve_week_index(len(weeks), week_number)]


def current_week(weeks: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """First attended week, else week 1."""
    for week in weeks:
        if week.get('attended'):
            return week
    if weeks:
        return weeks[0]
    return zeroed_week(1)


def week_label(week_number: int) -> str:
    return f'week {int(week_number):02d}'


def parse_week_label(label: str | int | None) -> int | None:
    if label is None or label == '':
        return None
    if isinstance(label, int):
        return label
    text = str(label).strip()
    if text.isdigit():
        return int(text)
    match = _WEEK_LABEL_RE.search(text)
    return int(match.group(1)) if match else None


def format_last_attendance(week: dict[str, Any]) -> str | None:
    raw = week.get('lastAttendance')
    center = week.get('lastAttendanceCenter')
    if not raw or not center:
        return raw
    match = _DATE_RE.search(raw)
    date_text = f'{match.group(1)}/{match.group(2)}/{match.group(3)}' if match else raw
    return f'{date_text} in {center}'


def attendance_stamp(day, center: str | None) -> str:
    date_text = day.strftime('%d/%m/%Y')
    if center:
        return f'{date_text} in {center}'
    return date_text


def normalize_grade(grade: str | None) -> str:
    return str(grade or '').strip().lower().replace('.', '')


def same_text(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


def attended_in_center(week: dict[str, Any] | None, center: str | None) -> bool:
    if not week or not week.get('attended'):
        return False
    return same_text(week.get('lastAttendanceCenter'), center)


def flatten_student(profile: dict[str, Any], weeks: Sequence[dict[str, Any]]) -> dict[str, Any]:
    week = current_week(weeks)
    return {
        'id': profile['id'],
        'name': profile.get('name'),
        'grade': profile.get('grade'),
        'phone': profile.get('phone'),
        'parents_phone': profile.get('parents_phone'),
        'main_center': profile.get('main_center'),
        'school': profile.get('school') or None,
        'age': profile.get('age'),
        'attended_the_session': bool(week.get('attended')),
        'lastAttendance': format_last_attendance(week),
        'lastAttendanceCenter': week.get('lastAttendanceCenter'),
        'attendanceWeek': week_label(week.get('week') or 1),
        'hwDone': bool(week.get('hwDone')),
        'paidSession': bool(week.get('paidSession')),
        'quizDegree': week.get('quizDegree'),
        'message_state': bool(week.get('message_state')),
        'weeks': [dict(item) for item in weeks],
    }


def extract_student_id(qr_text: str | None) -> int | None:
    """Student id from scanned QR text: a URL carrying ``?id=`` or a bare number."""
    text = str(qr_text or '').strip()
    if not text:
        return None
    parsed = urlparse(text)
    if parsed.scheme and parsed.netloc:
        values = parse_qs(parsed.query).get('id') or []
        candidate = values[0].strip() if values else ''
        if candidate.isdigit():
            return int(candidate)
    if text.isdigit():
        return int(text)
    return None

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from attendance_desk.cache import cache, cache_key
from attendance_desk.core.errors import ValidationError
from attendance_desk.core.router_guard import require_auth_user
from attendance_desk.db import get_db
from attendance_desk.domain.weeks import check_week_number, parse_week_label
from attendance_desk.models import WEEKS_PER_TERM
from attendance_desk.request_context import EndpointLabelRoute
from attendance_desk.schemas import (
    AttendanceToggle,
    CheckInRequest,
    HomeworkUpdate,
    MessageStateUpdate,
    PaymentUpdate,
    QuizUpdate,
    StudentPayload,
)
from attendance_desk.services import history_service, qr_service, stats_service, student_service


router = APIRouter(
    prefix='/api/students',
    tags=['Students'],
    route_class=EndpointLabelRoute,
    dependencies=[Depends(require_auth_user)],
)


def _filter_parts(**filters) -> list[str]:
    # Named parts keep grade=giza and center=giza on different keys.
    return [f'{name}={value if value is not None else ""}' for name, value in filters.items()]


def _week_filter(week: str | None) -> int | None:
    # The dashboards send either a bare number or the "week 03" label.
    number = parse_week_label(week)
    if week not in (None, '') and number is None:
        raise ValidationError('Invalid week number')
    return None if number is None else check_week_number(number, WEEKS_PER_TERM)


@router.get('')
def students_list(
    grade: str | None = Query(default=None),
    center: str | None = Query(default=None),
    q: str | None = Query(default=None),
    bypass_cache: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    key = cache_key('students', *_filter_parts(grade=grade, center=center, q=q))
    return cache.get_or_build(
        key,
        lambda: student_service.list_students(db, grade=grade, center=center, q=q),
        bypass=bypass_cache,
    )


@router.post('')
def students_create(payload: StudentPayload, db: Session = Depends(get_db)):
    student = student_service.create_student(db, payload.model_dump(exclude_unset=True))
    return {'id': student.id}


@router.get('/history')
def students_history(
    grade: str | None = Query(default=None),
    center: str | None = Query(default=None),
    week: str | None = Query(default=None),
    q: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    # Read live on every poll; a cached copy could list an un-attended week.
    week_number = _week_filter(week)
    return history_service.list_history(db, grade=grade, center=center, week=week_number, q=q)


@router.get('/stats')
def students_stats(
    grade: str | None = Query(default=None),
    center: str | None = Query(default=None),
    week: str | None = Query(default=None),
    bypass_cache: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    week_number = _week_filter(week)
    key = cache_key('stats', *_filter_parts(grade=grade, center=center, week=week_number))
    return cache.get_or_build(
        key,
        lambda: stats_service.session_stats(db, grade=grade, center=center, week=week_number),
        bypass=bypass_cache,
    )


@router.post('/check-in')
def students_check_in(payload: CheckInRequest, db: Session = Depends(get_db)):
    return student_service.check_in(
        db,
        payload.qr_text,
        attendance_week=payload.attendanceWeek,
        center=payload.center,
    )


@router.get('/{student_id}')
def students_get(student_id: int, db: Session = Depends(get_db)):
    return student_service.get_student(db, student_id)


@router.put('/{student_id}')
def students_update(student_id: int, payload: StudentPayload, db: Session = Depends(get_db)):
    student_service.update_student(db, student_id, payload.model_dump(exclude_unset=True))
    return {'success': True}


@router.delete('/{student_id}')
def students_delete(student_id: int, db: Session = Depends(get_db)):
    student_service.delete_student(db, student_id)
    return {'success': True}


@router.post('/{student_id}/reset')
def students_reset(student_id: int, db: Session = Depends(get_db)):
    student_service.reset_student(db, student_id)
    return {'success': True, 'message': 'Student data reset successfully'}


@router.post('/{student_id}/attend')
def students_attend(student_id: int, payload: AttendanceToggle, db: Session = Depends(get_db)):
    student_service.toggle_attendance(
        db,
        student_id,
        attended=payload.attended,
        last_attendance=payload.lastAttendance,
        last_attendance_center=payload.lastAttendanceCenter,
        attendance_week=payload.attendanceWeek,
    )
    return {'success': True}


@router.post('/{student_id}/homework')
def students_homework(student_id: int, payload: HomeworkUpdate, db: Session = Depends(get_db)):
    student_service.update_homework(db, student_id, week=payload.week, hw_done=payload.hwDone)
    return {'success': True}


@router.post('/{student_id}/payment')
def students_payment(student_id: int, payload: PaymentUpdate, db: Session = Depends(get_db)):
    student_service.update_payment(db, student_id, week=payload.week, paid_session=payload.paidSession)
    return {'success': True}


@router.post('/{student_id}/quiz')
def students_quiz(student_id: int, payload: QuizUpdate, db: Session = Depends(get_db)):
    student_service.update_quiz_grade(db, student_id, week=payload.week, quiz_degree=payload.quizDegree)
    return {'success': True}


@router.post('/{student_id}/message-state')
def students_message_state(student_id: int, payload: MessageStateUpdate, db: Session = Depends(get_db)):
    student_service.update_message_state(db, student_id, week=payload.week, message_state=payload.message_state)
    return {'success': True}


@router.get('/{student_id}/qr')
def students_qr(student_id: int, db: Session = Depends(get_db)):
    return Response(content=qr_service.render_student_qr(db, student_id), media_type='image/png')

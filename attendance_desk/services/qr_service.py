from __future__ import annotations

from io import BytesIO

import qrcode
from sqlalchemy.orm import Session

from attendance_desk.core.errors import NotFoundError
from attendance_desk.models import Student


def render_student_qr(db: Session, student_id: int) -> bytes:
    """PNG QR code carrying the bare student id, the format the scanner accepts."""
    student = db.query(Student).filter(Student.id == int(student_id)).first()
    if not student:
        raise NotFoundError('Student not found')

    img = qrcode.make(str(student.id))
    buf = BytesIO()
    img.save(buf)
    return buf.getvalue()

from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from attendance_desk.db import Base, SessionLocal, engine
from attendance_desk.models import Student
from attendance_desk.services.student_service import create_student, toggle_attendance


SAMPLE_STUDENTS = [
    {'name': 'Ali Hassan', 'age': 16, 'grade': '1st Secondary', 'school': 'Orman School', 'phone': '01012345671', 'parents_phone': '01112345671', 'main_center': 'Giza'},
    {'name': 'Mona Adel', 'age': 17, 'grade': '2nd Secondary', 'school': 'Nasr Girls', 'phone': '01012345672', 'parents_phone': '01112345672', 'main_center': 'Giza'},
    {'name': 'Omar Samir', 'age': 16, 'grade': '1st Secondary', 'school': 'El Horreya', 'phone': '01012345673', 'parents_phone': '01112345673', 'main_center': 'Dokki'},
]


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    if not db.query(Student).first():
        created = [create_student(db, payload) for payload in SAMPLE_STUDENTS]
        toggle_attendance(db, created[0].id, attended=True, last_attendance_center='Giza', attendance_week=1)
        toggle_attendance(db, created[2].id, attended=True, last_attendance_center='Giza', attendance_week=1)
finally:
    db.close()

print('DB initialized with sample data.')

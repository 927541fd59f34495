from attendance_desk.routers import auth, students

__all__ = [
    'auth',
    'students',
]

import tempfile
import unittest
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from attendance_desk.cache import invalidate_student_views
from attendance_desk.core.errors import ValidationError
from attendance_desk.db import Base
from attendance_desk.models import HistoryRecord, Student, WeekRecord
from attendance_desk.services.stats_service import session_stats
from attendance_desk.services.student_service import create_student, toggle_attendance, update_homework, update_payment


class SessionStatsTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_session_stats.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        self.db = self._session_factory()
        self.db.query(HistoryRecord).delete()
        self.db.query(WeekRecord).delete()
        self.db.query(Student).delete()
        self.db.commit()
        invalidate_student_views()

        self.ali = self._student('Ali', '1st Secondary', 'Giza')
        self.mona = self._student('Mona', '1st Secondary', 'Giza')
        self.omar = self._student('Omar', '1st Secondary', 'Dokki')
        self.sara = self._student('Sara', '2nd Secondary', 'Giza')

        toggle_attendance(self.db, self.ali.id, attended=True, last_attendance_center='Giza', attendance_week=1)
        toggle_attendance(self.db, self.omar.id, attended=True, last_attendance_center='Giza', attendance_week=1)
        toggle_attendance(self.db, self.sara.id, attended=True, last_attendance_center='Giza', attendance_week=1)
        toggle_attendance(self.db, self.mona.id, attended=True, last_attendance_center='Giza', attendance_week=2)
        update_homework(self.db, self.ali.id, week=1, hw_done=True)
        update_payment(self.db, self.omar.id, week=1, paid_session=True)

    def tearDown(self):
        self.db.close()

    def _student(self, name, grade, main_center):
        return create_student(
            self.db,
            {
                'name': name,
                'grade': grade,
                'school': 'X',
                'phone': '01234567891',
                'parents_phone': '01234567892',
                'main_center': main_center,
                'age': 16,
            },
        )

    def test_week_summary_for_grade_and_center(self):
        stats = session_stats(self.db, grade='1st secondary', center='giza', week=1)

        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['attended'], 2)
        self.assertEqual(stats['not_attended'], 1)
        self.assertEqual(stats['hw_done'], 1)
        self.assertEqual(stats['paid'], 1)
        self.assertEqual(stats['center_counts'], {'Giza': 2})
        self.assertEqual(stats['mc'], 1)
        self.assertEqual(stats['nmc'], 1)
        self.assertEqual(stats['namc'], 1)
        self.assertEqual(stats['namc_ids'], [self.mona.id])
        self.assertEqual(stats['total_attended'], 2)
        self.assertEqual(stats['main_center_total'], 2)
        self.assertEqual(stats['mc_percent'], 50)

    def test_without_week_counts_any_attendance(self):
        stats = session_stats(self.db, grade='1st Secondary', center='Giza')

        self.assertEqual(stats['attended'], 3)
        self.assertEqual(stats['mc'], 2)
        self.assertEqual(stats['namc_ids'], [])
        self.assertEqual(stats['mc_percent'], 100)

    def test_center_breakdown_needs_grade_and_center(self):
        stats = session_stats(self.db, week=1)

        self.assertEqual(stats['total'], 4)
        self.assertEqual(stats['attended'], 3)
        self.assertEqual(stats['mc'], 0)
        self.assertEqual(stats['namc_ids'], [])

    def test_invalid_arguments(self):
        with self.assertRaises(ValidationError):
            session_stats(self.db, grade='1st Secondary', center='Giza', week=21)
        with self.assertRaises(ValidationError):
            session_stats(self.db, grade='1st Secondary', center='  ')


if __name__ == '__main__':
    unittest.main()

import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from attendance_desk.cache import invalidate_student_views
from attendance_desk.db import Base, get_db
from attendance_desk.main import app
from attendance_desk.models import Assistant, HistoryRecord, Student, WeekRecord
from attendance_desk.services.auth_service import issue_token


STUDENT = {
    'name': 'Ali',
    'grade': '1st Secondary',
    'school': 'X',
    'phone': '01234567891',
    'parentsPhone': '01234567892',
    'main_center': 'Giza',
    'age': 16,
}


class StudentsApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_students_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.client = TestClient(app)
        token = issue_token(Assistant(id='sara', name='Sara', role='assistant'))
        cls.headers = {'Authorization': f'Bearer {token}'}

    @classmethod
    def tearDownClass(cls):
        cls.client.close()
        app.dependency_overrides.pop(get_db, None)
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            db.query(HistoryRecord).delete()
            db.query(WeekRecord).delete()
            db.query(Student).delete()
            db.commit()
        finally:
            db.close()
        invalidate_student_views()

    def _create(self, **overrides):
        payload = dict(STUDENT)
        payload.update(overrides)
        response = self.client.post('/api/students', json=payload, headers=self.headers)
        self.assertEqual(response.status_code, 200)
        return response.json()['id']

    def test_create_then_get(self):
        student_id = self._create()

        response = self.client.get(f'/api/students/{student_id}', headers=self.headers)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['id'], student_id)
        self.assertFalse(body['attended_the_session'])
        self.assertEqual(body['attendanceWeek'], 'week 01')
        self.assertEqual(body['parents_phone'], '01234567892')
        self.assertEqual(len(body['weeks']), 20)

    def test_create_requires_age_key(self):
        payload = dict(STUDENT)
        payload.pop('age')
        response = self.client.post('/api/students', json=payload, headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'error': 'All fields are required'})

        payload['age'] = None
        self.assertEqual(self.client.post('/api/students', json=payload, headers=self.headers).status_code, 200)

    def test_attend_week_three_shows_in_student_and_history(self):
        student_id = self._create()

        response = self.client.post(
            f'/api/students/{student_id}/attend',
            json={
                'attended': True,
                'lastAttendance': '01/01/2025 in Giza',
                'lastAttendanceCenter': 'Giza',
                'attendanceWeek': 3,
            },
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'success': True})

        body = self.client.get(f'/api/students/{student_id}', headers=self.headers).json()
        self.assertTrue(body['weeks'][2]['attended'])
        self.assertTrue(body['attended_the_session'])
        self.assertEqual(body['attendanceWeek'], 'week 03')
        self.assertEqual(body['lastAttendance'], '01/01/2025 in Giza')

        history = self.client.get('/api/students/history', headers=self.headers).json()
        records = [record for row in history for record in row['historyRecords']]
        self.assertEqual(len(records), 1)
        self.assertEqual((records[0]['studentId'], records[0]['week']), (student_id, 3))

        labelled = self.client.get('/api/students/history', params={'week': 'week 03'}, headers=self.headers).json()
        self.assertEqual([row['id'] for row in labelled], [student_id])
        other_week = self.client.get('/api/students/history', params={'week': '4'}, headers=self.headers).json()
        self.assertEqual(other_week, [])
        bad = self.client.get('/api/students/history', params={'week': 'soon'}, headers=self.headers)
        self.assertEqual(bad.status_code, 400)

    def test_unattend_clears_week_and_history(self):
        student_id = self._create()
        self.client.post(f'/api/students/{student_id}/attend', json={'attended': True, 'lastAttendanceCenter': 'Giza', 'attendanceWeek': 2}, headers=self.headers)
        self.client.post(f'/api/students/{student_id}/homework', json={'hwDone': True, 'week': 2}, headers=self.headers)
        self.client.post(f'/api/students/{student_id}/quiz', json={'quizDegree': '8/10', 'week': 2}, headers=self.headers)

        response = self.client.post(f'/api/students/{student_id}/attend', json={'attended': False, 'attendanceWeek': 2}, headers=self.headers)
        self.assertEqual(response.status_code, 200)

        week = self.client.get(f'/api/students/{student_id}', headers=self.headers).json()['weeks'][1]
        self.assertEqual(
            (week['attended'], week['hwDone'], week['paidSession'], week['quizDegree']),
            (False, False, False, None),
        )
        self.assertEqual(self.client.get('/api/students/history', headers=self.headers).json(), [])

    def test_history_reads_live_weeks(self):
        student_id = self._create()
        self.client.post(f'/api/students/{student_id}/attend', json={'attended': True, 'lastAttendanceCenter': 'Giza', 'attendanceWeek': 1}, headers=self.headers)
        first = self.client.get('/api/students/history', headers=self.headers).json()
        self.assertEqual([row['id'] for row in first], [student_id])

        # A write committed by another process does not touch this process's cache.
        db = self._session_factory()
        try:
            db.query(WeekRecord).filter(WeekRecord.student_id == student_id, WeekRecord.week == 1).update({'attended': False})
            db.commit()
        finally:
            db.close()

        self.assertEqual(self.client.get('/api/students/history', headers=self.headers).json(), [])

    def test_zero_attendance_week_means_week_one(self):
        student_id = self._create()

        response = self.client.post(
            f'/api/students/{student_id}/attend',
            json={'attended': True, 'lastAttendanceCenter': 'Giza', 'attendanceWeek': 0},
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 200)
        body = self.client.get(f'/api/students/{student_id}', headers=self.headers).json()
        self.assertTrue(body['weeks'][0]['attended'])
        self.assertEqual(body['attendanceWeek'], 'week 01')

    def test_week_filters_reject_out_of_range(self):
        self._create()
        for path in ('/api/students/history', '/api/students/stats'):
            for week in ('0', '99', 'week 21'):
                response = self.client.get(path, params={'week': week}, headers=self.headers)
                self.assertEqual(response.status_code, 400, (path, week))
                self.assertEqual(response.json(), {'error': 'Invalid week number'})

    def test_week_updates(self):
        student_id = self._create()
        blocked = self.client.post(f'/api/students/{student_id}/payment', json={'paidSession': True, 'week': 1}, headers=self.headers)
        self.assertEqual(blocked.status_code, 400)

        self.client.post(f'/api/students/{student_id}/attend', json={'attended': True, 'lastAttendanceCenter': 'Giza'}, headers=self.headers)
        for path, payload in (
            ('homework', {'hwDone': True}),
            ('payment', {'paidSession': True}),
            ('quiz', {'quizDegree': '10/10'}),
            ('message-state', {'message_state': True}),
        ):
            response = self.client.post(f'/api/students/{student_id}/{path}', json=payload, headers=self.headers)
            self.assertEqual(response.status_code, 200, path)

        body = self.client.get(f'/api/students/{student_id}', headers=self.headers).json()
        self.assertTrue(body['hwDone'])
        self.assertTrue(body['paidSession'])
        self.assertEqual(body['quizDegree'], '10/10')
        self.assertTrue(body['message_state'])

    def test_invalid_week_and_missing_student(self):
        student_id = self._create()

        bad_week = self.client.post(f'/api/students/{student_id}/attend', json={'attended': True, 'attendanceWeek': 25}, headers=self.headers)
        self.assertEqual(bad_week.status_code, 400)
        self.assertEqual(bad_week.json(), {'error': 'Invalid week number'})

        missing = self.client.get('/api/students/999', headers=self.headers)
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {'error': 'Student not found'})

        bad_body = self.client.post(f'/api/students/{student_id}/attend', json={}, headers=self.headers)
        self.assertEqual(bad_body.status_code, 400)
        self.assertIn('error', bad_body.json())

    def test_update_and_delete(self):
        student_id = self._create()

        empty = self.client.put(f'/api/students/{student_id}', json={'name': ''}, headers=self.headers)
        self.assertEqual(empty.status_code, 400)
        self.assertEqual(empty.json(), {'error': 'No valid fields to update'})

        updated = self.client.put(f'/api/students/{student_id}', json={'school': 'Y', 'parents_phone': '01099999999'}, headers=self.headers)
        self.assertEqual(updated.status_code, 200)
        body = self.client.get(f'/api/students/{student_id}', headers=self.headers).json()
        self.assertEqual((body['school'], body['parents_phone']), ('Y', '01099999999'))

        self.assertEqual(self.client.delete(f'/api/students/{student_id}', headers=self.headers).json(), {'success': True})
        self.assertEqual(self.client.get(f'/api/students/{student_id}', headers=self.headers).status_code, 404)

    def test_reset(self):
        student_id = self._create()
        self.client.post(f'/api/students/{student_id}/attend', json={'attended': True, 'lastAttendanceCenter': 'Giza', 'attendanceWeek': 4}, headers=self.headers)

        response = self.client.post(f'/api/students/{student_id}/reset', headers=self.headers)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['success'])
        body = self.client.get(f'/api/students/{student_id}', headers=self.headers).json()
        self.assertFalse(any(week['attended'] for week in body['weeks']))
        self.assertEqual(self.client.get('/api/students/history', headers=self.headers).json(), [])

    def test_list_filters_and_stats(self):
        ali = self._create()
        self._create(name='Mona', main_center='Dokki')
        self.client.post(f'/api/students/{ali}/attend', json={'attended': True, 'lastAttendanceCenter': 'Giza', 'attendanceWeek': 1}, headers=self.headers)

        listed = self.client.get('/api/students', params={'center': 'dokki'}, headers=self.headers).json()
        self.assertEqual([row['name'] for row in listed], ['Mona'])
        searched = self.client.get('/api/students', params={'q': str(ali)}, headers=self.headers).json()
        self.assertEqual([row['id'] for row in searched], [ali])

        stats = self.client.get(
            '/api/students/stats',
            params={'grade': '1st Secondary', 'center': 'Giza', 'week': 1},
            headers=self.headers,
        ).json()
        self.assertEqual((stats['total'], stats['attended'], stats['mc'], stats['mc_percent']), (2, 1, 1, 100))

    def test_unknown_method(self):
        response = self.client.patch('/api/students', json={}, headers=self.headers)
        self.assertEqual(response.status_code, 405)
        self.assertEqual(response.json(), {'error': 'Method not allowed'})

    def test_health(self):
        self.assertEqual(self.client.get('/health').json(), {'status': 'ok'})


if __name__ == '__main__':
    unittest.main()

import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from libdesk.core.time_provider import APP_ZONEINFO, TimeProvider
from libdesk.db import Base, get_db
from libdesk.models import (
    AdvancePayment,
    AdvancePaymentUsage,
    Branch,
    Expense,
    MembershipHistory,
    PreviousDuePayment,
    Role,
    Schedule,
    Seat,
    SeatAssignment,
    Setting,
    Student,
    User,
)
from libdesk.routers import collections, reports, seats, students
from libdesk.routers.deps import get_time_provider
from libdesk.services.auth_service import create_user, login_password


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


FROZEN_NOW = datetime(2026, 3, 10, 10, 0, tzinfo=APP_ZONEINFO)


class StudentsApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_students_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        app.include_router(students.router)
        app.include_router(seats.router)
        app.include_router(collections.router)
        app.include_router(reports.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_time_provider] = lambda: FixedTimeProvider(FROZEN_NOW)
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls.client.close()
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in (
                AdvancePaymentUsage,
                AdvancePayment,
                PreviousDuePayment,
                MembershipHistory,
                SeatAssignment,
                Student,
                Seat,
                Schedule,
                Expense,
                Setting,
                Branch,
                User,
            ):
                db.query(table).delete()
            db.commit()

            create_user(db, username='desk', password='Password@123', role=Role.STAFF.value)
            self.token = login_password(db, 'desk', 'Password@123')['token']

            branch = Branch(name='Main')
            morning = Schedule(title='Morning', time='06:00-12:00', event_date=date(2026, 1, 1))
            evening = Schedule(title='Evening', time='12:00-18:00', event_date=date(2026, 1, 1))
            db.add_all([branch, morning, evening])
            db.flush()
            seat = Seat(seat_number='A1', branch_id=branch.id)
            db.add(seat)
            db.commit()
            self.branch_id = branch.id
            self.morning_id = morning.id
            self.evening_id = evening.id
            self.seat_id = seat.id
        finally:
            db.close()

    def _headers(self):
        return {'Authorization': f'Bearer {self.token}'}

    def _student_payload(self, **overrides):
        payload = {
            'name': 'Asha',
            'branch_id': self.branch_id,
            'membership_start': '2026-03-01',
            'membership_end': '2026-03-31',
            'phone': '9000000001',
            'total_fee': 1000,
            'cash': 400,
            'online': 200,
            'seat_id': self.seat_id,
            'shift_ids': [self.morning_id],
        }
        payload.update(overrides)
        return payload

    def _create(self, **overrides):
        response = self.client.post('/api/students', json=self._student_payload(**overrides), headers=self._headers())
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def _history_ids(self, student_id):
        db = self._session_factory()
        try:
            rows = (
                db.query(MembershipHistory)
                .filter(MembershipHistory.student_id == student_id)
                .order_by(MembershipHistory.id.asc())
                .all()
            )
            return [row.id for row in rows]
        finally:
            db.close()

    def test_requires_session(self):
        response = self.client.get('/api/students')
        self.assertEqual(response.status_code, 401)

    def test_create_student_derives_fees_and_history(self):
        body = self._create()
        self.assertEqual(body['amount_paid'], 600)
        self.assertEqual(body['due_amount'], 400)
        self.assertEqual(body['status'], 'active')
        self.assertEqual(body['display_status'], 'Active')
        self.assertEqual(body['registration_number'], '1')
        self.assertEqual(body['seat_number'], 'A1')
        self.assertEqual(body['shift_title'], 'Morning')
        self.assertEqual(len(self._history_ids(body['id'])), 1)

        next_number = self.client.get('/api/students/next-registration-number', headers=self._headers())
        self.assertEqual(next_number.json()['registration_number'], '2')

    def test_overpaid_student_rejected(self):
        response = self.client.post(
            '/api/students',
            json=self._student_payload(cash=900, online=200),
            headers=self._headers(),
        )
        self.assertEqual(response.status_code, 400)

    def test_double_booking_rejected_until_seat_freed(self):
        first = self._create()
        clash = self.client.post(
            '/api/students',
            json=self._student_payload(name='Ravi', phone='9000000002'),
            headers=self._headers(),
        )
        self.assertEqual(clash.status_code, 409)

        # Another shift on the same seat is still free.
        options = self.client.get(f'/api/seats/{self.seat_id}/shift-options', headers=self._headers()).json()
        by_id = {row['id']: row for row in options}
        self.assertTrue(by_id[self.morning_id]['disabled'])
        self.assertEqual(by_id[self.morning_id]['label'], 'Morning (Assigned)')
        self.assertFalse(by_id[self.evening_id]['disabled'])

        deactivated = self.client.put(
            f"/api/students/{first['id']}/status",
            json={'is_active': False},
            headers=self._headers(),
        )
        self.assertEqual(deactivated.status_code, 200)
        self.assertEqual(deactivated.json()['display_status'], 'Inactive')

        available = self.client.get(
            '/api/seats/available',
            params={'shift_id': self.morning_id},
            headers=self._headers(),
        ).json()
        self.assertEqual([row['seat_number'] for row in available], ['A1'])

        second = self.client.post(
            '/api/students',
            json=self._student_payload(name='Ravi', phone='9000000002'),
            headers=self._headers(),
        )
        self.assertEqual(second.status_code, 201, second.text)

    def test_editing_student_keeps_own_booking(self):
        student = self._create()
        response = self.client.put(
            f"/api/students/{student['id']}",
            json=self._student_payload(name='Asha K', shift_ids=[self.morning_id, self.evening_id]),
            headers=self._headers(),
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()['name'], 'Asha K')
        self.assertEqual(len(response.json()['assignments']), 2)

    def test_renew_appends_history(self):
        student = self._create()
        response = self.client.post(
            f"/api/students/{student['id']}/renew",
            json=self._student_payload(
                membership_start='2026-04-01',
                membership_end='2026-04-30',
                cash=1000,
                online=0,
                payment_date='2026-03-10',
            ),
            headers=self._headers(),
        )
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body['message'], 'Membership renewed')
        self.assertEqual(body['student']['membership_end'], '2026-04-30')
        self.assertEqual(body['student']['due_amount'], 0)
        self.assertEqual(len(self._history_ids(student['id'])), 2)

    def test_status_lists(self):
        self._create(name='Current', phone='1', membership_end='2026-03-12', seat_id=None, shift_ids=[])
        self._create(name='Lapsed', phone='2', membership_end='2026-03-09', seat_id=None, shift_ids=[])
        self._create(name='Later', phone='3', membership_end='2026-06-30', seat_id=None, shift_ids=[])

        expired = self.client.get('/api/students/expired', headers=self._headers()).json()
        self.assertEqual([row['name'] for row in expired], ['Lapsed'])
        self.assertEqual(expired[0]['display_status'], 'Expired')

        expiring = self.client.get('/api/students/expiring-soon', params={'days': 5}, headers=self._headers()).json()
        self.assertEqual([row['name'] for row in expiring], ['Current'])
        self.assertEqual(expiring[0]['days_remaining'], 2)

        active = self.client.get('/api/students/active', headers=self._headers()).json()
        self.assertEqual(sorted(row['name'] for row in active), ['Current', 'Later'])

        search = self.client.get('/api/students', params={'search': 'laps'}, headers=self._headers()).json()
        self.assertEqual([row['name'] for row in search], ['Lapsed'])

    def test_students_for_shift_paginates(self):
        self._create(name='Asha', phone='1', seat_id=None)
        self._create(name='Bina', phone='2', seat_id=None)
        self._create(name='Chitra', phone='3', seat_id=None)

        response = self.client.get(
            f'/api/students/shift/{self.morning_id}',
            params={'page': 2, 'limit': 2},
            headers=self._headers(),
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['total_count'], 3)
        self.assertEqual([row['name'] for row in body['students']], ['Chitra'])

    def test_pay_due_across_months_is_counted_once(self):
        student = self._create(created_at='2026-02-15T10:00:00')
        history_id = self._history_ids(student['id'])[0]

        too_much = self.client.put(
            f'/api/collections/{history_id}',
            json={'payment_amount': 500, 'payment_method': 'cash'},
            headers=self._headers(),
        )
        self.assertEqual(too_much.status_code, 400)

        paid = self.client.put(
            f'/api/collections/{history_id}',
            json={'payment_amount': 150, 'payment_method': 'cash'},
            headers=self._headers(),
        )
        self.assertEqual(paid.status_code, 200, paid.text)
        collection = paid.json()['collection']
        self.assertEqual(collection['cash'], 550)
        self.assertEqual(collection['due_amount'], 250)
        self.assertEqual(collection['state'], 'partially_paid')

        detail = self.client.get(f"/api/students/{student['id']}", headers=self._headers()).json()
        self.assertEqual(detail['due_amount'], 250)

        february = self.client.get('/api/collections', params={'month': '2026-02'}, headers=self._headers()).json()
        march = self.client.get('/api/collections', params={'month': '2026-03'}, headers=self._headers()).json()
        self.assertEqual(february['totals']['total_collected'], 600)
        self.assertEqual(february['previous_due_paid_adjustments']['total_amount'], 150)
        self.assertEqual(march['totals']['total_collected'], 150)
        self.assertEqual(march['previous_due_paid']['total_cash'], 150)
        self.assertEqual(len(march['previous_due_paid']['items']), 1)

        report = self.client.get('/api/reports/profit-loss', params={'month': '2026-03'}, headers=self._headers()).json()
        self.assertEqual(report['total_collected'], 150)
        self.assertEqual(report['profit_loss'], 150)

    def test_pay_due_rejects_non_finite_amount(self):
        student = self._create()
        history_id = self._history_ids(student['id'])[0]

        for raw in ('NaN', 'Infinity', '-1', '0'):
            response = self.client.put(
                f'/api/collections/{history_id}',
                content=f'{{"payment_amount": {raw}, "payment_method": "cash"}}',
                headers={**self._headers(), 'Content-Type': 'application/json'},
            )
            self.assertEqual(response.status_code, 422, raw)

        detail = self.client.get(f"/api/students/{student['id']}", headers=self._headers()).json()
        self.assertEqual(detail['cash'], 400)
        self.assertEqual(detail['due_amount'], 400)

    def test_day_view_ignores_cross_month_adjustments(self):
        student = self._create(created_at='2026-02-15T10:00:00')
        history_id = self._history_ids(student['id'])[0]
        self.client.put(
            f'/api/collections/{history_id}',
            json={'payment_amount': 150, 'payment_method': 'cash'},
            headers=self._headers(),
        )

        origin_day = self.client.get(
            '/api/collections',
            params={'month': '2026-02', 'date': '2026-02-15'},
            headers=self._headers(),
        ).json()
        self.assertEqual(origin_day['totals']['total_collected'], 750)
        self.assertEqual(origin_day['previous_due_paid_adjustments']['items'], [])

        quiet_day = self.client.get(
            '/api/collections',
            params={'month': '2026-03', 'date': '2026-03-05'},
            headers=self._headers(),
        ).json()
        self.assertEqual(quiet_day['collections'], [])
        self.assertEqual(quiet_day['totals']['total_collected'], 0)
        self.assertEqual(quiet_day['previous_due_paid']['items'], [])

    def test_seat_delete_blocked_while_student_holds_it(self):
        student = self._create()
        blocked = self.client.delete(f'/api/seats/{self.seat_id}', headers=self._headers())
        self.assertEqual(blocked.status_code, 409)

        self.client.put(f"/api/students/{student['id']}/status", json={'is_active': False}, headers=self._headers())
        freed = self.client.delete(f'/api/seats/{self.seat_id}', headers=self._headers())
        self.assertEqual(freed.status_code, 200)

    def test_delete_collection_restores_student_fees(self):
        student = self._create()
        first_history = self._history_ids(student['id'])[0]
        self.client.post(
            f"/api/students/{student['id']}/renew",
            json=self._student_payload(membership_start='2026-04-01', membership_end='2026-04-30', cash=1000, online=0),
            headers=self._headers(),
        )
        latest = self._history_ids(student['id'])[-1]

        response = self.client.delete(f'/api/collections/{latest}', headers=self._headers())
        self.assertEqual(response.status_code, 200)

        detail = self.client.get(f"/api/students/{student['id']}", headers=self._headers()).json()
        self.assertEqual(detail['membership_end'], '2026-03-31')
        self.assertEqual(detail['due_amount'], 400)
        self.assertEqual(self._history_ids(student['id']), [first_history])

    def test_invalid_collection_filters(self):
        bad_month = self.client.get('/api/collections', params={'month': '2026-3'}, headers=self._headers())
        self.assertEqual(bad_month.status_code, 400)
        bad_day = self.client.get('/api/collections', params={'date': '10-03-2026'}, headers=self._headers())
        self.assertEqual(bad_day.status_code, 400)
        missing = self.client.get('/api/reports/profit-loss', headers=self._headers())
        self.assertEqual(missing.status_code, 400)

    def test_delete_student_keeps_collection_records(self):
        student = self._create()
        history_id = self._history_ids(student['id'])[0]
        response = self.client.delete(f"/api/students/{student['id']}", headers=self._headers())
        self.assertEqual(response.status_code, 200)

        missing = self.client.get(f"/api/students/{student['id']}", headers=self._headers())
        self.assertEqual(missing.status_code, 404)

        march = self.client.get('/api/collections', params={'month': '2026-03'}, headers=self._headers()).json()
        self.assertEqual([row['history_id'] for row in march['collections']], [history_id])
        self.assertIsNone(march['collections'][0]['student_id'])


if __name__ == '__main__':
    unittest.main()

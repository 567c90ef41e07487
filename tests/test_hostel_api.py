import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from libdesk.core.time_provider import APP_ZONEINFO, TimeProvider
from libdesk.db import Base, get_db
from libdesk.models import (
    HostelBranch,
    HostelExpense,
    HostelStudent,
    HostelStudentHistory,
    Product,
    Role,
    User,
)
from libdesk.routers import (
    hostel_branches,
    hostel_collections,
    hostel_expenses,
    hostel_reports,
    hostel_students,
    products,
)
from libdesk.routers.deps import get_time_provider
from libdesk.services.auth_service import create_user, login_password


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


class HostelApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_hostel_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        for module in (hostel_branches, hostel_collections, hostel_expenses, hostel_reports, hostel_students, products):
            app.include_router(module.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_time_provider] = lambda: FixedTimeProvider(
            datetime(2026, 3, 10, 10, 0, tzinfo=APP_ZONEINFO)
        )
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls.client.close()
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in (HostelStudentHistory, HostelStudent, HostelExpense, HostelBranch, Product, User):
                db.query(table).delete()
            db.commit()
            create_user(db, username='owner', password='Owner@123', role=Role.ADMIN.value)
            create_user(db, username='desk', password='Desk@123', role=Role.STAFF.value)
            self.headers = {'Authorization': f"Bearer {login_password(db, 'owner', 'Owner@123')['token']}"}
            self.staff_headers = {'Authorization': f"Bearer {login_password(db, 'desk', 'Desk@123')['token']}"}
        finally:
            db.close()
        branch = self.client.post('/api/hostel/branches', json={'name': 'Girls Hostel'}, headers=self.headers)
        self.assertEqual(branch.status_code, 201, branch.text)
        self.branch_id = branch.json()['id']

    def _admit(self, **overrides):
        payload = {
            'branch_id': self.branch_id,
            'name': 'Ravi',
            'religion': 'Hindu',
            'food_preference': 'Veg',
            'gender': 'Male',
            'room_number': '101',
            'stay_start_date': '2026-03-01',
            'stay_end_date': '2026-03-31',
            'total_fee': 5000,
            'cash_paid': 2000,
            'online_paid': 1000,
            'security_money_cash': 500,
            'security_money_online': 500,
            'aadhar_number': '123456789012',
            'phone_number': '9876543210',
        }
        payload.update(overrides)
        return self.client.post('/api/hostel/students', json=payload, headers=self.headers)

    def test_admission_creates_first_stay(self):
        created = self._admit()
        self.assertEqual(created.status_code, 201, created.text)
        body = created.json()
        self.assertEqual(body['student']['security_money'], 1000)
        self.assertEqual(body['history']['due_amount'], 2000)
        self.assertEqual(body['history']['room_number'], '101')
        self.assertEqual(body['history']['created_at'], '2026-03-10T10:00:00')

        listed = self.client.get('/api/hostel/students', headers=self.staff_headers).json()['students']
        self.assertEqual(len(listed), 1)
        self.assertEqual(listed[0]['branch_name'], 'Girls Hostel')
        self.assertEqual(listed[0]['latest_stay']['total_fee'], 5000)

        detail = self.client.get(f"/api/hostel/students/{body['student']['id']}", headers=self.headers).json()
        self.assertEqual(len(detail['history']), 1)
        self.assertEqual(self.client.get('/api/hostel/students/9999', headers=self.headers).status_code, 404)

    def test_admission_validation(self):
        self.assertEqual(self._admit(aadhar_number='1234').status_code, 422)
        self.assertEqual(self._admit(phone_number='98765').status_code, 422)
        self.assertEqual(self._admit(room_number='').status_code, 422)
        self.assertEqual(self._admit(branch_id=9999).status_code, 404)
        reversed_stay = self._admit(stay_start_date='2026-03-31', stay_end_date='2026-03-01')
        self.assertEqual(reversed_stay.status_code, 400)
        self.assertEqual(self.client.get('/api/hostel/students', headers=self.headers).json()['students'], [])

    def test_branch_counts_students_and_blocks_delete(self):
        student_id = self._admit().json()['student']['id']
        branches = self.client.get('/api/hostel/branches', headers=self.headers).json()
        self.assertEqual(branches[0]['student_count'], 1)

        blocked = self.client.delete(f'/api/hostel/branches/{self.branch_id}', headers=self.headers)
        self.assertEqual(blocked.status_code, 409)
        self.assertIn('existing students', blocked.json()['detail'])

        self.assertEqual(self.client.delete(f'/api/hostel/students/{student_id}', headers=self.headers).status_code, 200)
        self.assertEqual(self.client.delete(f'/api/hostel/branches/{self.branch_id}', headers=self.headers).status_code, 200)
        self.assertEqual(self.client.get('/api/hostel/branches', headers=self.headers).json(), [])

    def test_update_recomputes_latest_stay(self):
        student_id = self._admit().json()['student']['id']
        updated = self.client.put(
            f'/api/hostel/students/{student_id}',
            json={'total_fee': 6000, 'room_number': '202', 'security_money_online': 0},
            headers=self.headers,
        )
        self.assertEqual(updated.status_code, 200, updated.text)
        body = updated.json()
        self.assertEqual(body['student']['room_number'], '202')
        self.assertEqual(body['student']['security_money'], 500)
        self.assertEqual(body['student']['name'], 'Ravi')
        stay = body['history'][0]
        self.assertEqual(stay['total_fee'], 6000)
        self.assertEqual(stay['due_amount'], 3000)
        self.assertEqual(stay['room_number'], '202')
        self.assertEqual(stay['security_money_online'], 0)

    def test_renewal_appends_stay_and_clears_expiry(self):
        student_id = self._admit(stay_start_date='2026-02-01', stay_end_date='2026-03-01').json()['student']['id']
        expired = self.client.get('/api/hostel/students/meta/expired', headers=self.headers).json()['expired_students']
        self.assertEqual([row['id'] for row in expired], [student_id])
        self.assertEqual(expired[0]['latest_stay_end_date'], '2026-03-01')

        missing_room = self.client.post(
            f'/api/hostel/students/{student_id}/renew',
            json={'stay_start_date': '2026-03-02', 'stay_end_date': '2026-04-01', 'total_fee': 5000},
            headers=self.headers,
        )
        self.assertEqual(missing_room.status_code, 422)

        renewed = self.client.post(
            f'/api/hostel/students/{student_id}/renew',
            json={
                'stay_start_date': '2026-03-02',
                'stay_end_date': '2026-04-01',
                'total_fee': 5000,
                'cash_paid': 1000,
                'room_number': '305',
            },
            headers=self.headers,
        )
        self.assertEqual(renewed.status_code, 200, renewed.text)
        stay = renewed.json()['history']
        self.assertEqual(stay['due_amount'], 4000)
        self.assertEqual(stay['security_money_cash'], 0)

        self.assertEqual(self.client.get('/api/hostel/students/meta/expired', headers=self.headers).json()['expired_students'], [])
        detail = self.client.get(f'/api/hostel/students/{student_id}', headers=self.headers).json()
        self.assertEqual(detail['student']['room_number'], '305')
        self.assertEqual([row['stay_start_date'] for row in detail['history']], ['2026-03-02', '2026-02-01'])

        # Fee edits land on the renewal, not the first stay.
        self.client.put(f'/api/hostel/students/{student_id}', json={'online_paid': 500}, headers=self.headers)
        detail = self.client.get(f'/api/hostel/students/{student_id}', headers=self.headers).json()
        self.assertEqual(detail['history'][0]['due_amount'], 3500)
        self.assertEqual(detail['history'][1]['due_amount'], 2000)

    def test_collection_payment_settles_due(self):
        history_id = self._admit().json()['history']['id']
        listing = self.client.get('/api/hostel/collections?month=2026-03', headers=self.headers).json()
        self.assertEqual(listing['totals']['total_collected'], 3000)
        self.assertEqual(listing['totals']['total_due'], 2000)
        self.assertEqual(self.client.get('/api/hostel/collections?month=2026-3', headers=self.headers).status_code, 400)

        paid = self.client.put(
            f'/api/hostel/collections/{history_id}',
            json={'payment_amount': 500, 'payment_type': 'cash'},
            headers=self.headers,
        )
        self.assertEqual(paid.status_code, 200, paid.text)
        self.assertEqual(paid.json()['cash_paid'], 2500)
        self.assertEqual(paid.json()['due_amount'], 1500)
        self.assertEqual(paid.json()['state'], 'partially_paid')

        too_much = self.client.put(
            f'/api/hostel/collections/{history_id}',
            json={'payment_amount': 1600, 'payment_type': 'online'},
            headers=self.headers,
        )
        self.assertEqual(too_much.status_code, 400)
        self.assertIn('exceeds', too_much.json()['detail'])
        cheque = self.client.put(
            f'/api/hostel/collections/{history_id}',
            json={'payment_amount': 100, 'payment_type': 'cheque'},
            headers=self.headers,
        )
        self.assertEqual(cheque.status_code, 400)
        not_a_number = self.client.put(
            f'/api/hostel/collections/{history_id}',
            content='{"payment_amount": NaN, "payment_type": "cash"}',
            headers={**self.headers, 'Content-Type': 'application/json'},
        )
        self.assertEqual(not_a_number.status_code, 422)

        settled = self.client.put(
            f'/api/hostel/collections/{history_id}',
            json={'payment_amount': 1500, 'payment_type': 'online'},
            headers=self.headers,
        )
        self.assertEqual(settled.json()['state'], 'paid')
        self.assertEqual(settled.json()['due_amount'], 0)

    def test_deleting_last_stay_clears_room(self):
        body = self._admit().json()
        student_id = body['student']['id']
        history_id = body['history']['id']
        self.assertEqual(self.client.delete(f'/api/hostel/collections/{history_id}', headers=self.headers).status_code, 200)
        self.assertEqual(self.client.delete(f'/api/hostel/collections/{history_id}', headers=self.headers).status_code, 404)
        detail = self.client.get(f'/api/hostel/students/{student_id}', headers=self.headers).json()
        self.assertEqual(detail['history'], [])
        self.assertIsNone(detail['student']['room_number'])

    def test_expense_crud_with_global_label(self):
        created = self.client.post(
            '/api/hostel/expenses',
            json={'title': 'Groceries', 'date': '2026-03-05', 'cash': 400, 'online': 100},
            headers=self.headers,
        )
        self.assertEqual(created.status_code, 201, created.text)
        expense = created.json()
        self.assertEqual(expense['amount'], 500)
        self.assertEqual(expense['branch_name'], 'Global')

        zero = self.client.post(
            '/api/hostel/expenses',
            json={'title': 'Nothing', 'date': '2026-03-05', 'cash': 0, 'online': 0},
            headers=self.headers,
        )
        self.assertEqual(zero.status_code, 400)
        unknown_branch = self.client.post(
            '/api/hostel/expenses',
            json={'title': 'Gas', 'date': '2026-03-05', 'cash': 50, 'branch_id': 9999},
            headers=self.headers,
        )
        self.assertEqual(unknown_branch.status_code, 404)

        moved = self.client.put(
            f"/api/hostel/expenses/{expense['id']}",
            json={'title': 'Groceries', 'date': '2026-03-06', 'cash': 400, 'online': 100, 'branch_id': self.branch_id},
            headers=self.headers,
        )
        self.assertEqual(moved.json()['branch_name'], 'Girls Hostel')
        filtered = self.client.get(f'/api/hostel/expenses?branch_id={self.branch_id}', headers=self.headers).json()
        self.assertEqual(len(filtered), 1)
        self.assertEqual(self.client.delete(f"/api/hostel/expenses/{expense['id']}", headers=self.headers).status_code, 200)
        self.assertEqual(self.client.delete(f"/api/hostel/expenses/{expense['id']}", headers=self.headers).status_code, 404)

    def test_profit_loss_month_and_day(self):
        self._admit()
        self._admit(name='Meena', cash_paid=1500, online_paid=0, created_at='2026-02-20T09:00:00')
        for title, day, cash, online in (('Groceries', '2026-03-05', 400, 100), ('Repairs', '2026-02-10', 999, 0)):
            self.client.post(
                '/api/hostel/expenses',
                json={'title': title, 'date': day, 'cash': cash, 'online': online, 'branch_id': self.branch_id},
                headers=self.headers,
            )

        month = self.client.get('/api/hostel/reports/profit-loss?month=2026-03', headers=self.headers).json()
        self.assertEqual(month['total_collected'], 3000)
        self.assertEqual(month['cash_collected'], 2000)
        self.assertEqual(month['online_collected'], 1000)
        self.assertEqual(month['total_expenses'], 500)
        self.assertEqual(month['profit_loss'], 2500)

        admission_day = self.client.get('/api/hostel/reports/profit-loss?date=2026-03-10', headers=self.headers).json()
        self.assertEqual(admission_day['total_collected'], 3000)
        self.assertEqual(admission_day['total_expenses'], 0)
        spend_day = self.client.get('/api/hostel/reports/profit-loss?date=2026-03-05', headers=self.headers).json()
        self.assertEqual(spend_day['profit_loss'], -500)

        other = self.client.post('/api/hostel/branches', json={'name': 'Boys Hostel'}, headers=self.headers).json()
        empty = self.client.get(
            f"/api/hostel/reports/profit-loss?month=2026-03&branch_id={other['id']}",
            headers=self.headers,
        ).json()
        self.assertEqual(empty['total_collected'], 0)
        self.assertEqual(empty['total_expenses'], 0)
        self.assertEqual(self.client.get('/api/hostel/reports/profit-loss', headers=self.headers).status_code, 400)

    def test_products_are_admin_only(self):
        for name in ('Soap', 'Bucket'):
            self.assertEqual(
                self.client.post('/api/products', json={'name': name}, headers=self.headers).status_code,
                201,
            )
        listed = self.client.get('/api/products', headers=self.headers).json()['products']
        self.assertEqual([row['name'] for row in listed], ['Bucket', 'Soap'])
        self.assertEqual(self.client.get('/api/products', headers=self.staff_headers).status_code, 403)
        self.assertEqual(self.client.post('/api/products', json={'name': ''}, headers=self.headers).status_code, 422)

        renamed = self.client.put(f"/api/products/{listed[0]['id']}", json={'name': 'Mug'}, headers=self.headers)
        self.assertEqual(renamed.json()['name'], 'Mug')
        self.assertEqual(self.client.put('/api/products/9999', json={'name': 'Mug'}, headers=self.headers).status_code, 404)
        self.assertEqual(self.client.delete(f"/api/products/{listed[1]['id']}", headers=self.headers).status_code, 200)
        self.assertEqual(self.client.delete(f"/api/products/{listed[1]['id']}", headers=self.headers).status_code, 404)


if __name__ == '__main__':
    unittest.main()

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
    Role,
    Schedule,
    SeatAssignment,
    Student,
    Transaction,
    User,
)
from libdesk.routers import advance_payments, expenses, reports, schedules, students, transactions
from libdesk.routers.deps import get_time_provider
from libdesk.services import advance_payment_service
from libdesk.services.auth_service import create_user, login_password


class FixedTimeProvider(TimeProvider):
    def __init__(self, frozen_dt: datetime):
        self._frozen_dt = frozen_dt

    def now(self) -> datetime:
        return self._frozen_dt


class LedgerApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_ledger_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        for module in (advance_payments, expenses, reports, schedules, students, transactions):
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
            for table in (
                AdvancePaymentUsage,
                AdvancePayment,
                MembershipHistory,
                SeatAssignment,
                Student,
                Schedule,
                Expense,
                Transaction,
                Branch,
                User,
            ):
                db.query(table).delete()
            db.commit()

            create_user(db, username='owner', password='Owner@123', role=Role.ADMIN.value)
            self.headers = {'Authorization': f"Bearer {login_password(db, 'owner', 'Owner@123')['token']}"}

            branch = Branch(name='Main')
            db.add(branch)
            db.flush()
            student = Student(
                name='Asha',
                branch_id=branch.id,
                membership_start=date(2026, 3, 1),
                membership_end=date(2026, 3, 31),
                total_fee=1000,
                cash=1000,
                amount_paid=1000,
            )
            db.add(student)
            db.flush()
            db.add(
                MembershipHistory(
                    student_id=student.id,
                    name='Asha',
                    branch_id=branch.id,
                    membership_start=date(2026, 3, 1),
                    membership_end=date(2026, 3, 31),
                    total_fee=1000,
                    cash=700,
                    online=300,
                    amount_paid=1000,
                    changed_at=datetime(2026, 3, 10, 9, 0),
                    payment_date=date(2026, 3, 10),
                )
            )
            db.commit()
            self.branch_id = branch.id
            self.student_id = student.id
        finally:
            db.close()

    def test_expense_crud_and_global_label(self):
        created = self.client.post(
            '/api/expenses',
            json={'title': 'Electricity', 'date': '2026-03-05', 'cash': 200, 'online': 50},
            headers=self.headers,
        )
        self.assertEqual(created.status_code, 201, created.text)
        body = created.json()
        self.assertEqual(body['amount'], 250)
        self.assertEqual(body['branch_name'], 'Global')

        updated = self.client.put(
            f"/api/expenses/{body['id']}",
            json={'title': 'Electricity', 'date': '2026-03-05', 'cash': 300, 'branch_id': self.branch_id},
            headers=self.headers,
        )
        self.assertEqual(updated.json()['amount'], 300)
        self.assertEqual(updated.json()['branch_name'], 'Main')

        zero = self.client.post('/api/expenses', json={'title': 'Nothing', 'date': '2026-03-05'}, headers=self.headers)
        self.assertEqual(zero.status_code, 400)

        listed = self.client.get('/api/expenses', params={'month': '2026-03'}, headers=self.headers).json()
        self.assertEqual(len(listed), 1)
        self.assertEqual(self.client.delete(f"/api/expenses/{body['id']}", headers=self.headers).status_code, 200)
        self.assertEqual(self.client.delete(f"/api/expenses/{body['id']}", headers=self.headers).status_code, 404)

    def test_profit_loss_month_and_day(self):
        self.client.post(
            '/api/expenses',
            json={'title': 'Rent', 'date': '2026-03-10', 'cash': 400, 'branch_id': self.branch_id},
            headers=self.headers,
        )
        self.client.post(
            '/api/expenses',
            json={'title': 'Water', 'date': '2026-03-02', 'online': 100, 'branch_id': self.branch_id},
            headers=self.headers,
        )

        month = self.client.get('/api/reports/profit-loss', params={'month': '2026-03'}, headers=self.headers).json()
        self.assertEqual(month['total_collected'], 1000)
        self.assertEqual(month['cash_collected'], 700)
        self.assertEqual(month['total_expenses'], 500)
        self.assertEqual(month['profit_loss'], 500)

        day = self.client.get('/api/reports/profit-loss', params={'date': '2026-03-10'}, headers=self.headers).json()
        self.assertEqual(day['date'], '2026-03-10')
        self.assertEqual(day['total_expenses'], 400)
        self.assertEqual(day['profit_loss'], 600)

        dashboard = self.client.get('/api/students/stats/dashboard', headers=self.headers).json()
        self.assertEqual(dashboard['month'], '2026-03')
        self.assertEqual(dashboard['total_collection'], 1000)
        self.assertEqual(dashboard['total_expense'], 500)

    def test_transactions_crud(self):
        created = self.client.post(
            '/api/transactions',
            json={'name': 'Owner deposit', 'cash_receipt': 5000},
            headers=self.headers,
        )
        self.assertEqual(created.status_code, 201)
        transaction_id = created.json()['id']
        updated = self.client.put(
            f'/api/transactions/{transaction_id}',
            json={'online_expense': 120},
            headers=self.headers,
        )
        self.assertEqual(updated.json()['online_expense'], 120)
        self.assertEqual(updated.json()['cash_receipt'], 5000)
        self.assertEqual(len(self.client.get('/api/transactions', headers=self.headers).json()), 1)
        self.assertEqual(self.client.delete(f'/api/transactions/{transaction_id}', headers=self.headers).status_code, 200)

    def test_advance_payment_usage(self):
        created = self.client.post(
            '/api/advance-payments',
            json={'student_id': self.student_id, 'amount': 800, 'payment_method': 'online'},
            headers=self.headers,
        )
        self.assertEqual(created.status_code, 201, created.text)
        advance = created.json()['advance_payment']
        self.assertEqual(advance['payment_date'], '2026-03-10')
        self.assertEqual(advance['branch_id'], self.branch_id)
        self.assertEqual(advance['remaining_amount'], 800)

        too_much = self.client.post(
            f"/api/advance-payments/{advance['id']}/use",
            json={'amount_to_use': 900},
            headers=self.headers,
        )
        self.assertEqual(too_much.status_code, 400)
        self.assertIn('Available: 800', too_much.json()['detail'])

        used = self.client.post(
            f"/api/advance-payments/{advance['id']}/use",
            json={'amount_to_use': 300, 'notes': 'April renewal'},
            headers=self.headers,
        )
        self.assertEqual(used.json()['advance_payment']['remaining_amount'], 500)

        shrink = self.client.put(f"/api/advance-payments/{advance['id']}", json={'amount': 200}, headers=self.headers)
        self.assertEqual(shrink.status_code, 400)

        rest = self.client.post(
            f"/api/advance-payments/{advance['id']}/use",
            json={'amount_to_use': 500},
            headers=self.headers,
        )
        self.assertEqual(rest.json()['advance_payment']['status'], 'fully_used')

        summary = self.client.get(f'/api/advance-payments/student/{self.student_id}', headers=self.headers).json()
        self.assertEqual(summary['total_available'], 0)
        usage = self.client.get(f"/api/advance-payments/{advance['id']}/usage", headers=self.headers).json()
        self.assertEqual(len(usage), 2)

        closed = self.client.post(
            f"/api/advance-payments/{advance['id']}/use",
            json={'amount_to_use': 1},
            headers=self.headers,
        )
        self.assertEqual(closed.status_code, 404)

    def test_advance_amounts_must_be_finite(self):
        json_headers = {**self.headers, 'Content-Type': 'application/json'}
        for raw in ('NaN', 'Infinity', '-5', '0'):
            rejected = self.client.post(
                '/api/advance-payments',
                content=f'{{"student_id": {self.student_id}, "amount": {raw}, "payment_method": "cash"}}',
                headers=json_headers,
            )
            self.assertEqual(rejected.status_code, 422, raw)

        advance = self.client.post(
            '/api/advance-payments',
            json={'student_id': self.student_id, 'amount': 400, 'payment_method': 'cash'},
            headers=self.headers,
        ).json()['advance_payment']
        bad_use = self.client.post(
            f"/api/advance-payments/{advance['id']}/use",
            content='{"amount_to_use": NaN}',
            headers=json_headers,
        )
        self.assertEqual(bad_use.status_code, 422)
        bad_update = self.client.put(
            f"/api/advance-payments/{advance['id']}",
            content='{"amount": NaN}',
            headers=json_headers,
        )
        self.assertEqual(bad_update.status_code, 422)
        self.assertEqual(
            self.client.get(f'/api/advance-payments/student/{self.student_id}', headers=self.headers).json()['total_available'],
            400,
        )

        db = self._session_factory()
        try:
            for amount in (float('nan'), float('inf')):
                with self.assertRaisesRegex(ValueError, 'positive number'):
                    advance_payment_service.create_advance_payment(
                        db, student_id=self.student_id, amount=amount, payment_method='cash'
                    )
                with self.assertRaisesRegex(ValueError, 'positive number'):
                    advance_payment_service.use_advance_payment(db, advance['id'], amount_to_use=amount)
        finally:
            db.close()

    def test_schedule_crud_with_counts(self):
        created = self.client.post(
            '/api/schedules',
            json={'title': 'Night', 'time': '18:00-23:00', 'event_date': '2026-03-01'},
            headers=self.headers,
        )
        self.assertEqual(created.status_code, 201, created.text)
        schedule_id = created.json()['id']

        counts = self.client.get('/api/schedules/with-students', headers=self.headers).json()
        self.assertEqual(counts[0]['student_count'], 0)

        updated = self.client.put(f'/api/schedules/{schedule_id}', json={'title': 'Late night'}, headers=self.headers)
        self.assertEqual(updated.json()['title'], 'Late night')
        self.assertEqual(updated.json()['time'], '18:00-23:00')

        removed = self.client.delete(f'/api/schedules/{schedule_id}', headers=self.headers)
        self.assertEqual(removed.json()['id'], schedule_id)
        self.assertEqual(self.client.get(f'/api/schedules/{schedule_id}', headers=self.headers).status_code, 404)


if __name__ == '__main__':
    unittest.main()

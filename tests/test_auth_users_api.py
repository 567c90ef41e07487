import tempfile
import unittest
from datetime import date
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from freezegun import freeze_time
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from libdesk.db import Base, get_db
from libdesk.models import Branch, Expense, Role, Seat, Setting, Student, User
from libdesk.routers import auth, branches, settings, users
from libdesk.services import auth_service
from libdesk.services.auth_service import (
    clear_session_token,
    create_user,
    ensure_default_admin,
    login_password,
    validate_session_token,
)


class AuthUsersApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_auth_users_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        app.include_router(auth.router)
        app.include_router(users.router)
        app.include_router(branches.router)
        app.include_router(settings.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls.client.close()
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        self.client.cookies.clear()
        db = self._session_factory()
        try:
            db.query(Student).delete()
            db.query(Expense).delete()
            db.query(Seat).delete()
            db.query(Branch).delete()
            db.query(Setting).delete()
            db.query(User).delete()
            db.commit()
            admin = create_user(db, username='owner', password='Owner@123', role=Role.ADMIN.value)
            staff = create_user(db, username='desk', password='Desk@123', role=Role.STAFF.value)
            self.admin_id = admin.id
            self.staff_id = staff.id
            self.admin_token = login_password(db, 'owner', 'Owner@123')['token']
            self.staff_token = login_password(db, 'desk', 'Desk@123')['token']
        finally:
            db.close()

    @staticmethod
    def _bearer(token):
        return {'Authorization': f'Bearer {token}'}

    def test_login_sets_cookie_and_status(self):
        login = self.client.post('/api/auth/login', json={'username': 'desk', 'password': 'Desk@123'})
        self.assertEqual(login.status_code, 200)
        body = login.json()
        self.assertEqual(body['user']['role'], 'staff')
        self.assertTrue(body['token'])
        self.assertIn('auth_session', login.cookies)

        status = self.client.get('/api/auth/status')
        self.assertTrue(status.json()['is_authenticated'])
        self.assertEqual(status.json()['user']['username'], 'desk')

        logout = self.client.get('/api/auth/logout')
        self.assertEqual(logout.status_code, 200)
        after = self.client.get('/api/auth/status', headers=self._bearer(body['token']))
        self.assertFalse(after.json()['is_authenticated'])

    def test_login_rejects_bad_password(self):
        response = self.client.post('/api/auth/login', json={'username': 'desk', 'password': 'wrong'})
        self.assertEqual(response.status_code, 401)

    def test_tampered_token_rejected(self):
        response = self.client.get('/api/users/profile', headers=self._bearer(self.staff_token + 'x'))
        self.assertEqual(response.status_code, 401)

    def test_staff_cannot_manage_users_or_settings(self):
        self.assertEqual(self.client.get('/api/users', headers=self._bearer(self.staff_token)).status_code, 403)
        self.assertEqual(self.client.get('/api/settings', headers=self._bearer(self.staff_token)).status_code, 403)
        created = self.client.post('/api/branches', json={'name': 'North'}, headers=self._bearer(self.staff_token))
        self.assertEqual(created.status_code, 403)
        listed = self.client.get('/api/branches', headers=self._bearer(self.staff_token))
        self.assertEqual(listed.status_code, 200)

    def test_admin_creates_and_deletes_users(self):
        created = self.client.post(
            '/api/users',
            json={'username': 'night', 'password': 'Night@123', 'role': 'staff'},
            headers=self._bearer(self.admin_token),
        )
        self.assertEqual(created.status_code, 201)
        duplicate = self.client.post(
            '/api/users',
            json={'username': 'night', 'password': 'Night@123', 'role': 'staff'},
            headers=self._bearer(self.admin_token),
        )
        self.assertEqual(duplicate.status_code, 400)

        removed = self.client.delete(f"/api/users/{created.json()['id']}", headers=self._bearer(self.admin_token))
        self.assertEqual(removed.status_code, 200)
        own = self.client.delete(f'/api/users/{self.admin_id}', headers=self._bearer(self.admin_token))
        self.assertEqual(own.status_code, 400)

    def test_profile_password_change(self):
        wrong = self.client.put(
            '/api/users/profile',
            json={'current_password': 'nope', 'new_password': 'Desk@456'},
            headers=self._bearer(self.staff_token),
        )
        self.assertEqual(wrong.status_code, 400)

        changed = self.client.put(
            '/api/users/profile',
            json={'full_name': 'Front Desk', 'current_password': 'Desk@123', 'new_password': 'Desk@456'},
            headers=self._bearer(self.staff_token),
        )
        self.assertEqual(changed.status_code, 200)
        self.assertEqual(changed.json()['full_name'], 'Front Desk')
        login = self.client.post('/api/auth/login', json={'username': 'desk', 'password': 'Desk@456'})
        self.assertEqual(login.status_code, 200)

    def test_branch_with_students_cannot_be_deleted(self):
        created = self.client.post('/api/branches', json={'name': 'North'}, headers=self._bearer(self.admin_token))
        self.assertEqual(created.status_code, 201)
        branch_id = created.json()['id']
        db = self._session_factory()
        try:
            db.add(
                Student(
                    name='Asha',
                    branch_id=branch_id,
                    membership_start=date(2026, 3, 1),
                    membership_end=date(2026, 3, 31),
                )
            )
            db.commit()
        finally:
            db.close()
        response = self.client.delete(f'/api/branches/{branch_id}', headers=self._bearer(self.admin_token))
        self.assertEqual(response.status_code, 409)

    def test_deleting_branch_removes_seats_and_keeps_expenses_as_global(self):
        created = self.client.post('/api/branches', json={'name': 'East'}, headers=self._bearer(self.admin_token))
        branch_id = created.json()['id']
        db = self._session_factory()
        try:
            db.add(Seat(seat_number='1', branch_id=branch_id))
            db.add(Expense(title='Rent', amount=500, cash=500, date=date(2026, 3, 1), branch_id=branch_id))
            db.commit()
        finally:
            db.close()

        response = self.client.delete(f'/api/branches/{branch_id}', headers=self._bearer(self.admin_token))
        self.assertEqual(response.status_code, 200)

        db = self._session_factory()
        try:
            self.assertEqual(db.query(Seat).count(), 0)
            self.assertIsNone(db.query(Expense).one().branch_id)
        finally:
            db.close()

    def test_settings_round_trip(self):
        initial = self.client.get('/api/settings', headers=self._bearer(self.admin_token)).json()
        self.assertEqual(initial['registration_number_start'], 1)
        self.assertFalse(initial['reminder_webhook_configured'])

        updated = self.client.put(
            '/api/settings',
            json={'registration_number_start': 500, 'days_before_expiration': 3},
            headers=self._bearer(self.admin_token),
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()['registration_number_start'], 500)
        self.assertEqual(updated.json()['days_before_expiration'], 3)

        invalid = self.client.put(
            '/api/settings',
            json={'days_before_expiration': 90},
            headers=self._bearer(self.admin_token),
        )
        self.assertEqual(invalid.status_code, 422)

    def test_session_token_expires(self):
        db = self._session_factory()
        try:
            with freeze_time('2026-03-10 10:00:00'):
                token = login_password(db, 'desk', 'Desk@123')['token']
                self.assertIsNotNone(validate_session_token(token))
            with freeze_time('2026-03-11 11:00:00'):
                self.assertIsNone(validate_session_token(token))
        finally:
            db.close()

    def test_revoked_tokens_dropped_once_expired(self):
        db = self._session_factory()
        try:
            with freeze_time('2026-03-10 10:00:00'):
                first = login_password(db, 'desk', 'Desk@123')['token']
                clear_session_token(first)
                self.assertIsNone(validate_session_token(first))
                self.assertIn(first, auth_service._REVOKED_TOKENS)
            with freeze_time('2026-03-11 11:00:00'):
                second = login_password(db, 'desk', 'Desk@123')['token']
                clear_session_token(second)
                self.assertNotIn(first, auth_service._REVOKED_TOKENS)
                self.assertIn(second, auth_service._REVOKED_TOKENS)
                clear_session_token(first)
                self.assertNotIn(first, auth_service._REVOKED_TOKENS)
        finally:
            db.close()

    def test_default_admin_only_seeded_once(self):
        db = self._session_factory()
        try:
            self.assertIsNone(ensure_default_admin(db))
            db.query(User).delete()
            db.commit()
            self.assertIsNotNone(ensure_default_admin(db))
            self.assertEqual(db.query(User).filter(User.role == Role.ADMIN.value).count(), 1)
        finally:
            db.close()


if __name__ == '__main__':
    unittest.main()

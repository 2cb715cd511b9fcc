"""
Unit Tests for Authentication API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker
from sqlalchemy import select

from grantsportal.models import ActivityAction, ActivityLog, UserRole
from grantsportal.services import activity_log
from grantsportal.services.settings_service import get_settings

from conftest import TEST_PASSWORD, headers_for

fake = Faker()


def registration(**overrides) -> dict:
    data = {
        'username': fake.unique.user_name(),
        'email': fake.unique.email(),
        'password': 'securePassword123!',
        'first_name': fake.first_name(),
        'last_name': fake.last_name(),
        'institution': 'IIT Mandi',
    }
    data.update(overrides)
    return data


class TestUserRegistration:
    """Test user registration endpoint"""

    async def test_register_success(self, client: AsyncClient, db_session):
        """Test successful user registration"""
        user_data = registration(role='PI')

        response = await client.post('/api/auth/register', json=user_data)

        assert response.status_code == 201
        data = response.json()
        assert data['message'] == 'User registered successfully'
        assert data['user']['email'] == user_data['email']
        assert data['user']['role'] == 'PI'
        assert 'hashed_password' not in data['user']

        logs = (await db_session.execute(select(ActivityLog))).scalars().all()
        assert [log.action for log in logs] == [ActivityAction.CREATE_USER]

    async def test_register_duplicate_email(self, client: AsyncClient, public_user):
        response = await client.post('/api/auth/register', json=registration(email=public_user.email))

        assert response.status_code == 400
        assert 'already exists' in response.json()['message']

    async def test_register_admin_role_rejected(self, client: AsyncClient):
        response = await client.post('/api/auth/register', json=registration(role='Admin'))

        assert response.status_code == 400
        assert response.json()['message'] == 'Validation failed'

    async def test_register_missing_fields(self, client: AsyncClient):
        response = await client.post('/api/auth/register', json={'email': fake.email()})

        assert response.status_code == 400
        assert response.json()['errors']

    async def test_register_when_disabled(self, client: AsyncClient, db_session):
        portal_settings = await get_settings(db_session)
        portal_settings.user_registration = False
        await db_session.commit()

        response = await client.post('/api/auth/register', json=registration())

        assert response.status_code == 403

    async def test_register_survives_activity_log_failure(self, client: AsyncClient, monkeypatch):
        """Test that a failing audit write never blocks registration"""
        def broken_entry(*args, **kwargs):
            raise RuntimeError('activity log store is down')

        monkeypatch.setattr(activity_log, 'build_entry', broken_entry)

        response = await client.post('/api/auth/register', json=registration())

        assert response.status_code == 201


class TestUserLogin:
    """Test user login endpoint"""

    async def test_login_success(self, client: AsyncClient, pi_user):
        response = await client.post('/api/auth/login', json={'email': pi_user.email, 'password': TEST_PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data['access_token']
        assert data['refresh_token']
        assert data['token_type'] == 'bearer'
        assert data['user']['id'] == pi_user.id

    async def test_login_with_username(self, client: AsyncClient, pi_user):
        response = await client.post('/api/auth/login', json={'email': pi_user.username, 'password': TEST_PASSWORD})

        assert response.status_code == 200

    async def test_login_wrong_password(self, client: AsyncClient, pi_user):
        response = await client.post('/api/auth/login', json={'email': pi_user.email, 'password': 'wrong-password'})

        assert response.status_code == 401
        assert response.json()['message'] == 'Invalid credentials'

    async def test_login_unknown_account(self, client: AsyncClient):
        response = await client.post('/api/auth/login', json={'email': fake.email(), 'password': TEST_PASSWORD})

        assert response.status_code == 401

    async def test_login_inactive_account(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.PI, is_active=False)

        response = await client.post('/api/auth/login', json={'email': user.email, 'password': TEST_PASSWORD})

        assert response.status_code == 401


class TestTokens:
    """Test refresh, logout and the current user"""

    async def login(self, client: AsyncClient, user) -> dict:
        response = await client.post('/api/auth/login', json={'email': user.email, 'password': TEST_PASSWORD})
        return response.json()

    async def test_me(self, client: AsyncClient, pi_user, pi_headers):
        response = await client.get('/api/auth/me', headers=pi_headers)

        assert response.status_code == 200
        assert response.json()['email'] == pi_user.email

    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get('/api/auth/me')

        assert response.status_code == 401

    async def test_me_with_invalid_token(self, client: AsyncClient):
        response = await client.get('/api/auth/me', headers={'Authorization': 'Bearer invalid'})

        assert response.status_code == 403

    async def test_refresh_rotates_token(self, client: AsyncClient, pi_user):
        tokens = await self.login(client, pi_user)

        response = await client.post('/api/auth/refresh-token', json={'refresh_token': tokens['refresh_token']})

        assert response.status_code == 200
        rotated = response.json()
        assert rotated['refresh_token'] != tokens['refresh_token']

        reused = await client.post('/api/auth/refresh-token', json={'refresh_token': tokens['refresh_token']})
        assert reused.status_code == 403

    async def test_access_token_cannot_refresh(self, client: AsyncClient, pi_user):
        tokens = await self.login(client, pi_user)

        response = await client.post('/api/auth/refresh-token', json={'refresh_token': tokens['access_token']})

        assert response.status_code == 403

    async def test_logout_clears_refresh_token(self, client: AsyncClient, pi_user):
        tokens = await self.login(client, pi_user)

        response = await client.post('/api/auth/logout', headers=headers_for(pi_user))

        assert response.status_code == 200
        refreshed = await client.post('/api/auth/refresh-token', json={'refresh_token': tokens['refresh_token']})
        assert refreshed.status_code == 403

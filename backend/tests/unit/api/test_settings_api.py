"""
Unit Tests for system settings endpoints
"""
import aiosmtplib
from httpx import AsyncClient

from grantsportal.services.email_service import EmailService


SMTP_REQUEST = {
    'smtp_host': 'smtp.example.com',
    'smtp_port': 587,
    'smtp_user': 'mailer',
    'smtp_password': 'mailer-password',
}


class TestSettingsEndpoints:
    """Test reading and changing portal settings"""

    async def test_defaults_created_on_first_read(self, client: AsyncClient, admin_headers):
        response = await client.get('/api/settings', headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body['user_registration'] is True
        assert 'smtp_password' not in body

    async def test_admin_only(self, client: AsyncClient, validator_headers):
        response = await client.get('/api/settings', headers=validator_headers)

        assert response.status_code == 403

    async def test_partial_update(self, client: AsyncClient, admin_headers, admin_user):
        response = await client.put(
            '/api/settings', json={'site_name': 'ANRF Grants', 'session_timeout': 60}, headers=admin_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body['site_name'] == 'ANRF Grants'
        assert body['session_timeout'] == 60
        assert body['last_updated_by'] == admin_user.id

    async def test_out_of_range_rejected(self, client: AsyncClient, admin_headers):
        response = await client.put('/api/settings', json={'max_login_attempts': 50}, headers=admin_headers)

        assert response.status_code == 400

    async def test_reset(self, client: AsyncClient, admin_headers):
        await client.put('/api/settings', json={'site_name': 'Changed'}, headers=admin_headers)

        response = await client.post('/api/settings/reset', headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['site_name'] != 'Changed'

    async def test_export_is_attachment(self, client: AsyncClient, admin_headers, admin_user):
        response = await client.get('/api/settings/export', headers=admin_headers)

        assert response.status_code == 200
        assert response.headers['content-disposition'].startswith('attachment; filename=settings_')
        body = response.json()
        assert body['exported_by'] == admin_user.email
        assert 'smtp_password' not in body['settings']

    async def test_registration_toggle_applies(self, client: AsyncClient, admin_headers):
        await client.put('/api/settings', json={'user_registration': False}, headers=admin_headers)

        response = await client.post('/api/auth/register', json={
            'username': 'latecomer',
            'email': 'late@example.com',
            'password': 'secret123',
            'first_name': 'Late',
            'last_name': 'Comer',
            'institution': 'NIT Trichy',
        })

        assert response.status_code == 403


class TestEmailCheck:
    """Test the SMTP test-email endpoint"""

    async def test_sends_to_current_admin(self, client: AsyncClient, admin_headers, admin_user, monkeypatch):
        sent = []

        async def fake_send(self, recipient):
            sent.append((self.smtp_host, recipient))

        monkeypatch.setattr(EmailService, 'send_test_email', fake_send)

        response = await client.post('/api/settings/test-email', json=SMTP_REQUEST, headers=admin_headers)

        assert response.status_code == 200
        assert sent == [('smtp.example.com', admin_user.email)]

    async def test_smtp_failure_reported(self, client: AsyncClient, admin_headers, monkeypatch):
        async def refused(self, recipient):
            raise aiosmtplib.SMTPException('Connection refused')

        monkeypatch.setattr(EmailService, 'send_test_email', refused)

        response = await client.post('/api/settings/test-email', json=SMTP_REQUEST, headers=admin_headers)

        assert response.status_code == 400
        assert 'Connection refused' in response.json()['message']

    async def test_missing_smtp_fields(self, client: AsyncClient, admin_headers):
        response = await client.post(
            '/api/settings/test-email', json={'smtp_host': 'smtp.example.com'}, headers=admin_headers
        )

        assert response.status_code == 400

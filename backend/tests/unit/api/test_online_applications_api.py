"""
Unit Tests for online application endpoints
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from grantsportal.models import ActivityAction, ActivityLog


def application_form(**overrides) -> dict:
    data = {
        'applicant_name': 'Meera Iyer',
        'email': 'meera@example.com',
        'phone': '9876543210',
        'organization': 'IISc Bengaluru',
        'designation': 'Assistant Professor',
        'scheme': 'Core Research Grant (CRG)',
        'discipline': 'Quantum Technologies',
        'project_title': 'Photonic qubit sources',
        'project_description': 'Integrated single photon sources on silicon nitride',
        'duration': '36',
        'budget': '4500000',
        'co_investigators': 'R. Rao',
        'expected_outcomes': 'Two journal papers and a prototype',
    }
    data.update(overrides)
    return data


async def submit(client: AsyncClient, **overrides) -> str:
    response = await client.post('/api/online-applications', data=application_form(**overrides))
    assert response.status_code == 201, response.text
    return response.json()['application_id']


class TestSubmission:
    """Test the public application form"""

    async def test_anonymous_submission(self, client: AsyncClient, db_session):
        response = await client.post('/api/online-applications', data=application_form())

        assert response.status_code == 201
        body = response.json()
        assert body['message'] == 'Application submitted successfully'
        assert body['application_id']

        logs = (await db_session.execute(select(ActivityLog))).scalars().all()
        assert [log.action for log in logs] == [ActivityAction.SUBMIT_APPLICATION]
        assert logs[0].user_id is None

    async def test_missing_fields_rejected(self, client: AsyncClient):
        response = await client.post('/api/online-applications', data=application_form(phone=''))

        assert response.status_code == 400
        assert response.json()['message'] == 'All required fields must be provided'

    async def test_non_numeric_budget_rejected(self, client: AsyncClient):
        response = await client.post('/api/online-applications', data=application_form(budget='a lot'))

        assert response.status_code == 400

    async def test_supporting_document_stored(self, client: AsyncClient, admin_headers):
        response = await client.post(
            '/api/online-applications',
            data=application_form(),
            files={'supporting_documents': ('proposal.pdf', b'%PDF-1.4 proposal', 'application/pdf')},
        )
        assert response.status_code == 201
        application_id = response.json()['application_id']

        download = await client.get(
            f'/api/online-applications/{application_id}/download/supportingDocuments', headers=admin_headers
        )

        assert download.status_code == 200
        assert download.content == b'%PDF-1.4 proposal'

    async def test_disallowed_document_type(self, client: AsyncClient):
        response = await client.post(
            '/api/online-applications',
            data=application_form(),
            files={'supporting_documents': ('run.sh', b'echo hi', 'application/x-sh')},
        )

        assert response.status_code == 400


class TestApplicationWindow:
    """Test opening and closing the application window"""

    async def test_open_by_default(self, client: AsyncClient):
        response = await client.get('/api/online-applications/settings')

        assert response.status_code == 200
        assert response.json()['is_open'] is True

    async def test_closed_window_rejects_submissions(self, client: AsyncClient, admin_headers):
        closed = await client.put(
            '/api/online-applications/settings',
            json={'is_open': False, 'message': 'The 2024 call has closed'},
            headers=admin_headers,
        )
        assert closed.status_code == 200
        assert closed.json()['is_open'] is False

        response = await client.post('/api/online-applications', data=application_form())

        assert response.status_code == 400
        assert response.json()['message'] == 'The 2024 call has closed'

    async def test_past_close_date_closes_window(self, client: AsyncClient, admin_headers):
        response = await client.put(
            '/api/online-applications/settings',
            json={'open_date': '2020-01-01T00:00:00', 'close_date': '2020-02-01T00:00:00', 'auto_close': True},
            headers=admin_headers,
        )

        assert response.json()['is_open'] is False

    async def test_close_before_open_rejected(self, client: AsyncClient, admin_headers):
        response = await client.put(
            '/api/online-applications/settings',
            json={'open_date': '2025-02-01T00:00:00', 'close_date': '2025-01-01T00:00:00'},
            headers=admin_headers,
        )

        assert response.status_code == 400

    async def test_only_admin_updates_window(self, client: AsyncClient, validator_headers):
        response = await client.put(
            '/api/online-applications/settings', json={'is_open': False}, headers=validator_headers
        )

        assert response.status_code == 403


class TestReviewQueue:
    """Test listing and reviewing submitted applications"""

    async def test_staff_list_applications(self, client: AsyncClient, validator_headers):
        await submit(client)
        await submit(client, email='second@example.com')

        response = await client.get('/api/online-applications?status=all', headers=validator_headers)

        assert response.status_code == 200
        body = response.json()
        assert body['total'] == 2
        assert len(body['applications']) == 2

    async def test_pi_cannot_list(self, client: AsyncClient, pi_headers):
        response = await client.get('/api/online-applications', headers=pi_headers)

        assert response.status_code == 403

    async def test_invalid_status_filter(self, client: AsyncClient, admin_headers):
        response = await client.get('/api/online-applications?status=lost', headers=admin_headers)

        assert response.status_code == 400

    async def test_status_update(self, client: AsyncClient, admin_headers, admin_user):
        application_id = await submit(client)

        response = await client.put(
            f'/api/online-applications/{application_id}/status',
            json={'status': 'approved', 'comments': 'Strong proposal'},
            headers=admin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'approved'
        assert body['comments'] == 'Strong proposal'
        assert body['reviewed_by'] == admin_user.id

        filtered = await client.get('/api/online-applications?status=approved', headers=admin_headers)
        assert filtered.json()['total'] == 1

    async def test_bulk_update(self, client: AsyncClient, admin_headers):
        first = await submit(client)
        second = await submit(client, email='second@example.com')

        response = await client.put(
            '/api/online-applications/bulk-update',
            json={'application_ids': [first, second, 'not-a-uuid'], 'status': 'rejected'},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()['message'] == '2 applications updated successfully'

        detail = await client.get(f'/api/online-applications/{first}', headers=admin_headers)
        assert detail.json()['status'] == 'rejected'

    async def test_stats(self, client: AsyncClient, admin_headers):
        application_id = await submit(client)
        await submit(client, email='second@example.com')
        await client.put(
            f'/api/online-applications/{application_id}/status', json={'status': 'approved'}, headers=admin_headers
        )

        response = await client.get('/api/online-applications/stats', headers=admin_headers)

        body = response.json()
        assert body['total'] == 2
        assert body['by_status'] == {'pending': 1, 'approved': 1, 'rejected': 0}
        assert len(body['recent']) == 2

    async def test_csv_export(self, client: AsyncClient, admin_headers):
        await submit(client)

        response = await client.post('/api/online-applications/export', headers=admin_headers)

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/csv')
        lines = response.text.strip().splitlines()
        assert lines[0].startswith('Name,Email,Organization')
        assert 'Photonic qubit sources' in lines[1]

    async def test_delete(self, client: AsyncClient, admin_headers):
        application_id = await submit(client)

        response = await client.delete(f'/api/online-applications/{application_id}', headers=admin_headers)
        assert response.status_code == 200

        missing = await client.get(f'/api/online-applications/{application_id}', headers=admin_headers)
        assert missing.status_code == 404

    @pytest.mark.parametrize('document_type', ['supporting_documents', 'cover_letter'])
    async def test_download_without_document(self, client: AsyncClient, admin_headers, document_type):
        application_id = await submit(client)

        response = await client.get(
            f'/api/online-applications/{application_id}/download/{document_type}', headers=admin_headers
        )

        assert response.status_code == 404

"""
Unit Tests for public and analytics endpoints
"""
from datetime import datetime

from httpx import AsyncClient


async def seed_projects(client: AsyncClient, headers: dict, project_payload) -> list:
    payloads = [
        project_payload(budget={'sanction_year': 2023, 'total_amount': 1000000}),
        project_payload(
            discipline='Quantum Technologies',
            scheme='Core Research Grant (CRG)',
            budget={'sanction_year': 2024, 'total_amount': 3000000},
            validation_status='Completed',
            manpower_sanctioned=[{'manpower_type': 'JRF', 'number': 2}, {'manpower_type': 'RA', 'number': 1}],
            publications=[{'name': 'Entangled sources', 'status': 'Published', 'publication_detail': 'PRL 2024'}],
        ),
        project_payload(budget={'sanction_year': 2024, 'total_amount': 500000}, validation_status='Rejected'),
    ]
    projects = []
    for payload in payloads:
        response = await client.post('/api/projects', json=payload, headers=headers)
        assert response.status_code == 201, response.text
        projects.append(response.json()['project'])
    return projects


class TestHealthAndRouting:
    """Test service-level routes"""

    async def test_health(self, client: AsyncClient):
        response = await client.get('/api/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'OK'

    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get('/api/does-not-exist')

        assert response.status_code == 404
        assert response.json() == {'message': 'Route not found'}

    async def test_security_headers(self, client: AsyncClient):
        response = await client.get('/api/health')

        assert response.headers['x-content-type-options'] == 'nosniff'


class TestPublicStats:
    """Test unauthenticated homepage aggregates"""

    async def test_project_stats(self, client: AsyncClient, admin_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)

        response = await client.get('/api/public/project-stats')

        assert response.status_code == 200
        body = response.json()
        assert body['total_projects'] == 3
        assert body['by_status'] == {'Ongoing': 1, 'Completed': 1, 'Rejected': 1, 'Pending': 0}
        disciplines = {row['key']: row['project_count'] for row in body['by_discipline']}
        assert disciplines == {'Generative AI': 2, 'Quantum Technologies': 1}

    async def test_funding_stats(self, client: AsyncClient, admin_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)

        response = await client.get('/api/public/funding-stats')

        body = response.json()
        assert body['year'] == datetime.utcnow().year
        assert body['ongoing_projects']['total'] == 1
        assert body['proposals_received']['total'] == 3
        assert body['proposals_supported']['total'] == 2
        assert body['project_output']['manpower'] == 3
        assert body['total_funding'] == 4500000

    async def test_funding_stats_other_year(self, client: AsyncClient, admin_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)

        response = await client.get('/api/public/funding-stats?year=2001')

        assert response.json()['proposals_received']['total'] == 0

    async def test_recent_projects_hide_rejected(self, client: AsyncClient, admin_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)

        response = await client.get('/api/public/recent-projects?limit=10')

        projects = response.json()['projects']
        assert len(projects) == 2
        assert all('title' in project and 'file_number' in project for project in projects)

    async def test_platform_overview(self, client: AsyncClient, admin_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)

        body = (await client.get('/api/public/platform-overview')).json()

        assert body['total_projects'] == 3
        assert body['total_users'] == 1
        assert body['total_funding'] == 4500000

    async def test_project_publications(self, client: AsyncClient, admin_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)

        everything = await client.get('/api/public/publications')
        searched = await client.get('/api/public/publications?search=entangled')
        other_status = await client.get('/api/public/publications?status=Communicated')

        body = everything.json()
        assert body['total'] == 1
        assert body['publications'][0]['project_discipline'] == 'Quantum Technologies'
        assert searched.json()['total'] == 1
        assert other_status.json()['total'] == 0


class TestAnalytics:
    """Test the analytics dashboard"""

    async def test_funding_stats_are_public(self, client: AsyncClient, admin_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)

        response = await client.get('/api/analytics/funding-stats')

        assert response.status_code == 200
        body = response.json()
        programs = {row['key']: row['total_funding'] for row in body['funding_by_program']}
        assert programs == {'Start-up Research Grant (SRG)': 1500000, 'Core Research Grant (CRG)': 3000000}
        assert {row['year'] for row in body['funding_trends']} == {2023, 2024}

    async def test_dashboard_for_staff(self, client: AsyncClient, admin_headers, validator_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)

        response = await client.get('/api/analytics/dashboard', headers=validator_headers)

        assert response.status_code == 200
        overview = response.json()['overview']
        assert overview['total_projects'] == 3
        assert overview['ongoing_projects'] == 1
        assert overview['completed_projects'] == 1
        assert len(response.json()['recent_projects']) == 3

    async def test_dashboard_scoped_for_pi(self, client: AsyncClient, admin_headers, pi_headers, project_payload):
        await seed_projects(client, admin_headers, project_payload)
        await client.post('/api/projects', json=project_payload(), headers=pi_headers)

        response = await client.get('/api/analytics/dashboard', headers=pi_headers)

        body = response.json()
        assert body['overview']['total_projects'] == 1
        assert body['overview']['total_funding'] == 1500000
        assert len(body['recent_projects']) == 1

    async def test_dashboard_requires_login(self, client: AsyncClient):
        response = await client.get('/api/analytics/dashboard')

        assert response.status_code == 401

    async def test_dashboard_forbidden_for_public_role(self, client: AsyncClient, public_headers):
        response = await client.get('/api/analytics/dashboard', headers=public_headers)

        assert response.status_code == 403

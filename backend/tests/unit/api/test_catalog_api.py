"""
Unit Tests for equipment, publication and outcome endpoints
"""
import pytest
from httpx import AsyncClient


def equipment_payload(**overrides) -> dict:
    data = {
        'name': 'Atomic Force Microscope',
        'type': 'Microscopy',
        'category': 'Characterization',
        'specifications': {'model': 'NX10', 'manufacturer': 'Park Systems', 'cost': 9500000},
        'location': {'institution': 'IIT Mandi', 'state': 'Himachal Pradesh'},
        'availability': {'status': 'Available', 'access_type': 'Open Access'},
    }
    data.update(overrides)
    return data


def publication_payload(**overrides) -> dict:
    data = {
        'title': 'Graph neural networks for traffic forecasting',
        'authors': [{'name': 'A. Sharma', 'is_corresponding': True}],
        'publication_type': 'Journal Article',
        'publication_date': '2024-03-01T00:00:00',
        'journal': {'name': 'IEEE T-ITS', 'volume': '25'},
        'keywords': ['gnn', 'traffic'],
    }
    data.update(overrides)
    return data


class TestEquipment:
    """Test the equipment inventory"""

    async def test_admin_creates_equipment(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/equipment', json=equipment_payload(), headers=admin_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['specifications']['manufacturer'] == 'Park Systems'
        assert data['location']['state'] == 'Himachal Pradesh'
        assert data['availability']['access_type'] == 'Open Access'

    async def test_pi_cannot_create(self, client: AsyncClient, pi_headers):
        response = await client.post('/api/equipment', json=equipment_payload(), headers=pi_headers)

        assert response.status_code == 403

    async def test_public_listing_and_filters(self, client: AsyncClient, admin_headers):
        await client.post('/api/equipment', json=equipment_payload(), headers=admin_headers)
        await client.post(
            '/api/equipment',
            json=equipment_payload(name='Laser Cutter', category='Fabrication', availability={'status': 'In Use'}),
            headers=admin_headers,
        )

        everything = await client.get('/api/equipment')
        available = await client.get('/api/equipment?availability=Available')
        searched = await client.get('/api/equipment?search=laser')

        assert everything.json()['total'] == 2
        assert [e['name'] for e in available.json()['equipment']] == ['Atomic Force Microscope']
        assert [e['name'] for e in searched.json()['equipment']] == ['Laser Cutter']

    async def test_partial_update_keeps_other_specifications(self, client: AsyncClient, admin_headers):
        created = (await client.post('/api/equipment', json=equipment_payload(), headers=admin_headers)).json()

        response = await client.put(
            f"/api/equipment/{created['id']}", json={'specifications': {'cost': 100}}, headers=admin_headers
        )

        specifications = response.json()['specifications']
        assert specifications['cost'] == 100
        assert specifications['model'] == 'NX10'

    async def test_delete(self, client: AsyncClient, admin_headers):
        created = (await client.post('/api/equipment', json=equipment_payload(), headers=admin_headers)).json()

        response = await client.delete(f"/api/equipment/{created['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert (await client.get(f"/api/equipment/{created['id']}")).status_code == 404


class TestPublications:
    """Test publications and their ownership rules"""

    async def test_any_user_creates(self, client: AsyncClient, public_headers, public_user):
        response = await client.post('/api/publications', json=publication_payload(), headers=public_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['year'] == 2024
        assert data['created_by'] == public_user.id

    async def test_anonymous_cannot_create(self, client: AsyncClient):
        response = await client.post('/api/publications', json=publication_payload())

        assert response.status_code == 401

    async def test_public_listing(self, client: AsyncClient, pi_headers):
        await client.post('/api/publications', json=publication_payload(), headers=pi_headers)

        response = await client.get('/api/publications?year=2024')

        assert response.json()['total'] == 1
        assert response.json()['publications'][0]['publication_type'] == 'Journal Article'

    async def test_other_user_cannot_edit(self, client: AsyncClient, pi_headers, other_pi_headers):
        created = (await client.post('/api/publications', json=publication_payload(), headers=pi_headers)).json()

        update = await client.put(f"/api/publications/{created['id']}", json={'title': 'Mine'}, headers=other_pi_headers)
        delete = await client.delete(f"/api/publications/{created['id']}", headers=other_pi_headers)

        assert update.status_code == 403
        assert update.json()['message'] == 'Access denied'
        assert delete.status_code == 403

    async def test_owner_and_admin_can_edit(self, client: AsyncClient, pi_headers, admin_headers):
        created = (await client.post('/api/publications', json=publication_payload(), headers=pi_headers)).json()

        by_owner = await client.put(
            f"/api/publications/{created['id']}", json={'citation_count': 12}, headers=pi_headers
        )
        by_admin = await client.delete(f"/api/publications/{created['id']}", headers=admin_headers)

        assert by_owner.json()['citation_count'] == 12
        assert by_admin.status_code == 200


class TestOutcomes:
    """Test project outcomes"""

    async def project_id(self, client: AsyncClient, headers: dict, project_payload) -> str:
        response = await client.post('/api/projects', json=project_payload(), headers=headers)
        return response.json()['project']['id']

    async def test_create_outcome(self, client: AsyncClient, pi_headers, project_payload):
        project_id = await self.project_id(client, pi_headers, project_payload)

        response = await client.post('/api/outcomes', json={
            'project_id': project_id,
            'type': 'Patent',
            'title': 'Low cost landslide sensor',
            'achievement_date': '2024-08-15T00:00:00',
        }, headers=pi_headers)

        assert response.status_code == 201
        assert response.json()['type'] == 'Patent'
        listing = await client.get(f'/api/outcomes?project_id={project_id}')
        assert listing.json()['total'] == 1

    async def test_unknown_project(self, client: AsyncClient, pi_headers):
        response = await client.post('/api/outcomes', json={
            'project_id': '00000000-0000-0000-0000-000000000000',
            'type': 'Award',
            'title': 'Best paper',
        }, headers=pi_headers)

        assert response.status_code == 404

    async def test_other_user_cannot_delete(self, client: AsyncClient, pi_headers, other_pi_headers, project_payload):
        project_id = await self.project_id(client, pi_headers, project_payload)
        created = (await client.post('/api/outcomes', json={
            'project_id': project_id, 'type': 'Award', 'title': 'Best paper',
        }, headers=pi_headers)).json()

        response = await client.delete(f"/api/outcomes/{created['id']}", headers=other_pi_headers)

        assert response.status_code == 403

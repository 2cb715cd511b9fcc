"""
Unit Tests for project file endpoints
"""
from httpx import AsyncClient

PDF = ('sanction-letter.pdf', b'%PDF-1.4 sanction letter', 'application/pdf')


async def create_project(client: AsyncClient, headers: dict, payload: dict) -> str:
    response = await client.post('/api/projects', json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()['project']['id']


async def upload(client: AsyncClient, headers: dict, project_id: str, *files) -> dict:
    response = await client.post(
        f'/api/files/projects/{project_id}/upload',
        files=[('files', item) for item in files],
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestProjectAttachments:
    """Test uploading, listing, downloading and deleting attachments"""

    async def test_upload_and_list(self, client: AsyncClient, pi_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())

        body = await upload(client, pi_headers, project_id, PDF, ('notes.txt', b'notes', 'text/plain'))

        assert body['message'] == 'Files uploaded successfully'
        assert [f['original_name'] for f in body['files']] == ['sanction-letter.pdf', 'notes.txt']
        assert body['files'][0]['filename'].startswith('files-')
        assert body['files'][0]['filename'].endswith('.pdf')

        listing = await client.get(f'/api/files/projects/{project_id}', headers=pi_headers)
        assert len(listing.json()['attachments']) == 2
        assert listing.json()['patent_documents'] == []

    async def test_download(self, client: AsyncClient, pi_headers, validator_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())
        stored = (await upload(client, pi_headers, project_id, PDF))['files'][0]

        response = await client.get(
            f"/api/files/projects/{project_id}/download/{stored['filename']}", headers=validator_headers
        )

        assert response.status_code == 200
        assert response.content == b'%PDF-1.4 sanction letter'
        assert 'sanction-letter.pdf' in response.headers['content-disposition']

    async def test_delete(self, client: AsyncClient, pi_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())
        stored = (await upload(client, pi_headers, project_id, PDF))['files'][0]

        response = await client.delete(f"/api/files/projects/{project_id}/{stored['filename']}", headers=pi_headers)
        assert response.status_code == 200

        listing = await client.get(f'/api/files/projects/{project_id}', headers=pi_headers)
        assert listing.json()['attachments'] == []
        missing = await client.get(
            f"/api/files/projects/{project_id}/download/{stored['filename']}", headers=pi_headers
        )
        assert missing.status_code == 404

    async def test_too_many_files(self, client: AsyncClient, pi_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())

        response = await client.post(
            f'/api/files/projects/{project_id}/upload',
            files=[('files', (f'part{i}.txt', b'x', 'text/plain')) for i in range(6)],
            headers=pi_headers,
        )

        assert response.status_code == 400

    async def test_invalid_type_stores_nothing(self, client: AsyncClient, pi_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())

        response = await client.post(
            f'/api/files/projects/{project_id}/upload',
            files=[('files', PDF), ('files', ('tool.exe', b'MZ', 'application/x-msdownload'))],
            headers=pi_headers,
        )

        assert response.status_code == 400
        listing = await client.get(f'/api/files/projects/{project_id}', headers=pi_headers)
        assert listing.json()['attachments'] == []

    async def test_other_pi_cannot_see_files(self, client: AsyncClient, pi_headers, other_pi_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())

        response = await client.get(f'/api/files/projects/{project_id}', headers=other_pi_headers)

        assert response.status_code == 404

    async def test_validator_cannot_upload(self, client: AsyncClient, pi_headers, validator_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())

        response = await client.post(
            f'/api/files/projects/{project_id}/upload', files=[('files', PDF)], headers=validator_headers
        )

        assert response.status_code == 403


class TestPatentDocuments:
    """Test patent document handling"""

    async def test_upload_records_patent(self, client: AsyncClient, pi_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())

        response = await client.post(
            f'/api/files/projects/{project_id}/patent/upload',
            files={'patent_document': ('patent.pdf', b'%PDF patent', 'application/pdf')},
            data={'patent_detail': 'Indian Patent Application 202411000123'},
            headers=pi_headers,
        )

        assert response.status_code == 200
        stored = response.json()['file']
        assert stored['filename'].startswith('patent-')

        project = (await client.get(f'/api/projects/{project_id}', headers=pi_headers)).json()
        assert project['patents'][0]['patent_detail'] == 'Indian Patent Application 202411000123'
        assert project['patents'][0]['patent_document']['filename'] == stored['filename']

        download = await client.get(
            f"/api/files/projects/{project_id}/patent/{stored['filename']}/download", headers=pi_headers
        )
        assert download.content == b'%PDF patent'

    async def test_delete_removes_patent_entry(self, client: AsyncClient, pi_headers, project_payload):
        project_id = await create_project(client, pi_headers, project_payload())
        stored = (await client.post(
            f'/api/files/projects/{project_id}/patent/upload',
            files={'patent_document': ('patent.pdf', b'%PDF patent', 'application/pdf')},
            headers=pi_headers,
        )).json()['file']

        response = await client.delete(
            f"/api/files/projects/{project_id}/patent/{stored['filename']}", headers=pi_headers
        )

        assert response.status_code == 200
        listing = await client.get(f'/api/files/projects/{project_id}', headers=pi_headers)
        assert listing.json()['patent_documents'] == []
        project = (await client.get(f'/api/projects/{project_id}', headers=pi_headers)).json()
        assert project['patents'] == []

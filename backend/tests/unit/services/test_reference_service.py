"""
Unit Tests for the lookup table service
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.core.exceptions import ConflictError, ResourceInUseError, ResourceNotFoundError
from grantsportal.core.types import LifecycleState
from grantsportal.models import Project, UserRole
from grantsportal.services.reference_service import (
    DEFAULT_DISCIPLINES,
    DEFAULT_SCHEMES,
    discipline_service,
    manpower_type_service,
    scheme_service,
)


class TestReferenceCrud:
    """Test create, lookup and update"""

    async def test_create_and_get(self, db_session: AsyncSession):
        scheme = await scheme_service.create(db_session, {"name": "Core Research Grant", "description": ""}, None)
        await db_session.commit()

        fetched = await scheme_service.get(db_session, scheme.id)

        assert fetched.name == "Core Research Grant"
        assert fetched.state == LifecycleState.ACTIVE

    async def test_names_unique_ignoring_case(self, db_session: AsyncSession):
        await scheme_service.create(db_session, {"name": "Core Research Grant", "description": ""}, None)

        with pytest.raises(ConflictError):
            await scheme_service.create(db_session, {"name": "core research grant", "description": ""}, None)

    async def test_get_unknown_id(self, db_session: AsyncSession):
        with pytest.raises(ResourceNotFoundError):
            await scheme_service.get(db_session, "not-a-uuid")

    async def test_update_reports_changed_fields(self, db_session: AsyncSession):
        item = await discipline_service.create(db_session, {"name": "Robotics", "description": "old"}, None)

        changes = await discipline_service.update(db_session, item, {"name": "Robotics", "description": "new"})

        assert changes == {"description": "new"}

    async def test_rename_to_existing_name_rejected(self, db_session: AsyncSession):
        await discipline_service.create(db_session, {"name": "Robotics", "description": ""}, None)
        other = await discipline_service.create(db_session, {"name": "Optics", "description": ""}, None)

        with pytest.raises(ConflictError):
            await discipline_service.update(db_session, other, {"name": "ROBOTICS"})

    async def test_list_hides_disabled_by_default(self, db_session: AsyncSession):
        active = await manpower_type_service.create(db_session, {"name": "JRF", "description": ""}, None)
        retired = await manpower_type_service.create(db_session, {"name": "SRF", "description": ""}, None)
        await manpower_type_service.disable(db_session, retired)

        assert [item.name for item in await manpower_type_service.list(db_session)] == [active.name]
        assert len(await manpower_type_service.list(db_session, state=None)) == 2


class TestReferenceDeletion:
    """Test that referenced lookups cannot be removed"""

    async def test_disable_unreferenced_scheme(self, db_session: AsyncSession):
        scheme = await scheme_service.create(db_session, {"name": "Unused", "description": ""}, None)

        await scheme_service.disable(db_session, scheme)

        assert scheme.state == LifecycleState.DISABLED

    async def test_disable_referenced_scheme_refused(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        scheme = await scheme_service.create(db_session, {"name": "In Use", "description": ""}, None)
        db_session.add(Project(file_number="SRG/2024/0001", scheme="In Use", created_by=owner.id))
        await db_session.commit()

        with pytest.raises(ResourceInUseError) as exc_info:
            await scheme_service.disable(db_session, scheme)

        assert exc_info.value.details["usage_count"] == 1
        assert scheme.state == LifecycleState.ACTIVE

    async def test_purge_referenced_discipline_refused(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        discipline = await discipline_service.create(db_session, {"name": "Road Safety", "description": ""}, None)
        db_session.add(Project(file_number="SRG/2024/0002", discipline="Road Safety", created_by=owner.id))
        await db_session.commit()

        with pytest.raises(ResourceInUseError):
            await discipline_service.purge(db_session, discipline)

    async def test_disable_through_update_refused(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        scheme = await scheme_service.create(db_session, {"name": "Busy", "description": ""}, None)
        db_session.add(Project(file_number="SRG/2024/0003", scheme="Busy", created_by=owner.id))
        await db_session.commit()

        with pytest.raises(ResourceInUseError):
            await scheme_service.update(db_session, scheme, {"state": LifecycleState.DISABLED})

        assert scheme.state == LifecycleState.ACTIVE

    async def test_rename_updates_referencing_projects(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        discipline = await discipline_service.create(db_session, {"name": "Old AI", "description": ""}, None)
        project = Project(file_number="SRG/2024/0004", discipline="Old AI", created_by=owner.id)
        db_session.add(project)
        await db_session.commit()

        await discipline_service.update(db_session, discipline, {"name": "Applied AI"})
        await db_session.commit()

        assert project.discipline == "Applied AI"
        assert await discipline_service.usage_count(db_session, "Applied AI") == 1
        with pytest.raises(ResourceInUseError):
            await discipline_service.disable(db_session, discipline)

    async def test_manpower_types_have_no_usage_check(self, db_session: AsyncSession):
        assert await manpower_type_service.usage_count(db_session, "JRF") == 0


class TestInitializeDefaults:
    """Test seeding the default lookup rows"""

    async def test_creates_all_defaults(self, db_session: AsyncSession):
        created, skipped = await scheme_service.initialize_defaults(db_session, None)

        assert len(created) == len(DEFAULT_SCHEMES)
        assert skipped == []

    async def test_second_run_skips_existing(self, db_session: AsyncSession):
        await discipline_service.create(db_session, {"name": "generative ai", "description": ""}, None)

        created, skipped = await discipline_service.initialize_defaults(db_session, None)

        assert skipped == ["Generative AI"]
        assert len(created) == len(DEFAULT_DISCIPLINES) - 1

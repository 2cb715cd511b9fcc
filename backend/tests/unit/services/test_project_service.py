"""
Unit Tests for project file numbers and equipment sync
"""
import pytest
from datetime import datetime
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.models import Equipment, Project, UserRole
from grantsportal.services.equipment_sync import EquipmentSync, sync_project_equipment
from grantsportal.services.project_service import (
    format_file_number,
    generate_file_number,
    legacy_investigator,
)


async def add_project(db: AsyncSession, owner_id: str, **fields) -> Project:
    project = Project(created_by=owner_id, **fields)
    db.add(project)
    await db.commit()
    await db.refresh(project)
    return project


class TestFileNumbers:
    """Test SRG/<year>/<seq> generation"""

    def test_format_is_zero_padded(self):
        assert format_file_number(2024, 7) == "SRG/2024/0007"

    async def test_first_number_of_year(self, db_session: AsyncSession):
        assert await generate_file_number(db_session, 2024) == "SRG/2024/0001"

    async def test_defaults_to_current_year(self, db_session: AsyncSession):
        year = datetime.utcnow().year

        assert await generate_file_number(db_session) == f"SRG/{year}/0001"

    async def test_sequence_counts_projects_of_that_year(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        await add_project(db_session, owner.id, file_number="X-1", budget_sanction_year=2023)
        await add_project(db_session, owner.id, file_number="X-2", budget_sanction_year=2023)
        await add_project(db_session, owner.id, file_number="X-3", budget_sanction_year=2022)

        assert await generate_file_number(db_session, 2023) == "SRG/2023/0003"

    async def test_skips_numbers_already_taken(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        await add_project(db_session, owner.id, file_number="SRG/2021/0002", budget_sanction_year=2021)

        # One project in 2021 -> candidate 0002 is taken, so 0003
        assert await generate_file_number(db_session, 2021) == "SRG/2021/0003"

    def test_legacy_investigator_mirrors_first_entry(self):
        assert legacy_investigator([{"name": "A"}, {"name": "B"}]) == {"name": "A"}
        assert legacy_investigator([]) == {}


class TestEquipmentSync:
    """Test mirroring sanctioned equipment into the inventory"""

    async def sanctioned_project(self, db: AsyncSession, owner_id: str, file_number: str) -> Project:
        return await add_project(
            db, owner_id,
            file_number=file_number,
            title="Spectroscopy lab",
            budget_sanction_year=2024,
            principal_investigators=[{"name": "Dr. Rao", "institute_name": "IISc", "email": "rao@example.com"}],
            equipment_sanctioned=[
                {"generic_name": "Spectrometer", "make": "Bruker", "model": "X1", "price_inr": 1200000},
                {"generic_name": "Centrifuge", "make": None, "model": ""},
            ],
        )

    async def equipment_count(self, db: AsyncSession) -> int:
        return await db.scalar(select(func.count(Equipment.id)))

    async def test_creates_inventory_rows(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        project = await self.sanctioned_project(db_session, owner.id, "SRG/2024/0001")

        handled = await sync_project_equipment(db_session, project, owner.id)
        await db_session.commit()

        assert handled == 2
        spectrometer = (await db_session.execute(
            select(Equipment).where(Equipment.name == "Spectrometer")
        )).scalar_one()
        assert spectrometer.manufacturer == "Bruker"
        assert spectrometer.cost == 1200000
        assert spectrometer.institution == "IISc"
        assert spectrometer.associated_projects == [project.id]

    async def test_missing_model_and_make_stored_as_none(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        project = await self.sanctioned_project(db_session, owner.id, "SRG/2024/0001")

        await sync_project_equipment(db_session, project, owner.id)
        await db_session.commit()

        centrifuge = (await db_session.execute(
            select(Equipment).where(Equipment.name == "Centrifuge")
        )).scalar_one()
        assert centrifuge.model is None
        assert centrifuge.manufacturer is None

    async def test_resync_is_idempotent(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        project = await self.sanctioned_project(db_session, owner.id, "SRG/2024/0001")

        await sync_project_equipment(db_session, project, owner.id)
        await db_session.commit()
        await sync_project_equipment(db_session, project, owner.id)
        await db_session.commit()

        assert await self.equipment_count(db_session) == 2
        rows = (await db_session.execute(select(Equipment))).scalars().all()
        assert all(row.associated_projects == [project.id] for row in rows)

    async def test_second_project_is_linked_once(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        first = await self.sanctioned_project(db_session, owner.id, "SRG/2024/0001")
        second = await self.sanctioned_project(db_session, owner.id, "SRG/2024/0002")

        sync = EquipmentSync(db_session, owner.id)
        for project in (first, second, second):
            await sync.sync_project(project)
        await db_session.commit()

        assert await self.equipment_count(db_session) == 2
        assert sync.created == 2
        assert sync.linked == 2
        rows = (await db_session.execute(select(Equipment))).scalars().all()
        assert all(row.associated_projects == [first.id, second.id] for row in rows)

    async def test_nameless_items_are_skipped(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        project = await add_project(
            db_session, owner.id,
            file_number="SRG/2024/0009",
            equipment_sanctioned=[{"generic_name": "  "}, {"generic_name": "Oscilloscope"}],
        )

        sync = EquipmentSync(db_session, owner.id)
        handled = await sync.sync_project(project)

        assert handled == 1
        assert sync.failed == 1

    async def test_project_without_equipment(self, db_session: AsyncSession, make_user):
        owner = await make_user(UserRole.PI)
        project = await add_project(db_session, owner.id, file_number="SRG/2024/0010")

        assert await sync_project_equipment(db_session, project) == 0

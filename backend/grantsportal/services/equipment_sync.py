"""
Mirror the equipment sanctioned to a project into the equipment inventory.

Items are keyed on (name, model, manufacturer). Re-running a sync never
creates duplicates; it only links the project to rows that miss it.
"""
from datetime import datetime
from typing import Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.core.logging_config import logger
from grantsportal.models.equipment import Equipment, AvailabilityStatus, AccessType
from grantsportal.models.project import Project

DEFAULT_INSTITUTION = "IIT Mandi"
DEFAULT_DEPARTMENT = "General"
DEFAULT_BUILDING = "Research Lab"
DEFAULT_ROOM = "TBD"
DEFAULT_STATE = "Himachal Pradesh"

EquipmentKey = Tuple[str, Optional[str], Optional[str]]


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _to_float(value) -> Optional[float]:
    if value in (None, ""):
        return None
    return float(value)


class EquipmentSync:
    """One sync run; remembers rows it created so repeated keys are linked, not duplicated"""

    def __init__(self, db: AsyncSession, user_id: Optional[str] = None):
        self.db = db
        self.user_id = user_id
        self._seen: Dict[EquipmentKey, Equipment] = {}
        self.created = 0
        self.linked = 0
        self.failed = 0

    async def _find(self, key: EquipmentKey) -> Optional[Equipment]:
        if key in self._seen:
            return self._seen[key]
        name, model, manufacturer = key
        result = await self.db.execute(
            select(Equipment).where(
                Equipment.name == name,
                Equipment.model == model,
                Equipment.manufacturer == manufacturer,
            ).limit(1)
        )
        equipment = result.scalar_one_or_none()
        if equipment is not None:
            self._seen[key] = equipment
        return equipment

    def _new_equipment(self, project: Project, item: dict, key: EquipmentKey) -> Equipment:
        name, model, manufacturer = key
        first_pi = (project.principal_investigators or [{}])[0] or {}
        sanction_year = project.budget_sanction_year

        return Equipment(
            name=name,
            type="Research Equipment",
            category="Project Equipment",
            description=f"Equipment sanctioned for project: {project.title}",
            model=model,
            manufacturer=manufacturer,
            year_of_purchase=sanction_year or datetime.utcnow().year,
            cost=_to_float(item.get("price_inr")),
            technical_specs=(
                f"Project file number: {project.file_number}; "
                f"Project title: {project.title}; "
                f"Sanction year: {sanction_year or 'N/A'}"
            ),
            institution=first_pi.get("institute_name") or DEFAULT_INSTITUTION,
            department=first_pi.get("department") or DEFAULT_DEPARTMENT,
            building=DEFAULT_BUILDING,
            room=DEFAULT_ROOM,
            state=DEFAULT_STATE,
            availability_status=AvailabilityStatus.AVAILABLE,
            access_type=AccessType.BY_APPOINTMENT,
            associated_projects=[str(project.id)],
            contact_person={
                "name": first_pi.get("name") or "Project PI",
                "email": first_pi.get("email") or "",
                "phone": "",
            },
            images=[],
            created_by=self.user_id,
        )

    async def sync_project(self, project: Project) -> int:
        """Sync one project's sanctioned equipment; returns how many items were handled"""
        items = project.equipment_sanctioned or []
        if not items:
            logger.debug(f"[EquipmentSync] No equipment to sync for project {project.file_number}")
            return 0

        project_id = str(project.id)
        handled = 0
        for item in items:
            try:
                name = _clean(item.get("generic_name"))
                if not name:
                    raise ValueError("equipment item has no generic name")
                key = (name, _clean(item.get("model")), _clean(item.get("make")))

                equipment = await self._find(key)
                if equipment is None:
                    equipment = self._new_equipment(project, item, key)
                    self.db.add(equipment)
                    self._seen[key] = equipment
                    self.created += 1
                elif project_id not in (equipment.associated_projects or []):
                    # JSON columns are replaced, never mutated in place
                    equipment.associated_projects = list(equipment.associated_projects or []) + [project_id]
                    self.linked += 1
                handled += 1
            except Exception as e:
                self.failed += 1
                logger.warning(
                    f"[EquipmentSync] Skipping item {item!r} of project {project.file_number}: {e}"
                )
        return handled


async def sync_project_equipment(db: AsyncSession, project: Project, user_id: Optional[str] = None) -> int:
    """Sync a single project and flush the result"""
    sync = EquipmentSync(db, user_id)
    handled = await sync.sync_project(project)
    await db.flush()
    logger.info(
        f"[EquipmentSync] Project {project.file_number}: "
        f"{sync.created} created, {sync.linked} linked, {sync.failed} skipped"
    )
    return handled

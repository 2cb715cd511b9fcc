"""
Shared logic for the lookup tables (schemes, disciplines, manpower types).

Names are unique regardless of case. Deleting marks the row Disabled; for
lookups that projects reference by name, both soft and permanent deletion
are refused while any project still uses the name.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import InstrumentedAttribute

from grantsportal.core.exceptions import ConflictError, ResourceInUseError, ResourceNotFoundError
from grantsportal.core.types import LifecycleState, is_valid_uuid
from grantsportal.models import Scheme, Category, ManpowerType, Project

DEFAULT_SCHEMES = (
    "Seminar/Symposia (SSY)",
    "Prime Minister Early Career Research Grant",
    "Empowerment and Equity Opportunities for Excellence in Science (EMEQ)",
    "Start-up Research Grant (SRG)",
    "State University Research Excellence (SERB SURE)",
    "Mathematical Research Impact Centric Support (MATRICS)",
    "International Travel Support (ITS)",
    "High Impact Proposal in Interdisciplinary Sciences (HIPIS)",
    "Ramanujan Fellowship",
    "JC Bose Fellowship",
    "SwarnaJayanti Fellowships",
    "National Post Doctoral Fellowship (N-PDF)",
    "Women Excellence Award",
    "Distinguished Investigator Award (DIA)",
)

DEFAULT_DISCIPLINES = (
    "Assistive Technology",
    "Device-Led Technology",
    "Experience Technology",
    "Generative AI",
    "Road Safety",
    "Transitional Research",
)


class ReferenceService:
    """CRUD for one lookup table"""

    def __init__(
        self,
        model: Type[Any],
        label: str,
        usage_column: Optional[InstrumentedAttribute] = None,
        defaults: Sequence[str] = (),
    ):
        self.model = model
        self.label = label
        self.usage_column = usage_column
        self.defaults = tuple(defaults)

    async def list(
        self,
        db: AsyncSession,
        state: Optional[LifecycleState] = LifecycleState.ACTIVE,
        **filters: Any,
    ) -> List[Any]:
        """Rows sorted by name; ``state=None`` lists every row"""
        query = select(self.model)
        if state is not None:
            query = query.where(self.model.state == state)
        for column, value in filters.items():
            if value is not None:
                query = query.where(getattr(self.model, column) == value)
        result = await db.execute(query.order_by(self.model.name))
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, item_id: str) -> Any:
        """Fetch by id, Disabled rows included"""
        if not is_valid_uuid(item_id):
            raise ResourceNotFoundError(self.label, item_id)
        item = await db.get(self.model, item_id)
        if item is None:
            raise ResourceNotFoundError(self.label, item_id)
        return item

    async def find_by_name(self, db: AsyncSession, name: str, exclude_id: Optional[str] = None) -> Optional[Any]:
        query = select(self.model).where(func.lower(self.model.name) == name.strip().lower())
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        result = await db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def _ensure_unique(self, db: AsyncSession, name: str, exclude_id: Optional[str] = None) -> None:
        if await self.find_by_name(db, name, exclude_id) is not None:
            raise ConflictError(f"{self.label} with this name already exists", field="name")

    async def create(self, db: AsyncSession, data: Dict[str, Any], user_id: Optional[str]) -> Any:
        await self._ensure_unique(db, data["name"])
        item = self.model(**data, created_by=user_id)
        db.add(item)
        await db.flush()
        return item

    async def update(self, db: AsyncSession, item: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update; returns the fields that actually changed.

        Disabling through an update is refused while the name is in use, and
        a rename is carried over to the projects referencing the old name.
        """
        name = data.get("name")
        if name and name.lower() != item.name.lower():
            await self._ensure_unique(db, name, exclude_id=item.id)
        if data.get("state") == LifecycleState.DISABLED and item.state != LifecycleState.DISABLED:
            await self._ensure_unused(db, item)
        if name and name != item.name:
            await self._rename_references(db, item.name, name)

        changed = {}
        for field, value in data.items():
            if getattr(item, field) != value:
                setattr(item, field, value)
                changed[field] = value.value if hasattr(value, "value") else value
        if changed:
            await db.flush()
        return changed

    async def usage_count(self, db: AsyncSession, name: str) -> int:
        """Projects referencing ``name``; lookups no project references report 0"""
        if self.usage_column is None:
            return 0
        return await db.scalar(
            select(func.count(Project.id)).where(self.usage_column == name)
        ) or 0

    async def _rename_references(self, db: AsyncSession, old_name: str, new_name: str) -> None:
        if self.usage_column is None:
            return
        await db.execute(
            update(Project)
            .where(self.usage_column == old_name)
            .values({self.usage_column.key: new_name})
            .execution_options(synchronize_session="fetch")
        )

    async def _ensure_unused(self, db: AsyncSession, item: Any) -> None:
        count = await self.usage_count(db, item.name)
        if count:
            raise ResourceInUseError(self.label, item.name, count)

    async def disable(self, db: AsyncSession, item: Any) -> None:
        await self._ensure_unused(db, item)
        item.state = LifecycleState.DISABLED
        await db.flush()

    async def purge(self, db: AsyncSession, item: Any) -> None:
        await self._ensure_unused(db, item)
        await db.delete(item)
        await db.flush()

    async def initialize_defaults(self, db: AsyncSession, user_id: Optional[str]) -> Tuple[List[Any], List[str]]:
        """Create missing default rows; returns (created rows, skipped names)"""
        result = await db.execute(select(self.model.name))
        existing = {name.lower() for name in result.scalars().all()}

        created, skipped = [], []
        for name in self.defaults:
            if name.lower() in existing:
                skipped.append(name)
                continue
            item = self.model(
                name=name,
                description=f"Default {self.label.lower()}: {name}",
                created_by=user_id,
            )
            db.add(item)
            created.append(item)
            existing.add(name.lower())
        if created:
            await db.flush()
        return created, skipped


scheme_service = ReferenceService(Scheme, "Scheme", Project.scheme, DEFAULT_SCHEMES)
discipline_service = ReferenceService(Category, "Discipline", Project.discipline, DEFAULT_DISCIPLINES)
manpower_type_service = ReferenceService(ManpowerType, "Manpower type")

"""
Router factory for the scheme and discipline lookups.

Both expose the same list/get/create/update/delete/initialize routes and only
differ in the table, the policy resource and the audit actions.
"""
from dataclasses import dataclass
from typing import List, Optional, Type

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from grantsportal.core.database import get_db
from grantsportal.core.logging_config import logger
from grantsportal.core.policy import Action, Resource
from grantsportal.core.types import LifecycleState
from grantsportal.models import ActivityAction
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.schemas.common import MessageResponse
from grantsportal.schemas.reference import InitializeResult, ReferenceCreate, ReferenceUpdate
from grantsportal.services.activity_log import record_activity
from grantsportal.services.reference_service import ReferenceService


@dataclass(frozen=True)
class ReferenceActions:
    create: ActivityAction
    update: ActivityAction
    delete: ActivityAction
    initialize: ActivityAction


def build_reference_router(
    service: ReferenceService,
    resource: Resource,
    response_model: Type[BaseModel],
    actions: ReferenceActions,
    allow_permanent_delete: bool = False,
) -> APIRouter:
    router = APIRouter()
    label = service.label
    target_type = service.model.__name__

    @router.get("", response_model=List[response_model])
    async def list_items(
        include_disabled: bool = False,
        state: Optional[LifecycleState] = None,
        db: AsyncSession = Depends(get_db)
    ):
        """Active rows by default; ``include_disabled=true`` lists every row"""
        if state is None and not include_disabled:
            state = LifecycleState.ACTIVE
        return await service.list(db, state=state)

    @router.post("/initialize", response_model=InitializeResult)
    async def initialize_items(
        request: Request,
        auth: AuthContext = Depends(Authorize(resource, Action.CREATE)),
        db: AsyncSession = Depends(get_db)
    ):
        """Create the default rows that do not exist yet"""
        created, skipped = await service.initialize_defaults(db, auth.user_id)
        await db.commit()

        logger.info(f"[{target_type}] Initialized defaults: {len(created)} created, {len(skipped)} skipped")

        response = InitializeResult(
            message=f"Default {label.lower()}s initialized",
            created=[item.name for item in created],
            skipped=skipped,
        )
        await record_activity(
            db, actions.initialize,
            user_id=auth.user_id, target_type=target_type,
            description=f"Initialized {len(created)} default {label.lower()}s",
            metadata={"created": len(created), "skipped": len(skipped)},
            request=request,
        )
        return response

    @router.get("/{item_id}", response_model=response_model)
    async def get_item(item_id: str, db: AsyncSession = Depends(get_db)):
        return await service.get(db, item_id)

    @router.post("", response_model=response_model, status_code=status.HTTP_201_CREATED)
    async def create_item(
        request: Request,
        data: ReferenceCreate,
        auth: AuthContext = Depends(Authorize(resource, Action.CREATE)),
        db: AsyncSession = Depends(get_db)
    ):
        item = await service.create(db, data.model_dump(), auth.user_id)
        await db.commit()
        await db.refresh(item)

        response = response_model.model_validate(item)
        await record_activity(
            db, actions.create,
            user_id=auth.user_id, target_type=target_type, target_id=item.id,
            description=f"Created {label.lower()}: {item.name}",
            request=request,
        )
        return response

    @router.put("/{item_id}", response_model=response_model)
    async def update_item(
        request: Request,
        item_id: str,
        data: ReferenceUpdate,
        auth: AuthContext = Depends(Authorize(resource, Action.UPDATE)),
        db: AsyncSession = Depends(get_db)
    ):
        item = await service.get(db, item_id)
        changes = await service.update(db, item, data.model_dump(exclude_unset=True, exclude_none=True))
        await db.commit()
        await db.refresh(item)

        response = response_model.model_validate(item)
        await record_activity(
            db, actions.update,
            user_id=auth.user_id, target_type=target_type, target_id=item.id,
            description=f"Updated {label.lower()}: {item.name}",
            changes=changes.keys(),
            request=request,
        )
        return response

    @router.delete("/{item_id}", response_model=MessageResponse)
    async def disable_item(
        request: Request,
        item_id: str,
        auth: AuthContext = Depends(Authorize(resource, Action.DELETE)),
        db: AsyncSession = Depends(get_db)
    ):
        """Mark the row Disabled; refused while projects reference it"""
        item = await service.get(db, item_id)
        await service.disable(db, item)
        await db.commit()

        await record_activity(
            db, actions.delete,
            user_id=auth.user_id, target_type=target_type, target_id=item.id,
            description=f"Disabled {label.lower()}: {item.name}",
            request=request,
        )
        return MessageResponse(message=f"{label} deleted successfully")

    if allow_permanent_delete:
        @router.delete("/{item_id}/permanent", response_model=MessageResponse)
        async def purge_item(
            request: Request,
            item_id: str,
            auth: AuthContext = Depends(Authorize(resource, Action.DELETE)),
            db: AsyncSession = Depends(get_db)
        ):
            """Remove the row for good; refused while projects reference it"""
            item = await service.get(db, item_id)
            name = item.name
            await service.purge(db, item)
            await db.commit()

            await record_activity(
                db, actions.delete,
                user_id=auth.user_id, target_type=target_type, target_id=item_id,
                description=f"Permanently deleted {label.lower()}: {name}",
                metadata={"permanent": True},
                request=request,
            )
            return MessageResponse(message=f"{label} permanently deleted")

    return router

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict

from grantsportal.core.database import get_db
from grantsportal.core.policy import Action, Resource
from grantsportal.modules.auth.dependencies import AuthContext, Authorize
from grantsportal.services.analytics import dashboard_stats, funding_stats

router = APIRouter()


@router.get("/funding-stats")
async def get_funding_stats(
    auth: AuthContext = Depends(Authorize(Resource.ANALYTICS, Action.LIST)),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Funding by scheme, discipline and over time"""
    return await funding_stats(db)


@router.get("/dashboard")
async def get_dashboard(
    auth: AuthContext = Depends(Authorize(Resource.ANALYTICS, Action.READ)),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Dashboard figures; PIs see figures for their own projects"""
    return await dashboard_stats(db, auth.decision.predicate)

from datetime import datetime

from fastapi import APIRouter
from grantsportal.api.v1.endpoints import (
    activity_logs,
    analytics,
    auth,
    categories,
    equipment,
    files,
    manpower_types,
    online_applications,
    outcomes,
    pi_projects,
    projects,
    public,
    publications,
    schemes,
    settings,
    users,
)

api_router = APIRouter()


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe for the load balancer"""
    return {"status": "OK", "timestamp": datetime.utcnow().isoformat()}


api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
api_router.include_router(files.router, prefix="/files", tags=["Files"])
api_router.include_router(equipment.router, prefix="/equipment", tags=["Equipment"])
api_router.include_router(publications.router, prefix="/publications", tags=["Publications"])
api_router.include_router(outcomes.router, prefix="/outcomes", tags=["Outcomes"])
api_router.include_router(public.router, prefix="/public", tags=["Public"])
api_router.include_router(categories.router, prefix="/categories", tags=["Disciplines"])
api_router.include_router(schemes.router, prefix="/schemes", tags=["Schemes"])
api_router.include_router(manpower_types.router, prefix="/manpower-types", tags=["Manpower Types"])
api_router.include_router(activity_logs.router, prefix="/activity-logs", tags=["Activity Logs"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
api_router.include_router(pi_projects.router, prefix="/pi-projects", tags=["PI Projects"])
api_router.include_router(
    online_applications.router, prefix="/online-applications", tags=["Online Applications"]
)

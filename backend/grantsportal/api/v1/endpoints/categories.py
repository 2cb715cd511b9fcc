"""Research disciplines, stored in the ``categories`` table"""
from grantsportal.api.v1.endpoints.reference import ReferenceActions, build_reference_router
from grantsportal.core.policy import Resource
from grantsportal.models import ActivityAction
from grantsportal.schemas.reference import CategoryResponse
from grantsportal.services.reference_service import discipline_service

router = build_reference_router(
    discipline_service,
    Resource.CATEGORY,
    CategoryResponse,
    ReferenceActions(
        create=ActivityAction.CREATE_CATEGORY,
        update=ActivityAction.UPDATE_CATEGORY,
        delete=ActivityAction.DELETE_CATEGORY,
        initialize=ActivityAction.INITIALIZE_CATEGORIES,
    ),
)

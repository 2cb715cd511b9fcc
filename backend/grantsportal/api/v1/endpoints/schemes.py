from grantsportal.api.v1.endpoints.reference import ReferenceActions, build_reference_router
from grantsportal.core.policy import Resource
from grantsportal.models import ActivityAction
from grantsportal.schemas.reference import SchemeResponse
from grantsportal.services.reference_service import scheme_service

router = build_reference_router(
    scheme_service,
    Resource.SCHEME,
    SchemeResponse,
    ReferenceActions(
        create=ActivityAction.CREATE_SCHEME,
        update=ActivityAction.UPDATE_SCHEME,
        delete=ActivityAction.DELETE_SCHEME,
        initialize=ActivityAction.INITIALIZE_SCHEMES,
    ),
    allow_permanent_delete=True,
)

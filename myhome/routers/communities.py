"""
Community router.

Provides REST API endpoints for:
- Community creation, listing, details and deletion
- Community admin management
- Community house management

All endpoints require authentication. Changing a community, its admins or
its houses is reserved to the admins of that community (403 otherwise).
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from myhome.models.auth import CurrentUser, ErrorResponse
from myhome.models.community import (
    AddCommunityAdminRequest, AddCommunityAdminResponse,
    AddCommunityHouseRequest, AddCommunityHouseResponse,
    CommunityAdminResponse, CommunityResponse,
    CreateCommunityRequest, CreateCommunityResponse,
    HouseResponse, ListCommunitiesResponse,
    ListCommunityAdminsResponse, ListHousesResponse
)
from myhome.models.pagination import PageRequest, build_page_info
from myhome.services.community_service import CommunityService
from myhome.dependencies import (
    get_community_service,
    get_current_user,
    get_page_request,
    require_community_admin
)

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/communities",
    tags=["Communities"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        403: {"model": ErrorResponse, "description": "Not an admin of the community"},
        404: {"model": ErrorResponse, "description": "Not Found"},
        422: {"model": ErrorResponse, "description": "Validation Error"}
    },
    dependencies=[Depends(get_current_user)]
)


def _not_found(community_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Community {community_id} not found"
    )


# ============================================================================
# COMMUNITY ENDPOINTS
# ============================================================================


@router.post(
    "",
    response_model=CreateCommunityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Community",
    description="""
    Create a community. The authenticated user becomes its first admin.

    **Success Response (201):**
    - community_id: Generated community ID
    """
)
async def create_community(
    create_request: CreateCommunityRequest,
    community_service: CommunityService = Depends(get_community_service),
    current_user: CurrentUser = Depends(get_current_user)
) -> CreateCommunityResponse:
    community = await community_service.create_community(
        create_request,
        current_user.user_id
    )

    return CreateCommunityResponse(community_id=community.community_id)


@router.get(
    "",
    response_model=ListCommunitiesResponse,
    summary="List Communities"
)
async def list_all_communities(
    page_request: PageRequest = Depends(get_page_request),
    community_service: CommunityService = Depends(get_community_service)
) -> ListCommunitiesResponse:
    page = await community_service.list_all(page_request)

    return ListCommunitiesResponse(
        communities=[CommunityResponse.model_validate(c) for c in page.items],
        page_info=build_page_info(page_request, page)
    )


@router.get(
    "/{community_id}",
    response_model=CommunityResponse,
    summary="Get Community"
)
async def get_community_details(
    community_id: str,
    community_service: CommunityService = Depends(get_community_service)
) -> CommunityResponse:
    community = await community_service.get_community_details(community_id)

    if community is None:
        raise _not_found(community_id)

    return CommunityResponse.model_validate(community)


@router.delete(
    "/{community_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    dependencies=[Depends(require_community_admin)],
    summary="Delete Community",
    description="Delete a community together with its houses and their members."
)
async def delete_community(
    community_id: str,
    community_service: CommunityService = Depends(get_community_service)
):
    if not await community_service.delete_community(community_id):
        raise _not_found(community_id)

    logger.info("community_deleted_via_api", community_id=community_id)


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================


@router.get(
    "/{community_id}/admins",
    response_model=ListCommunityAdminsResponse,
    summary="List Community Admins"
)
async def list_community_admins(
    community_id: str,
    page_request: PageRequest = Depends(get_page_request),
    community_service: CommunityService = Depends(get_community_service)
) -> ListCommunityAdminsResponse:
    page = await community_service.find_community_admins(community_id, page_request)

    if page is None:
        raise _not_found(community_id)

    return ListCommunityAdminsResponse(
        admins=[CommunityAdminResponse.model_validate(a) for a in page.items],
        page_info=build_page_info(page_request, page)
    )


@router.post(
    "/{community_id}/admins",
    response_model=AddCommunityAdminResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_community_admin)],
    summary="Add Community Admins",
    description="""
    Add admins to a community. Unknown admin IDs are registered as new admins.

    **Success Response (201):**
    - admins: All admin IDs of the community after the update
    """
)
async def add_community_admins(
    community_id: str,
    add_request: AddCommunityAdminRequest,
    community_service: CommunityService = Depends(get_community_service)
) -> AddCommunityAdminResponse:
    community = await community_service.add_admins_to_community(
        community_id,
        sorted(add_request.admins)
    )

    if community is None:
        raise _not_found(community_id)

    return AddCommunityAdminResponse(admins=community.admins)


@router.delete(
    "/{community_id}/admins/{admin_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    dependencies=[Depends(require_community_admin)],
    summary="Remove Community Admin"
)
async def remove_admin_from_community(
    community_id: str,
    admin_id: str,
    community_service: CommunityService = Depends(get_community_service)
):
    if not await community_service.remove_admin_from_community(community_id, admin_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Admin {admin_id} not found in community {community_id}"
        )


# ============================================================================
# HOUSE ENDPOINTS
# ============================================================================


@router.get(
    "/{community_id}/houses",
    response_model=ListHousesResponse,
    summary="List Community Houses"
)
async def list_community_houses(
    community_id: str,
    page_request: PageRequest = Depends(get_page_request),
    community_service: CommunityService = Depends(get_community_service)
) -> ListHousesResponse:
    page = await community_service.find_community_houses(community_id, page_request)

    if page is None:
        raise _not_found(community_id)

    return ListHousesResponse(
        houses=[HouseResponse.model_validate(h) for h in page.items],
        page_info=build_page_info(page_request, page)
    )


@router.post(
    "/{community_id}/houses",
    response_model=AddCommunityHouseResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_community_admin)],
    summary="Add Community Houses",
    description="""
    Create houses in a community. Names already used in the community are skipped.

    **Error Responses:**
    - 400: No house was added (all names taken)
    """,
    responses={
        400: {"model": ErrorResponse, "description": "No house added"}
    }
)
async def add_community_houses(
    community_id: str,
    add_request: AddCommunityHouseRequest,
    community_service: CommunityService = Depends(get_community_service)
) -> AddCommunityHouseResponse:
    house_ids = await community_service.add_houses_to_community(
        community_id,
        [house.name for house in add_request.houses]
    )

    if not house_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No house was added"
        )

    return AddCommunityHouseResponse(houses=house_ids)


@router.delete(
    "/{community_id}/houses/{house_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    dependencies=[Depends(require_community_admin)],
    summary="Remove Community House"
)
async def remove_house_from_community(
    community_id: str,
    house_id: str,
    community_service: CommunityService = Depends(get_community_service)
):
    if not await community_service.remove_house_from_community(community_id, house_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"House {house_id} not found in community {community_id}"
        )

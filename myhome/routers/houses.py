"""
House router.

Provides REST API endpoints for house listing and details and for
managing the members of a house. All endpoints require authentication.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from myhome.models.auth import ErrorResponse
from myhome.models.community import (
    AddHouseMemberRequest, AddHouseMemberResponse,
    HouseMemberResponse, HouseResponse,
    ListHouseMembersResponse, ListHousesResponse
)
from myhome.models.pagination import PageRequest, build_page_info
from myhome.services.house_service import HouseService
from myhome.dependencies import get_current_user, get_house_service, get_page_request

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/houses",
    tags=["Houses"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Not Found"},
        422: {"model": ErrorResponse, "description": "Validation Error"}
    },
    dependencies=[Depends(get_current_user)]
)


def _not_found(house_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"House {house_id} not found"
    )


@router.get(
    "",
    response_model=ListHousesResponse,
    summary="List Houses"
)
async def list_all_houses(
    page_request: PageRequest = Depends(get_page_request),
    house_service: HouseService = Depends(get_house_service)
) -> ListHousesResponse:
    page = await house_service.list_all_houses(page_request)

    return ListHousesResponse(
        houses=[HouseResponse.model_validate(h) for h in page.items],
        page_info=build_page_info(page_request, page)
    )


@router.get(
    "/{house_id}",
    response_model=HouseResponse,
    summary="Get House"
)
async def get_house_details(
    house_id: str,
    house_service: HouseService = Depends(get_house_service)
) -> HouseResponse:
    house = await house_service.get_house_details(house_id)

    if house is None:
        raise _not_found(house_id)

    return HouseResponse.model_validate(house)


@router.get(
    "/{house_id}/members",
    response_model=ListHouseMembersResponse,
    summary="List House Members"
)
async def list_house_members(
    house_id: str,
    page_request: PageRequest = Depends(get_page_request),
    house_service: HouseService = Depends(get_house_service)
) -> ListHouseMembersResponse:
    page = await house_service.get_house_members(house_id, page_request)

    if page is None:
        raise _not_found(house_id)

    return ListHouseMembersResponse(
        members=[HouseMemberResponse.model_validate(m) for m in page.items],
        page_info=build_page_info(page_request, page)
    )


@router.post(
    "/{house_id}/members",
    response_model=AddHouseMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add House Members",
    description="Add members to a house. Each member gets a generated ID."
)
async def add_house_members(
    house_id: str,
    add_request: AddHouseMemberRequest,
    house_service: HouseService = Depends(get_house_service)
) -> AddHouseMemberResponse:
    members = await house_service.add_house_members(
        house_id,
        [member.name for member in add_request.members]
    )

    if not members:
        raise _not_found(house_id)

    logger.info("house_members_added_via_api", house_id=house_id, count=len(members))

    return AddHouseMemberResponse(
        members=[HouseMemberResponse.model_validate(m) for m in members]
    )


@router.delete(
    "/{house_id}/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove House Member"
)
async def delete_house_member(
    house_id: str,
    member_id: str,
    house_service: HouseService = Depends(get_house_service)
):
    if not await house_service.delete_member_from_house(house_id, member_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Member {member_id} not found in house {house_id}"
        )

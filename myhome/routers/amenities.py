"""
Amenity router.

Provides REST API endpoints for:
- Listing and adding the amenities of a community
- Amenity details, update and deletion
- Booking amenities and cancelling bookings

All endpoints require authentication. Adding, changing and deleting
amenities is reserved to the admins of the amenity's community. A booking
can be cancelled by the user who made it or by one of those admins.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from myhome.errors import AccessDeniedError, BookingConflictError
from myhome.models.amenity import (
    AddAmenityRequest, AddAmenityResponse, AmenityRequest, AmenityResponse,
    BookingRequest, BookingResponse, ListAmenitiesResponse, ListBookingsResponse
)
from myhome.models.auth import CurrentUser, ErrorResponse
from myhome.models.pagination import PageRequest, build_page_info
from myhome.services.amenity_service import AmenityService
from myhome.dependencies import (
    get_amenity_service,
    get_current_user,
    get_page_request,
    require_amenity_admin,
    require_community_admin
)

logger = structlog.get_logger(__name__)

router = APIRouter(
    tags=["Amenities"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Not Found"},
        422: {"model": ErrorResponse, "description": "Validation Error"}
    },
    dependencies=[Depends(get_current_user)]
)

_FORBIDDEN = {403: {"model": ErrorResponse, "description": "Not an admin of the community"}}


def _not_found(amenity_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Amenity {amenity_id} not found"
    )


# ============================================================================
# AMENITY ENDPOINTS
# ============================================================================


@router.get(
    "/communities/{community_id}/amenities",
    response_model=ListAmenitiesResponse,
    summary="List Community Amenities"
)
async def list_community_amenities(
    community_id: str,
    page_request: PageRequest = Depends(get_page_request),
    amenity_service: AmenityService = Depends(get_amenity_service)
) -> ListAmenitiesResponse:
    page = await amenity_service.list_community_amenities(community_id, page_request)

    if page is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Community {community_id} not found"
        )

    return ListAmenitiesResponse(
        amenities=[AmenityResponse.model_validate(a) for a in page.items],
        page_info=build_page_info(page_request, page)
    )


@router.post(
    "/communities/{community_id}/amenities",
    response_model=AddAmenityResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_community_admin)],
    summary="Add Community Amenities",
    description="Create amenities in a community. Each amenity gets a generated ID.",
    responses=_FORBIDDEN
)
async def add_community_amenities(
    community_id: str,
    add_request: AddAmenityRequest,
    amenity_service: AmenityService = Depends(get_amenity_service)
) -> AddAmenityResponse:
    amenities = await amenity_service.add_amenities_to_community(community_id, add_request.amenities)

    if amenities is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Community {community_id} not found"
        )

    return AddAmenityResponse(
        amenities=[AmenityResponse.model_validate(a) for a in amenities]
    )


@router.get(
    "/amenities/{amenity_id}",
    response_model=AmenityResponse,
    summary="Get Amenity"
)
async def get_amenity_details(
    amenity_id: str,
    amenity_service: AmenityService = Depends(get_amenity_service)
) -> AmenityResponse:
    amenity = await amenity_service.get_amenity_details(amenity_id)

    if amenity is None:
        raise _not_found(amenity_id)

    return AmenityResponse.model_validate(amenity)


@router.put(
    "/amenities/{amenity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    dependencies=[Depends(require_amenity_admin)],
    summary="Update Amenity",
    description="Replace the name, description and price of an amenity.",
    responses=_FORBIDDEN
)
async def update_amenity(
    amenity_id: str,
    update_request: AmenityRequest,
    amenity_service: AmenityService = Depends(get_amenity_service)
):
    if await amenity_service.update_amenity(amenity_id, update_request) is None:
        raise _not_found(amenity_id)


@router.delete(
    "/amenities/{amenity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    dependencies=[Depends(require_amenity_admin)],
    summary="Delete Amenity",
    description="Delete an amenity together with its bookings.",
    responses=_FORBIDDEN
)
async def delete_amenity(
    amenity_id: str,
    amenity_service: AmenityService = Depends(get_amenity_service)
):
    if not await amenity_service.delete_amenity(amenity_id):
        raise _not_found(amenity_id)


# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================


@router.post(
    "/amenities/{amenity_id}/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book Amenity",
    description="""
    Reserve an amenity for the caller. Spans are half-open, so a booking may
    start exactly when the previous one ends.

    **Error Responses:**
    - 409: The span overlaps an existing booking
    """,
    responses={
        409: {"model": ErrorResponse, "description": "Already booked"}
    }
)
async def book_amenity(
    amenity_id: str,
    booking_request: BookingRequest,
    current_user: CurrentUser = Depends(get_current_user),
    amenity_service: AmenityService = Depends(get_amenity_service)
) -> BookingResponse:
    try:
        booking = await amenity_service.book_amenity(
            amenity_id,
            current_user.user_id,
            booking_request.booking_start,
            booking_request.booking_end
        )
    except BookingConflictError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Amenity is already booked by {e.booking_id} in this span"
        )

    if booking is None:
        raise _not_found(amenity_id)

    return BookingResponse.model_validate(booking)


@router.get(
    "/amenities/{amenity_id}/bookings",
    response_model=ListBookingsResponse,
    summary="List Amenity Bookings"
)
async def list_amenity_bookings(
    amenity_id: str,
    page_request: PageRequest = Depends(get_page_request),
    amenity_service: AmenityService = Depends(get_amenity_service)
) -> ListBookingsResponse:
    page = await amenity_service.list_bookings(amenity_id, page_request)

    if page is None:
        raise _not_found(amenity_id)

    return ListBookingsResponse(
        bookings=[BookingResponse.model_validate(b) for b in page.items],
        page_info=build_page_info(page_request, page)
    )


@router.delete(
    "/amenities/{amenity_id}/bookings/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Cancel Booking",
    responses={
        403: {"model": ErrorResponse, "description": "Neither the booker nor a community admin"}
    }
)
async def cancel_booking(
    amenity_id: str,
    booking_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    amenity_service: AmenityService = Depends(get_amenity_service)
):
    try:
        cancelled = await amenity_service.cancel_booking(amenity_id, booking_id, current_user.user_id)
    except AccessDeniedError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the booker or a community admin may cancel this booking"
        )

    if not cancelled:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found for amenity {amenity_id}"
        )

    logger.info("booking_cancelled_via_api", amenity_id=amenity_id, booking_id=booking_id)

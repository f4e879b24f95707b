"""
Payment router.

Admins schedule payments for members of houses in their communities.
Payments can be read by ID, per member, or per scheduling admin within a
community. All endpoints require authentication.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from myhome.errors import AccessDeniedError
from myhome.models.auth import CurrentUser, ErrorResponse
from myhome.models.pagination import PageRequest, build_page_info
from myhome.models.payment import ListPaymentsResponse, PaymentResponse, SchedulePaymentRequest
from myhome.services.payment_service import PaymentService
from myhome.dependencies import (
    get_current_user,
    get_page_request,
    get_payment_service,
    require_community_admin
)

router = APIRouter(
    tags=["Payments"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Not Found"},
        422: {"model": ErrorResponse, "description": "Validation Error"}
    },
    dependencies=[Depends(get_current_user)]
)


@router.post(
    "/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule Payment",
    description="""
    Schedule a payment for a house member. The caller is recorded as the
    scheduling admin and must administer the community of the member's house.

    **Error Responses:**
    - 403: Caller is not an admin of the member's community
    - 404: Unknown member
    """,
    responses={
        403: {"model": ErrorResponse, "description": "Not an admin of the community"}
    }
)
async def schedule_payment(
    schedule_request: SchedulePaymentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentResponse:
    try:
        payment = await payment_service.schedule_payment(schedule_request, current_user.user_id)
    except AccessDeniedError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins of the member's community may schedule payments"
        )

    if payment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Member {schedule_request.member_id} not found"
        )

    return PaymentResponse.model_validate(payment)


@router.get(
    "/payments/{payment_id}",
    response_model=PaymentResponse,
    summary="Get Payment"
)
async def get_payment_details(
    payment_id: str,
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentResponse:
    payment = await payment_service.get_payment_details(payment_id)

    if payment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payment {payment_id} not found"
        )

    return PaymentResponse.model_validate(payment)


@router.get(
    "/members/{member_id}/payments",
    response_model=ListPaymentsResponse,
    summary="List Member Payments"
)
async def list_member_payments(
    member_id: str,
    page_request: PageRequest = Depends(get_page_request),
    payment_service: PaymentService = Depends(get_payment_service)
) -> ListPaymentsResponse:
    page = await payment_service.get_member_payments(member_id, page_request)

    if page is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Member {member_id} not found"
        )

    return ListPaymentsResponse(
        payments=[PaymentResponse.model_validate(p) for p in page.items],
        page_info=build_page_info(page_request, page)
    )


@router.get(
    "/communities/{community_id}/admins/{admin_id}/payments",
    response_model=ListPaymentsResponse,
    dependencies=[Depends(require_community_admin)],
    summary="List Admin Scheduled Payments",
    description="Payments an admin scheduled for members of the community. Readable by its admins.",
    responses={
        403: {"model": ErrorResponse, "description": "Not an admin of the community"}
    }
)
async def list_admin_payments(
    community_id: str,
    admin_id: str,
    page_request: PageRequest = Depends(get_page_request),
    payment_service: PaymentService = Depends(get_payment_service)
) -> ListPaymentsResponse:
    page = await payment_service.get_admin_payments(community_id, admin_id, page_request)

    if page is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Admin {admin_id} not found in community {community_id}"
        )

    return ListPaymentsResponse(
        payments=[PaymentResponse.model_validate(p) for p in page.items],
        page_info=build_page_info(page_request, page)
    )

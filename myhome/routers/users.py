"""
User accounts: sign-up, login and lookups.

``POST /auth/login`` and ``POST /users`` are open to anonymous callers.
Reading users needs a bearer token.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from myhome.errors import CredentialsIncorrectError, UserNotFoundError
from myhome.models.auth import (
    CreateUserRequest, CurrentUser, ErrorResponse, ListUsersResponse,
    LoginRequest, TokenResponse, UserResponse
)
from myhome.models.pagination import PageRequest, build_page_info
from myhome.services.auth_service import AuthService
from myhome.services.user_service import UserService
from myhome.dependencies import (
    get_auth_service,
    get_client_ip,
    get_current_user,
    get_page_request,
    get_user_service
)

logger = structlog.get_logger(__name__)

auth_router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        422: {"model": ErrorResponse, "description": "Validation Error"}
    }
)

users_router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Not Found"},
        422: {"model": ErrorResponse, "description": "Validation Error"}
    }
)


# ============================================================================
# LOGIN
# ============================================================================


@auth_router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Log In",
    description=(
        "Exchange email and password for an access token. The token and the "
        "user id are also returned in the `token` and `userId` headers. "
        "Unknown email gives 404, wrong password 401."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "User not found"}
    }
)
async def login(
    login_request: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    client_ip: str = Depends(get_client_ip)
) -> TokenResponse:
    logger.info("login_requested", email=login_request.email, ip_address=client_ip)

    try:
        token_response = await auth_service.login(login_request)
    except UserNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No user with this email"
        )
    except CredentialsIncorrectError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password",
            headers={"WWW-Authenticate": "Bearer"}
        )

    response.headers["token"] = token_response.access_token
    response.headers["userId"] = token_response.user_id

    return token_response


# ============================================================================
# USERS
# ============================================================================


@users_router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign Up",
    description="Register a user. An email that is already registered gives 409.",
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"}
    }
)
async def sign_up(
    create_request: CreateUserRequest,
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    try:
        user = await user_service.create_user(create_request)

        if user is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email already registered"
            )

        logger.info("user_signed_up", user_id=user.user_id)

        return UserResponse.model_validate(user)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("sign_up_failed", error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not create the user"
        )


@users_router.get(
    "",
    response_model=ListUsersResponse,
    summary="List Users",
    description="List all users, oldest first."
)
async def list_all_users(
    current_user: CurrentUser = Depends(get_current_user),
    page_request: PageRequest = Depends(get_page_request),
    user_service: UserService = Depends(get_user_service)
) -> ListUsersResponse:
    page = await user_service.list_all(page_request)

    return ListUsersResponse(
        users=[UserResponse.model_validate(user) for user in page.items],
        page_info=build_page_info(page_request, page)
    )


@users_router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get User",
    description="Get a user's details by ID."
)
async def get_user_details(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    user = await user_service.get_user_details(user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )

    return UserResponse.model_validate(user)

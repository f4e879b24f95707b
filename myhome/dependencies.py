"""
FastAPI providers for the MyHome routers.

The asyncpg pool is process-wide and is opened by the application
lifespan. Repositories and services are cheap wrappers built per request
on top of it. Tests replace any provider through ``app.dependency_overrides``.
"""

import asyncpg
import structlog
from typing import Optional, Set
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from myhome.config import get_settings
from myhome.models.auth import CurrentUser
from myhome.models.domain import Amenity, Community
from myhome.models.pagination import PageRequest
from myhome.repositories.amenity_repo import AmenityRepository
from myhome.repositories.community_admin_repo import CommunityAdminRepository
from myhome.repositories.community_repo import CommunityRepository
from myhome.repositories.house_repo import HouseRepository
from myhome.repositories.payment_repo import PaymentRepository
from myhome.repositories.user_repo import UserRepository
from myhome.services.amenity_service import AmenityService
from myhome.services.auth_service import AuthService
from myhome.services.community_service import CommunityService
from myhome.services.house_service import HouseService
from myhome.services.payment_service import PaymentService
from myhome.services.user_service import UserService

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

_pool: Optional[asyncpg.Pool] = None


# ============================================================================
# POOL LIFECYCLE
# ============================================================================


async def init_db_pool() -> asyncpg.Pool:
    """Open the pool once; later calls return the same pool."""
    global _pool

    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            settings.database_dsn,
            min_size=settings.database_pool_size,
            max_size=settings.database_max_connections,
            command_timeout=settings.database_pool_timeout
        )
        # host/port/db only, credentials stay out of the log
        logger.info("database_pool_opened", database=settings.database_dsn.rsplit("@", 1)[-1])

    return _pool


async def close_db_pool():
    global _pool

    if _pool is not None:
        pool, _pool = _pool, None
        await pool.close()
        logger.info("database_pool_closed")


def get_db_pool() -> asyncpg.Pool:
    """The open pool.

    Raises:
        RuntimeError: before ``init_db_pool`` or after ``close_db_pool``
    """
    if _pool is None:
        raise RuntimeError("database pool is not open")
    return _pool


# ============================================================================
# REPOSITORIES AND SERVICES
# ============================================================================


def get_user_repository(pool: asyncpg.Pool = Depends(get_db_pool)) -> UserRepository:
    return UserRepository(pool)


def get_community_repository(pool: asyncpg.Pool = Depends(get_db_pool)) -> CommunityRepository:
    return CommunityRepository(pool)


def get_community_admin_repository(
    pool: asyncpg.Pool = Depends(get_db_pool)
) -> CommunityAdminRepository:
    return CommunityAdminRepository(pool)


def get_house_repository(pool: asyncpg.Pool = Depends(get_db_pool)) -> HouseRepository:
    return HouseRepository(pool)


def get_amenity_repository(pool: asyncpg.Pool = Depends(get_db_pool)) -> AmenityRepository:
    return AmenityRepository(pool)


def get_payment_repository(pool: asyncpg.Pool = Depends(get_db_pool)) -> PaymentRepository:
    return PaymentRepository(pool)


def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository)
) -> AuthService:
    return AuthService(user_repo)


def get_user_service(
    user_repo: UserRepository = Depends(get_user_repository),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserService:
    return UserService(user_repo, auth_service)


def get_community_service(
    community_repo: CommunityRepository = Depends(get_community_repository),
    community_admin_repo: CommunityAdminRepository = Depends(get_community_admin_repository),
    house_repo: HouseRepository = Depends(get_house_repository)
) -> CommunityService:
    return CommunityService(community_repo, community_admin_repo, house_repo)


def get_house_service(
    house_repo: HouseRepository = Depends(get_house_repository)
) -> HouseService:
    return HouseService(house_repo)


def get_amenity_service(
    amenity_repo: AmenityRepository = Depends(get_amenity_repository),
    community_repo: CommunityRepository = Depends(get_community_repository)
) -> AmenityService:
    return AmenityService(amenity_repo, community_repo)


def get_payment_service(
    payment_repo: PaymentRepository = Depends(get_payment_repository),
    house_repo: HouseRepository = Depends(get_house_repository),
    community_repo: CommunityRepository = Depends(get_community_repository)
) -> PaymentService:
    return PaymentService(payment_repo, house_repo, community_repo)


# ============================================================================
# AUTHENTICATION
# ============================================================================


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


async def get_token_from_header(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    """Bearer token from the ``Authorization`` header, or 401."""
    if credentials is None:
        logger.info("auth_token_missing")
        raise _unauthorized("Missing authentication credentials")

    if credentials.scheme.lower() != "bearer":
        logger.info("auth_scheme_rejected", scheme=credentials.scheme)
        raise _unauthorized("Invalid authentication scheme. Expected Bearer token")

    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_token_from_header),
    auth_service: AuthService = Depends(get_auth_service)
) -> CurrentUser:
    """
    The user the access token was issued to.

    A token that fails verification, or one naming a user that no longer
    exists, gives 401.
    """
    current_user = await auth_service.get_current_user(token)
    if current_user is None:
        logger.info("auth_token_rejected")
        raise _unauthorized("Invalid authentication token")

    return current_user


async def require_community_admin(
    community_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    community_service: CommunityService = Depends(get_community_service)
) -> Community:
    """
    The community named in the path, provided the caller administers it.

    Unknown community gives 404; a caller who is not one of its admins
    gets 403.
    """
    community = await community_service.get_community_details(community_id)
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Community {community_id} not found"
        )

    _check_admin(community_id, community.admins, current_user)
    return community


async def require_amenity_admin(
    amenity_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    amenity_service: AmenityService = Depends(get_amenity_service),
    community_service: CommunityService = Depends(get_community_service)
) -> Amenity:
    """The amenity named in the path, provided the caller administers its community."""
    amenity = await amenity_service.get_amenity_details(amenity_id)
    if amenity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Amenity {amenity_id} not found"
        )

    community = await community_service.get_community_details(amenity.community_id)
    admins = community.admins if community else set()
    _check_admin(amenity.community_id, admins, current_user)
    return amenity


def _check_admin(community_id: str, admins: Set[str], current_user: CurrentUser) -> None:
    if current_user.user_id not in admins:
        logger.info(
            "community_admin_required",
            community_id=community_id,
            user_id=current_user.user_id
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins of this community may change it"
        )


# ============================================================================
# REQUEST HELPERS
# ============================================================================


async def get_client_ip(request: Request) -> str:
    """First ``X-Forwarded-For`` hop when behind a proxy, else the peer address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


async def get_page_request(
    page: int = Query(0, ge=0, description="Zero-based page index"),
    size: Optional[int] = Query(None, ge=1, description="Page size")
) -> PageRequest:
    """
    Page requested through ``?page=&size=``.

    ``size`` defaults to ``pagination_default_limit`` and is capped at
    ``pagination_max_limit``.
    """
    settings = get_settings()

    if size is None:
        size = settings.pagination_default_limit

    return PageRequest(page_number=page, page_size=min(size, settings.pagination_max_limit))

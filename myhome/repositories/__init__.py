"""Data access layer.

Repositories wrap an asyncpg connection pool and translate between rows
and the domain records in ``myhome.models.domain``.
"""

from myhome.repositories.amenity_repo import AmenityRepository
from myhome.repositories.community_admin_repo import CommunityAdminRepository
from myhome.repositories.community_repo import CommunityRepository
from myhome.repositories.house_repo import HouseRepository
from myhome.repositories.payment_repo import PaymentRepository
from myhome.repositories.user_repo import UserRepository

__all__ = [
    "AmenityRepository",
    "CommunityAdminRepository",
    "CommunityRepository",
    "HouseRepository",
    "PaymentRepository",
    "UserRepository",
]

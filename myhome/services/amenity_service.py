"""
Amenity service.

Community amenities and their bookings. Admin checks for changes to an
amenity happen in the HTTP layer; cancelling a booking is checked here
because both the booking's owner and the community's admins may do it.
"""

import uuid

import structlog
from datetime import datetime
from typing import Iterable, List, Optional

from myhome.errors import AccessDeniedError
from myhome.models.amenity import AmenityRequest
from myhome.models.domain import Amenity, AmenityBooking
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.amenity_repo import AmenityRepository
from myhome.repositories.community_repo import CommunityRepository
from shared.metrics import ServiceMetrics, get_service_metrics

logger = structlog.get_logger(__name__)


class AmenityService:
    """Business operations on amenities and bookings."""

    def __init__(
        self,
        amenity_repo: AmenityRepository,
        community_repo: CommunityRepository,
        metrics: Optional[ServiceMetrics] = None
    ):
        self.amenity_repo = amenity_repo
        self.community_repo = community_repo
        self.metrics = metrics or get_service_metrics()

    async def get_amenity_details(self, amenity_id: str) -> Optional[Amenity]:
        return await self.amenity_repo.get_by_amenity_id(amenity_id)

    async def list_community_amenities(
        self,
        community_id: str,
        page_request: PageRequest
    ) -> Optional[Page[Amenity]]:
        """
        Page through the amenities of a community.

        Returns:
            Page of amenities, or None when the community does not exist
        """
        if not await self.community_repo.exists(community_id):
            return None
        return await self.amenity_repo.list_by_community(community_id, page_request)

    async def add_amenities_to_community(
        self,
        community_id: str,
        requests: Iterable[AmenityRequest]
    ) -> Optional[List[Amenity]]:
        """
        Create amenities in a community, generating an ID for each.

        Returns:
            Created amenities, or None when the community does not exist
        """
        if not await self.community_repo.exists(community_id):
            logger.debug("community_not_found", community_id=community_id)
            return None

        amenities = [
            Amenity(
                amenity_id=str(uuid.uuid4()),
                community_id=community_id,
                name=request.name,
                description=request.description,
                price=request.price
            )
            for request in requests
        ]
        added = await self.amenity_repo.add_amenities(amenities)
        self.metrics.records_created.labels(entity="amenity").inc(len(added))

        return added

    async def update_amenity(self, amenity_id: str, request: AmenityRequest) -> Optional[Amenity]:
        """Replace name, description and price; None when the amenity is gone."""
        amenity = await self.amenity_repo.get_by_amenity_id(amenity_id)
        if amenity is None:
            return None

        return await self.amenity_repo.update_amenity(
            amenity.model_copy(
                update={
                    "name": request.name,
                    "description": request.description,
                    "price": request.price
                }
            )
        )

    async def delete_amenity(self, amenity_id: str) -> bool:
        deleted = await self.amenity_repo.delete_amenity(amenity_id)
        if deleted:
            self.metrics.records_deleted.labels(entity="amenity").inc()
        return deleted

    async def book_amenity(
        self,
        amenity_id: str,
        user_id: str,
        booking_start: datetime,
        booking_end: datetime
    ) -> Optional[AmenityBooking]:
        """
        Reserve an amenity for ``user_id``.

        Returns:
            The booking, or None when the amenity does not exist

        Raises:
            BookingConflictError: The span overlaps another booking
        """
        booking = await self.amenity_repo.create_booking(
            AmenityBooking(
                booking_id=str(uuid.uuid4()),
                amenity_id=amenity_id,
                user_id=user_id,
                booking_start=booking_start,
                booking_end=booking_end
            )
        )
        if booking is not None:
            self.metrics.records_created.labels(entity="booking").inc()
        return booking

    async def list_bookings(
        self,
        amenity_id: str,
        page_request: PageRequest
    ) -> Optional[Page[AmenityBooking]]:
        """Bookings of an amenity, or None when the amenity does not exist."""
        if await self.amenity_repo.get_by_amenity_id(amenity_id) is None:
            return None
        return await self.amenity_repo.list_bookings(amenity_id, page_request)

    async def cancel_booking(self, amenity_id: str, booking_id: str, user_id: str) -> bool:
        """
        Delete a booking on behalf of ``user_id``.

        Returns:
            True if deleted, False if the amenity has no such booking

        Raises:
            AccessDeniedError: ``user_id`` neither made the booking nor
                administers the amenity's community
        """
        booking = await self.amenity_repo.get_booking(amenity_id, booking_id)
        if booking is None:
            return False

        if booking.user_id != user_id:
            amenity = await self.amenity_repo.get_by_amenity_id(amenity_id)
            community_id = amenity.community_id if amenity else ""
            community = await self.community_repo.get_by_community_id(community_id)
            if community is None or user_id not in community.admins:
                logger.info(
                    "booking_cancel_denied",
                    amenity_id=amenity_id,
                    booking_id=booking_id,
                    user_id=user_id
                )
                raise AccessDeniedError(user_id, community_id)

        deleted = await self.amenity_repo.delete_booking(amenity_id, booking_id)
        if deleted:
            self.metrics.records_deleted.labels(entity="booking").inc()
        return deleted

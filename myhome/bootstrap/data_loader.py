"""
Default data seeding.

Creates the default community, an admin for it and the default house, so a
fresh deployment has something to log into and query. Seeding is
insert-if-absent: records that already exist are left untouched, so the
loader can run on every start.
"""

import uuid
from typing import Optional

from myhome.errors import DuplicateRecordError
from myhome.models.domain import Community, CommunityAdmin, House
from myhome.repositories.community_admin_repo import CommunityAdminRepository
from myhome.repositories.community_repo import CommunityRepository
from myhome.repositories.house_repo import HouseRepository
from shared.logging import LoggerMixin
from shared.metrics import ServiceMetrics, get_service_metrics

DEFAULT_COMMUNITY_ID = "default-community-id-for-testing"
DEFAULT_COMMUNITY_NAME = "MyHome default community"
DEFAULT_COMMUNITY_DISTRICT = "MyHome default community district"

DEFAULT_HOUSE_ID = "default-house-id-for-testing"
DEFAULT_HOUSE_NAME = "MyHome default house"


class DataLoader(LoggerMixin):
    """Seeds the default community, admin and house at startup."""

    def __init__(
        self,
        community_repo: CommunityRepository,
        community_admin_repo: CommunityAdminRepository,
        house_repo: HouseRepository,
        metrics: Optional[ServiceMetrics] = None
    ):
        """
        Initialize data loader.

        Args:
            community_repo: Community repository
            community_admin_repo: Community admin repository
            house_repo: House repository
            metrics: Metrics to count seeded records on
        """
        self.community_repo = community_repo
        self.community_admin_repo = community_admin_repo
        self.house_repo = house_repo
        self.metrics = metrics or get_service_metrics()

    async def load_data(self) -> None:
        """
        Seed the default records that are missing.

        Raises:
            Exception: Any persistence error other than a concurrent insert
                of the same default record, unchanged
        """
        community = await self.community_repo.get_by_community_id(DEFAULT_COMMUNITY_ID)
        if community is None:
            try:
                await self._load_community()
            except DuplicateRecordError:
                # another worker seeded it between our lookup and insert
                self.logger.info("default_community_present", community_id=DEFAULT_COMMUNITY_ID)
        else:
            self.logger.info("default_community_present", community_id=DEFAULT_COMMUNITY_ID)

        house = await self.house_repo.get_by_house_id(DEFAULT_HOUSE_ID)
        if house is None:
            try:
                await self._load_house()
            except DuplicateRecordError:
                self.logger.info("default_house_present", house_id=DEFAULT_HOUSE_ID)
        else:
            self.logger.info("default_house_present", house_id=DEFAULT_HOUSE_ID)

        self.logger.info("default_data_loaded")

    async def _load_community(self) -> None:
        saved_community = await self.community_repo.save_community(
            Community(
                community_id=DEFAULT_COMMUNITY_ID,
                name=DEFAULT_COMMUNITY_NAME,
                district=DEFAULT_COMMUNITY_DISTRICT
            )
        )

        saved_admin = await self.community_admin_repo.save_community_admin(
            CommunityAdmin(
                admin_id=str(uuid.uuid4()),
                communities={saved_community.community_id}
            )
        )

        saved_community.admins.add(saved_admin.admin_id)
        await self.community_repo.save_community(saved_community)

        self.metrics.seeded_records.labels(entity="community").inc()
        self.metrics.seeded_records.labels(entity="community_admin").inc()
        self.logger.info(
            "default_community_created",
            community_id=saved_community.community_id,
            admin_id=saved_admin.admin_id
        )

    async def _load_house(self) -> None:
        await self.house_repo.save_house(
            House(
                house_id=DEFAULT_HOUSE_ID,
                community_id=DEFAULT_COMMUNITY_ID,
                name=DEFAULT_HOUSE_NAME
            )
        )

        self.metrics.seeded_records.labels(entity="house").inc()
        self.logger.info("default_house_created", house_id=DEFAULT_HOUSE_ID)

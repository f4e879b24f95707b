"""
Request and response schemas for community and house endpoints.
"""

from typing import Annotated, List, Set

from pydantic import BaseModel, Field

from myhome.models.pagination import PageInfo


# ============================================================================
# Community Schemas
# ============================================================================


class CreateCommunityRequest(BaseModel):
    """Create community request schema."""
    name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="Community name"
    )
    district: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="District the community belongs to"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Green Park",
                "district": "North"
            }
        }
    }


class CreateCommunityResponse(BaseModel):
    """Create community response schema."""
    community_id: str


class CommunityResponse(BaseModel):
    """Community details."""
    community_id: str
    name: str
    district: str

    model_config = {
        "from_attributes": True
    }


class ListCommunitiesResponse(BaseModel):
    """Paged list of communities."""
    communities: List[CommunityResponse]
    page_info: PageInfo


AdminId = Annotated[str, Field(min_length=1, max_length=64)]


class AddCommunityAdminRequest(BaseModel):
    """Admins to add to a community."""
    admins: Set[AdminId] = Field(
        ...,
        min_length=1,
        description="Admin IDs"
    )


class AddCommunityAdminResponse(BaseModel):
    """All admins of the community after the update."""
    admins: Set[str]


class CommunityAdminResponse(BaseModel):
    """Community admin details."""
    admin_id: str

    model_config = {
        "from_attributes": True
    }


class ListCommunityAdminsResponse(BaseModel):
    """Paged list of community admins."""
    admins: List[CommunityAdminResponse]
    page_info: PageInfo


# ============================================================================
# House Schemas
# ============================================================================


class HouseName(BaseModel):
    """Name of a house to create."""
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="House name"
    )


class AddCommunityHouseRequest(BaseModel):
    """Houses to add to a community."""
    houses: List[HouseName] = Field(
        ...,
        min_length=1,
        description="Houses to create"
    )


class AddCommunityHouseResponse(BaseModel):
    """IDs of the houses that were created."""
    houses: Set[str]


class HouseResponse(BaseModel):
    """House details."""
    house_id: str
    community_id: str
    name: str

    model_config = {
        "from_attributes": True
    }


class ListHousesResponse(BaseModel):
    """Paged list of houses."""
    houses: List[HouseResponse]
    page_info: PageInfo


# ============================================================================
# House Member Schemas
# ============================================================================


class HouseMemberRequest(BaseModel):
    """House member to add."""
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Member name"
    )


class AddHouseMemberRequest(BaseModel):
    """Members to add to a house."""
    members: List[HouseMemberRequest] = Field(
        ...,
        min_length=1,
        description="Members to add"
    )


class HouseMemberResponse(BaseModel):
    """House member details."""
    member_id: str
    name: str

    model_config = {
        "from_attributes": True
    }


class AddHouseMemberResponse(BaseModel):
    """Members that were added."""
    members: List[HouseMemberResponse]


class ListHouseMembersResponse(BaseModel):
    """Paged list of house members."""
    members: List[HouseMemberResponse]
    page_info: PageInfo

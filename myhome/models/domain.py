"""
Domain records persisted by the repositories.

References between records are held as sets of public identifiers
(``community_id``, ``admin_id``, ``house_id``, ``member_id``,
``amenity_id``) rather than
nested objects, so every record can be loaded and saved on its own.
``id`` is the database surrogate key and stays ``None`` until the record
has been inserted.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Set

from pydantic import BaseModel, Field


class Community(BaseModel):
    """A named residential grouping with a district and administrators."""

    id: Optional[int] = None
    community_id: str
    name: str
    district: str
    admins: Set[str] = Field(default_factory=set)
    houses: Set[str] = Field(default_factory=set)

    def __repr__(self) -> str:
        return f"<Community(community_id='{self.community_id}', name='{self.name}')>"


class CommunityAdmin(BaseModel):
    """A person granted administrative rights over one or more communities."""

    id: Optional[int] = None
    admin_id: str
    communities: Set[str] = Field(default_factory=set)


class House(BaseModel):
    """A dwelling unit belonging to exactly one community."""

    id: Optional[int] = None
    house_id: str
    community_id: str
    name: str
    members: Set[str] = Field(default_factory=set)


class HouseMember(BaseModel):
    """A person living in a house."""

    id: Optional[int] = None
    member_id: str
    name: str
    house_id: Optional[str] = None


class UserDB(BaseModel):
    """User account as stored in the database."""

    id: Optional[int] = None
    user_id: str
    name: str
    email: str
    email_confirmed: bool = False
    encrypted_password: str
    created_at: Optional[datetime] = None


class Amenity(BaseModel):
    """A bookable facility of a community, such as a gym or a party room."""

    id: Optional[int] = None
    amenity_id: str
    community_id: str
    name: str
    description: str = ""
    price: Decimal = Decimal("0")


class AmenityBooking(BaseModel):
    """A user's reservation of an amenity over a time span."""

    id: Optional[int] = None
    booking_id: str
    amenity_id: str
    user_id: str
    booking_start: datetime
    booking_end: datetime


class Payment(BaseModel):
    """A charge an admin schedules for a house member."""

    id: Optional[int] = None
    payment_id: str
    charge: Decimal
    type: str
    description: str = ""
    recurring: bool = False
    due_date: date
    admin_id: str
    member_id: str

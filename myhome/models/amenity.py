"""
Request and response schemas for amenity and booking endpoints.
"""

from decimal import Decimal
from typing import List

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from myhome.models.pagination import PageInfo


# ============================================================================
# Amenity Schemas
# ============================================================================


class AmenityRequest(BaseModel):
    """Amenity fields set on creation and replaced on update."""
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=1024)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Gym",
                "description": "Ground floor, open 6am to 10pm",
                "price": "5.00"
            }
        }
    }


class AddAmenityRequest(BaseModel):
    """Amenities to add to a community."""
    amenities: List[AmenityRequest] = Field(..., min_length=1)


class AmenityResponse(BaseModel):
    """Amenity details. ``price`` is serialised as a decimal string."""
    amenity_id: str
    community_id: str
    name: str
    description: str
    price: Decimal

    model_config = {
        "from_attributes": True
    }


class AddAmenityResponse(BaseModel):
    amenities: List[AmenityResponse]


class ListAmenitiesResponse(BaseModel):
    """Paged list of amenities."""
    amenities: List[AmenityResponse]
    page_info: PageInfo


# ============================================================================
# Booking Schemas
# ============================================================================


class BookingRequest(BaseModel):
    """
    Time span to reserve. Both ends need a UTC offset and the end must come
    after the start.
    """
    booking_start: AwareDatetime
    booking_end: AwareDatetime

    @model_validator(mode="after")
    def check_span(self) -> "BookingRequest":
        if self.booking_end <= self.booking_start:
            raise ValueError("booking_end must be after booking_start")
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "booking_start": "2020-06-01T18:00:00Z",
                "booking_end": "2020-06-01T20:00:00Z"
            }
        }
    }


class BookingResponse(BaseModel):
    booking_id: str
    amenity_id: str
    user_id: str
    booking_start: AwareDatetime
    booking_end: AwareDatetime

    model_config = {
        "from_attributes": True
    }


class ListBookingsResponse(BaseModel):
    """Paged list of bookings, earliest first."""
    bookings: List[BookingResponse]
    page_info: PageInfo

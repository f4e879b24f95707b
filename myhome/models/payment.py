"""
Request and response schemas for payment endpoints.
"""

from datetime import date
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from myhome.models.pagination import PageInfo


class SchedulePaymentRequest(BaseModel):
    """A charge to schedule for a house member."""
    member_id: str = Field(..., min_length=1, max_length=64)
    charge: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    type: str = Field(..., min_length=1, max_length=64, description="e.g. maintenance, rent")
    description: str = Field("", max_length=1024)
    recurring: bool = False
    due_date: date

    model_config = {
        "json_schema_extra": {
            "example": {
                "member_id": "2f1b8c1e-1d7a-4c4b-9b0c-52a9f1a3c111",
                "charge": "120.50",
                "type": "maintenance",
                "description": "Quarterly maintenance fee",
                "recurring": True,
                "due_date": "2020-07-01"
            }
        }
    }


class PaymentResponse(BaseModel):
    """Scheduled payment. ``charge`` is serialised as a decimal string."""
    payment_id: str
    charge: Decimal
    type: str
    description: str
    recurring: bool
    due_date: date
    admin_id: str
    member_id: str

    model_config = {
        "from_attributes": True
    }


class ListPaymentsResponse(BaseModel):
    """Paged list of payments, by due date."""
    payments: List[PaymentResponse]
    page_info: PageInfo

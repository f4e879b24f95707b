"""
Request and response bodies for the user and login endpoints, plus the
token claims and the ``CurrentUser`` handed to authenticated routes.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from myhome.models.pagination import PageInfo

EXAMPLE_USER_ID = "550e8400-e29b-41d4-a716-446655440000"


# ============================================================================
# Requests
# ============================================================================


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Email the account was registered with")
    password: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"email": "jane@example.com", "password": "SecurePassword123"}
        }
    }


class CreateUserRequest(BaseModel):
    """Sign-up form. The name is stored trimmed."""
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=80)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        name = v.strip()
        if not name:
            raise ValueError("Name must not be blank")
        return name

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Jane Doe",
                "email": "jane@example.com",
                "password": "SecurePassword123"
            }
        }
    }


# ============================================================================
# Responses
# ============================================================================


class TokenResponse(BaseModel):
    """Body of a successful login."""
    access_token: str = Field(..., min_length=10)
    token_type: str = "bearer"
    expires_in: int = Field(..., gt=0, description="Seconds until the token expires")
    user_id: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "access_token": "eyJhbGciOiJIUzUxMiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 3600,
                "user_id": EXAMPLE_USER_ID
            }
        }
    }


class UserResponse(BaseModel):
    """Public view of a user; the password hash is never included."""
    user_id: str
    name: str
    email: str
    email_confirmed: bool = False
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "user_id": EXAMPLE_USER_ID,
                "name": "Jane Doe",
                "email": "jane@example.com",
                "email_confirmed": False,
                "created_at": "2020-05-01T10:30:00Z"
            }
        }
    }


class ListUsersResponse(BaseModel):
    users: List[UserResponse]
    page_info: PageInfo


class ErrorResponse(BaseModel):
    detail: str = Field(..., min_length=1)


# ============================================================================
# Tokens
# ============================================================================


class TokenPayload(BaseModel):
    """Verified access token claims. ``sub`` is the public user id."""
    sub: str
    exp: int = Field(..., description="Expiry, seconds since the epoch")
    iat: int = Field(..., description="Issue time, seconds since the epoch")


class CurrentUser(BaseModel):
    """The caller of an authenticated route, resolved from its token."""
    user_id: str
    name: str
    email: str

    model_config = {"from_attributes": True}

"""
Database schema for the MyHome service.

Uses SQLAlchemy 2.0 declarative syntax to describe the PostgreSQL tables.
Repositories talk to the database through asyncpg with hand-written SQL;
this metadata is the single source of the DDL emitted by
``myhome.repositories.schema.create_schema``.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger, Boolean, Column, Date, DateTime, ForeignKey, Index, Numeric, String, Table, text
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ============================================================================
# SQLAlchemy Base
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all table models."""
    pass


# ============================================================================
# Association Tables
# ============================================================================


# Many-to-many relationship between communities and their admins
community_admin_links = Table(
    "community_admin_links",
    Base.metadata,
    Column(
        "community_id",
        String(64),
        ForeignKey("communities.community_id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False
    ),
    Column(
        "admin_id",
        String(64),
        ForeignKey("community_admins.admin_id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False
    ),
    Index("idx_community_admin_links_admin_id", "admin_id"),
)


# ============================================================================
# Table Models
# ============================================================================


class UserModel(Base):
    """User accounts."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email_confirmed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false")
    )
    encrypted_password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        Index("idx_users_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<UserModel(user_id='{self.user_id}', email='{self.email}')>"


class CommunityModel(Base):
    """Communities."""
    __tablename__ = "communities"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    community_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    district: Mapped[str] = mapped_column(String(255), nullable=False)


class CommunityAdminModel(Base):
    """Community administrators."""
    __tablename__ = "community_admins"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    admin_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)


class HouseModel(Base):
    """Houses, each owned by one community."""
    __tablename__ = "houses"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    house_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    community_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("communities.community_id", ondelete="CASCADE"),
        nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        Index("idx_houses_community_id", "community_id"),
    )


class HouseMemberModel(Base):
    """Members living in a house."""
    __tablename__ = "house_members"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    member_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    house_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("houses.house_id", ondelete="CASCADE"),
        nullable=False
    )

    __table_args__ = (
        Index("idx_house_members_house_id", "house_id"),
    )


class AmenityModel(Base):
    """Amenities offered by a community."""
    __tablename__ = "amenities"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    amenity_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    community_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("communities.community_id", ondelete="CASCADE"),
        nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        server_default=text("''")
    )
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    __table_args__ = (
        Index("idx_amenities_community_id", "community_id"),
    )


class AmenityBookingModel(Base):
    """Reservations of an amenity; spans of one amenity never overlap."""
    __tablename__ = "amenity_bookings"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    booking_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    amenity_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("amenities.amenity_id", ondelete="CASCADE"),
        nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False
    )
    booking_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    booking_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_amenity_bookings_amenity_id", "amenity_id", "booking_start"),
    )


class PaymentModel(Base):
    """Charges scheduled by a community admin for a house member."""
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    payment_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    charge: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        server_default=text("''")
    )
    recurring: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false")
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    # admins are not required to hold a user account, so no foreign key
    admin_id: Mapped[str] = mapped_column(String(64), nullable=False)
    member_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("house_members.member_id", ondelete="CASCADE"),
        nullable=False
    )

    __table_args__ = (
        Index("idx_payments_member_id", "member_id"),
        Index("idx_payments_admin_id", "admin_id"),
    )

"""SQLAlchemy model for platform users."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from campus_feed.db.session import Base


class Role(str, Enum):
    """Platform role assigned at registration."""

    STUDENT = "student"
    EMPLOYEE = "employee"
    INSTITUTION = "institution"
    SUPER_ADMIN = "super_admin"


class User(Base):
    """An authenticated account.

    Institution membership and role are owned by the account-management
    features; this service only reads them.
    """

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    institution_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("institution.id"),
        nullable=True,
    )
    # Employees flagged as staff act for their institution.
    is_staff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

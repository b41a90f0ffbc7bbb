"""SQLAlchemy models for clubs and their membership."""

from enum import Enum

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from campus_feed.db.session import Base


class ClubStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ClubRole(str, Enum):
    MEMBER = "member"
    OFFICER = "officer"


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Club(Base):
    """A student organisation hosted by an institution."""

    __tablename__ = "club"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    institution_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("institution.id"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ClubStatus] = mapped_column(
        SAEnum(ClubStatus, native_enum=False, length=16, values_callable=_values),
        nullable=False,
        default=ClubStatus.APPROVED,
    )


class ClubMember(Base):
    """Join table mapping students into clubs with a role."""

    __tablename__ = "club_member"

    club_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("club.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[ClubRole] = mapped_column(
        SAEnum(ClubRole, native_enum=False, length=16, values_callable=_values),
        nullable=False,
        default=ClubRole.MEMBER,
    )


class ClubAdvisor(Base):
    """Employee assigned to advise a club."""

    __tablename__ = "club_advisor"

    club_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("club.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )

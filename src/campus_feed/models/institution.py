"""Institution reference data."""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from campus_feed.db.session import Base


class Institution(Base):
    """A school or university; the root of every visibility scope."""

    __tablename__ = "institution"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

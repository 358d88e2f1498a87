"""
PlaceShare Backend — Place SQLAlchemy Model
=============================================

What:  ORM model representing the `places` table.
Who:   Used by placeshare.store.sql for CRUD and by Alembic.

Column notes:
    - id: string UUID assigned on insert, never changed
    - lat/lng: resolved once from `address` when the place is created
    - image: path relative to STORAGE_ROOT, set once at creation
    - creator: owning user; set once at creation, never reassigned
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placeshare.database import Base


class Place(Base):
    """
    A place record owned by exactly one user.

    Lifecycle:
        1. Inserted by the create transaction together with a user_places row
        2. title/description may be overwritten by updates
        3. Deleted by the delete transaction together with its user_places row
    """

    __tablename__ = "places"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)
    image: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Relative path from storage root to the uploaded image",
    )
    creator: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Place(id={self.id}, creator={self.creator}, title='{self.title}')>"

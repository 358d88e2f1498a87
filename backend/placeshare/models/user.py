"""
PlaceShare Backend — User & Membership SQLAlchemy Models
==========================================================

What:  ORM models for the `users` table and the `user_places` membership table.
How:   `user_places` holds one row per (user, place) pair. Its autoincrementing
       `seq` column orders a user's places by creation; the UNIQUE constraint
       on `place_id` means a place is listed under at most one user, once.
Who:   Used by placeshare.store.sql and by Alembic.

Why a membership table rather than an array column on users:
    Appending a place is an INSERT, so two concurrent creates for the same
    user never overwrite each other's append.
"""

import uuid

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from placeshare.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """An account that owns places."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=_new_id,
        comment="Opaque user identifier",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class UserPlace(Base):
    """
    Back-reference from a user to one of the places they own.

    Written only inside the create/delete transactions, together with the
    matching `places` row.
    """

    __tablename__ = "user_places"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    place_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("places.id", ondelete="CASCADE"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("place_id", name="uq_user_places_place_id"),
    )

    def __repr__(self) -> str:
        return f"<UserPlace(user_id={self.user_id}, place_id={self.place_id}, seq={self.seq})>"

"""SQLAlchemy ORM models for cached heroes, accounts, and favorites."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Hero(Base):
    """A hero copied from the Superhero API on first cache miss.

    Rows are written once and never refreshed. Nested provider sections are
    stored as JSON documents in their canonical snake_case form.
    """

    __tablename__ = "heroes"
    __table_args__ = (Index("ix_heroes_name_id", "name", "id"),)

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        doc="Identifier assigned by the Superhero API.",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        server_default="",
        index=True,
        doc="Denormalised biography full name used by search.",
    )
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    powerstats: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    biography: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    appearance: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    work: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    connections: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class User(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        doc="bcrypt hash; plaintext passwords are never stored.",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    favorites: Mapped[list[FavoriteEntry]] = relationship(
        "FavoriteEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="FavoriteEntry.position",
    )

    @validates("email")
    def _lowercase_email(self, key: str, value: str) -> str:
        return value.strip().lower()


class FavoriteEntry(Base):
    """One hero favorited by one user, with an optional reason."""

    __tablename__ = "favorite_entries"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "hero_id",
            name="uq_favorite_entries_user_hero",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    hero_id: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        index=True,
        doc=(
            "Provider id of the favorited hero. Deliberately not a foreign key:"
            " entries reference heroes, they do not own them."
        ),
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        doc="Zero-based insertion order within the user's favorites, kept dense.",
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    user: Mapped[User] = relationship("User", back_populates="favorites")


__all__ = ["Base", "FavoriteEntry", "Hero", "User", "utcnow"]

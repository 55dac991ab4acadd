# SQLAlchemy ORM models (database schema)
# app/data_access/models.py

# Pydantic models in `app/models/` describe the API; the classes below describe
# the relational tables they are persisted to.

from datetime import date, datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all ORM models."""
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column("createdAt", DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        "updatedAt", DateTime(timezone=True), nullable=True, default=None, onupdate=utcnow
    )


class User(TimestampMixin, Base):
    __tablename__ = "User"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    first_name: Mapped[str] = mapped_column("firstName", String(255), nullable=False)
    last_name: Mapped[str] = mapped_column("lastName", String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column("passwordHash", String(255), nullable=False)
    birth_date: Mapped[date] = mapped_column("birthDate", Date, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"


class Cinema(TimestampMixin, Base):
    __tablename__ = "Cinema"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column("userId", ForeignKey("User.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(50), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)


class IndicativeRating(TimestampMixin, Base):
    __tablename__ = "IndicativeRating"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    description: Mapped[str] = mapped_column(String(4), nullable=False, unique=True)
    image_url: Mapped[str] = mapped_column("imageUrl", String(255), nullable=False)


class Movie(TimestampMixin, Base):
    __tablename__ = "Movie"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    indicative_rating_id: Mapped[UUID] = mapped_column(
        "indicativeRatingId", ForeignKey("IndicativeRating.id"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column("userId", ForeignKey("User.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column("deletedAt", DateTime(timezone=True), nullable=True)

    indicative_rating: Mapped[IndicativeRating] = relationship(lazy="selectin")
    images: Mapped[List["MovieImage"]] = relationship(
        back_populates="movie",
        lazy="selectin",
        order_by="MovieImage.created_at",
    )


class MovieImage(TimestampMixin, Base):
    __tablename__ = "MovieImage"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    movie_id: Mapped[UUID] = mapped_column("movieId", ForeignKey("Movie.id"), nullable=False, index=True)
    image_url: Mapped[str] = mapped_column("imageUrl", String(255), nullable=False)
    storage_id: Mapped[str] = mapped_column("storageId", String(255), nullable=False, unique=True)

    movie: Mapped[Movie] = relationship(back_populates="images")

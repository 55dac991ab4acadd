# app/models/movie.py

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Request Models ---
class MoviePayload(BaseModel):
    """Movie fields of the multipart create request (images travel as separate file parts)."""
    model_config = ConfigDict(populate_by_name=True)

    indicative_rating_id: UUID = Field(..., alias="indicativeRatingId")
    title: str = Field(..., min_length=1, max_length=255)
    duration: int = Field(..., gt=0, description="Running time in minutes.")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class MovieUpdatePayload(BaseModel):
    """Partial update; only fields that are present are changed."""
    model_config = ConfigDict(populate_by_name=True)

    indicative_rating_id: Optional[UUID] = Field(None, alias="indicativeRatingId")
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    duration: Optional[int] = Field(None, gt=0)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


# --- Response Models ---
class IndicativeRatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    description: str
    image_url: str = Field(..., alias="imageUrl")


class MovieImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    image_url: str = Field(..., alias="imageUrl")


class MovieResponse(BaseModel):
    """Movie as returned by the admin endpoints."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    title: str
    duration: int
    indicative_rating: Optional[IndicativeRatingResponse] = Field(None, alias="indicativeRating")
    images: List[MovieImageResponse] = Field(default_factory=list, alias="movieImages")


class MovieCreatedResponse(MovieResponse):
    """Create response; images appear on the movie once the upload queue has processed them."""
    queued_images: int = Field(0, alias="queuedImages")

# app/models/cinema.py

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CinemaPayload(BaseModel):
    """Model used for validating the request body when creating a cinema."""
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=2, max_length=50)
    capacity: int = Field(..., gt=0, description="Total number of seats.")

    @field_validator("name", "address", "city", "state", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CinemaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    address: str
    city: str
    state: str
    capacity: int

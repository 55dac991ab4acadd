from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class Session(BaseModel):
    """Server-side session record stored in the cache under the token's session id."""
    session_id: str = Field(..., alias="sessionId")
    user_id: UUID = Field(..., alias="userId")
    email: str
    first_name: str = Field(..., alias="firstName")
    created_at: datetime = Field(..., alias="createdAt")

    model_config = {"populate_by_name": True}

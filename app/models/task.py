# Messages carried by the image task queues
# app/models/task.py

from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class TaskMessage(BaseModel):
    """Common envelope fields of every queued task."""
    model_config = ConfigDict(
        populate_by_name=True,
        # Raw image bytes travel as base64 inside the JSON message
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )

    task_id: UUID = Field(default_factory=uuid4, alias="taskId")
    attempts: int = Field(0, ge=0, description="Failed deliveries so far.")


class MovieImageUploadTask(TaskMessage):
    movie_id: UUID = Field(..., alias="movieId")
    user_id: UUID = Field(..., alias="userId")
    image: bytes
    content_type: str = Field("image/jpeg", alias="contentType")


class MovieImageDeleteTask(TaskMessage):
    movie_id: UUID = Field(..., alias="movieId")
    storage_id: str = Field(..., alias="storageId")

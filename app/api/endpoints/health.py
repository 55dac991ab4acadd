# /health endpoint

# app/api/endpoints/health.py

from fastapi import APIRouter, status
from pydantic import BaseModel

router = APIRouter()

class HealthResponse(BaseModel):
    status: str = "ok"

@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Perform a Health Check",
    response_description="Returns the health status of the API.",
)
async def health_check():
    """
    Simple health check endpoint to confirm the API is running.
    Kept free of DB/cache calls so it stays fast for liveness probes.
    """
    return HealthResponse(status="ok")

from datetime import datetime, timezone
from fastapi import APIRouter, status
from pydantic import BaseModel


class HealthDTO(BaseModel):
    status: str
    timestamp: datetime


router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK, response_model=HealthDTO)
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc)}

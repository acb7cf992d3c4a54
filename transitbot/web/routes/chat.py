"""Chat route: one rider message in, one assistant reply out."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

router = APIRouter(prefix="/api", tags=["chat"])


class Coordinates(BaseModel):
    lat: float
    lng: float


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    message: str = Field(min_length=1)
    user_location: Coordinates | None = Field(default=None, alias="userLocation")


@router.post("/chat")
async def chat(body: ChatRequest, request: Request) -> JSONResponse:
    assistant = request.app.state.assistant
    location = body.user_location.model_dump() if body.user_location else None

    result = await assistant.handle_turn(body.user_id, body.message, location)

    return JSONResponse(
        {
            "userId": result.user_id,
            "message": result.reply,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "sessionInfo": result.session_summary,
            "contextActive": True,
            "degraded": result.degraded,
            "canRetry": result.retryable,
        }
    )

"""Conversation inspection and reset routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/api", tags=["context"])


@router.get("/conversation/{user_id}")
async def get_conversation(user_id: str, request: Request) -> JSONResponse:
    store = request.app.state.assistant.store
    is_active = store.is_active(user_id)
    return JSONResponse(
        {
            "summary": store.summarize(user_id),
            "recentHistory": store.recent_history(user_id, limit=10),
            "isActive": is_active,
        }
    )


@router.post("/context/{user_id}/reset")
async def reset_context(user_id: str, request: Request) -> JSONResponse:
    request.app.state.assistant.reset_session(user_id)
    return JSONResponse(
        {
            "success": True,
            "message": "Conversation context reset successfully",
            "userId": user_id,
        }
    )

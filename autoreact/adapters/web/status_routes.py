"""Status HTTP routes — read-only view of the loop plus runtime emoji change."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI, HTTPException
from pydantic import BaseModel

from autoreact.domain.engine import ReactionEngine


class StatusResponse(BaseModel):
    channel_id: int
    emoji: str
    probability_percent: float
    last_seen_id: Optional[str] = None
    cursor_updated: Optional[str] = None
    current_interval_ms: int
    consecutive_errors: int
    in_flight: int
    busy: bool
    stats: Dict[str, Any]


class EmojiRequest(BaseModel):
    emoji: str


class EmojiResponse(BaseModel):
    success: bool
    emoji: str


def create_status_router(engine: ReactionEngine) -> APIRouter:
    router = APIRouter(tags=["Status"])

    @router.get("/status", response_model=StatusResponse)
    async def status():
        return StatusResponse(
            channel_id=engine.channel_id,
            emoji=engine.policy.emoji,
            probability_percent=engine.policy.probability_percent,
            last_seen_id=engine.cursor.last_seen_id,
            cursor_updated=engine.cursor.last_updated,
            current_interval_ms=engine.backoff.current_interval_ms,
            consecutive_errors=engine.backoff.consecutive_errors,
            in_flight=engine.in_flight,
            busy=engine.busy,
            stats=engine.stats.summary(),
        )

    @router.post("/emoji", response_model=EmojiResponse)
    async def change_emoji(req: EmojiRequest):
        if not engine.change_emoji(req.emoji):
            raise HTTPException(status_code=400, detail="emoji must not be empty")
        return EmojiResponse(success=True, emoji=engine.policy.emoji)

    return router


def create_status_app(engine: ReactionEngine) -> FastAPI:
    app = FastAPI(title="autoreact status")
    app.include_router(create_status_router(engine))
    return app

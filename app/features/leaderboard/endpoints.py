#Leaderboard feature - family points ranking, snapshot and live stream
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect

from app.common.schemas import ErrorResponse
from app.db.record_store import StoreError, StoreUnavailableError
from .schemas import LeaderboardEntry
from .service import leaderboard_service

logger = logging.getLogger("leaderboard.endpoints")

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


def _err(status: int, code: str, message: str):
    return HTTPException(status_code=status, detail={"error_code": code, "message": message})


@router.get("", response_model=List[LeaderboardEntry], responses={503: {"model": ErrorResponse}})
async def get_leaderboard(limit: Optional[int] = Query(default=None, ge=1, le=100)):
    try:
        return await leaderboard_service.get_leaderboard(limit)
    except StoreUnavailableError as e:
        raise _err(503, "E_STORE_UNAVAILABLE", str(e) or "Could not reach the data source")


@router.websocket("/ws")
async def leaderboard_stream(websocket: WebSocket, limit: Optional[int] = None):
    """Send the full ranked leaderboard on connect and again after every change."""
    await websocket.accept()

    async def push(entries: List[LeaderboardEntry]) -> None:
        await websocket.send_json([entry.model_dump(mode="json") for entry in entries])

    try:
        subscription = await leaderboard_service.subscribe_to_leaderboard(push, limit)
    except StoreError as exc:
        code = "E_STORE_UNAVAILABLE" if isinstance(exc, StoreUnavailableError) else "E_SUBSCRIBE_FAILED"
        await websocket.send_json({"error_code": code, "message": str(exc)})
        await websocket.close(code=1011)
        return

    try:
        while True:
            # Client messages are ignored; reading only detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("leaderboard_stream_closed")
    finally:
        await subscription.close()

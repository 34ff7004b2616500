#Garden feature - class garden for teachers, anonymised summaries and own children for parents
import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from app.common.schemas import ErrorResponse
from app.db.record_store import StoreUnavailableError
from app.features.progress.service import ClassProgressTracker
from .schemas import ClassGarden, ClassSummary, ParentGarden
from .service import garden_service

logger = logging.getLogger("garden.endpoints")

router = APIRouter(prefix="/garden", tags=["garden"])

_UNAVAILABLE = {503: {"model": ErrorResponse}}


def _err(status: int, code: str, message: str):
    return HTTPException(status_code=status, detail={"error_code": code, "message": message})


def _unavailable(exc: StoreUnavailableError):
    return _err(503, "E_STORE_UNAVAILABLE", str(exc) or "Could not reach the data source")


@router.get("/classes/{class_id}", response_model=ClassGarden, responses=_UNAVAILABLE)
async def get_class_garden(class_id: str):
    try:
        return await garden_service.get_class_garden(class_id)
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.get("/classes/{class_id}/summary", response_model=ClassSummary, responses=_UNAVAILABLE)
async def get_class_summary(class_id: str):
    try:
        return await garden_service.get_class_summary(class_id)
    except StoreUnavailableError as e:
        raise _unavailable(e)


#parents only ever see their own children by name
@router.get("/parents/{parent_id}", response_model=ParentGarden, responses=_UNAVAILABLE)
async def get_parent_garden(parent_id: str):
    try:
        return await garden_service.get_parent_garden(parent_id)
    except StoreUnavailableError as e:
        raise _unavailable(e)


@router.websocket("/ws")
async def garden_stream(websocket: WebSocket):
    """Push the class garden for whichever class the client selected last.

    The client sends ``{"class_id": "..."}`` whenever the selection changes.
    A garden still being computed for an earlier selection is discarded.
    """
    await websocket.accept()
    tracker = ClassProgressTracker(garden_service.get_class_garden)
    pending = set()

    async def _load(class_id: str) -> None:
        try:
            garden = await tracker.load(class_id)
        except StoreUnavailableError as exc:
            payload = {"error_code": "E_STORE_UNAVAILABLE", "message": str(exc)}
        else:
            if garden is None:
                return
            payload = garden.model_dump(mode="json")
        try:
            await websocket.send_json(payload)
        except (WebSocketDisconnect, RuntimeError):
            logger.info("garden_stream_gone class=%s", class_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                message = None
            class_id = message.get("class_id") if isinstance(message, dict) else None
            if not class_id:
                await websocket.send_json({"error_code": "E_INVALID_INPUT", "message": "class_id is required"})
                continue
            # Not awaited: a newer selection must be able to supersede this one
            task = asyncio.create_task(_load(str(class_id)))
            pending.add(task)
            task.add_done_callback(pending.discard)
    except WebSocketDisconnect:
        logger.info("garden_stream_closed class=%s", tracker.class_id)
    finally:
        tracker.close()
        for task in list(pending):
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

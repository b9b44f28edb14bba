# backend/trip_planner/api/routes_places.py

import asyncio
from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect
from typing import List, Optional

from trip_planner.core.config_loader import settings
from trip_planner.core.logger import logger
from trip_planner.db.sqlite_store import SQLiteStore
from trip_planner.models.place_models import PlaceRatingPatch, PlaceRatingUpdateIn
from trip_planner.services.place_service import PlaceService
from trip_planner.services.realtime_service import rating_feed

router = APIRouter(prefix="/places", tags=["places"])

db = SQLiteStore()
places = PlaceService(store=db)


# --------------------------
# Browse catalog
# --------------------------
@router.get("")
def list_places(
    region: List[str] = Query(default=[]),
    sort: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    catalog = places.list_places(region or None)
    page, total = places.browse(catalog, sort=sort, query=q, limit=limit, offset=offset)
    return {"items": [p.model_dump() for p in page], "total": total}


# --------------------------
# Realtime rating updates
# --------------------------
@router.websocket("/ws")
async def rating_updates(websocket: WebSocket):
    queue: "asyncio.Queue[PlaceRatingPatch]" = asyncio.Queue(maxsize=settings.realtime_queue_size)
    unsubscribe = rating_feed.subscribe_queue(asyncio.get_running_loop(), queue)
    await websocket.accept()

    async def forward():
        while True:
            patch = await queue.get()
            await websocket.send_json(patch.model_dump(exclude_none=True))

    sender = asyncio.create_task(forward())
    try:
        # clients only listen; this returns when they disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Rating feed client disconnected")
    finally:
        sender.cancel()
        unsubscribe()


# --------------------------
# Single place
# --------------------------
@router.get("/{place_id}")
def get_place(place_id: str):
    place = places.get_place(place_id)
    if place is None:
        raise HTTPException(404, "Place not found")
    return place.model_dump()


@router.patch("/{place_id}/rating")
def update_rating(place_id: str, data: PlaceRatingUpdateIn):
    patch = places.update_rating(place_id, data.model_dump(exclude_none=True))
    if patch is None:
        raise HTTPException(404, "Place not found")
    return patch.model_dump(exclude_none=True)

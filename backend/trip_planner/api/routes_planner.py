# backend/trip_planner/api/routes_planner.py

from fastapi import APIRouter, Header, HTTPException, Query
from typing import Optional

from trip_planner.core.errors import (
    InvalidDateRange,
    PersistenceError,
    PlaceNotFound,
    PlanValidationError,
    SaveInProgress,
    SessionNotFound,
    TripNotFound,
)
from trip_planner.core.logger import logger
from trip_planner.core.security import get_user_id
from trip_planner.db.sqlite_store import SQLiteStore
from trip_planner.models.planner_models import (
    ActiveDayIn,
    AddPlaceIn,
    CreateSessionIn,
    DatesIn,
    ReorderIn,
    TitleIn,
)
from trip_planner.planner.editor import PlannerEditor
from trip_planner.planner.persistence import PlanPersistenceGateway
from trip_planner.planner.sessions import sessions
from trip_planner.services.place_service import PlaceService

router = APIRouter(prefix="/planner/sessions", tags=["planner"])

db = SQLiteStore()
places = PlaceService(store=db)
gateway = PlanPersistenceGateway(store=db)


# --------------------------
# Helpers
# --------------------------
def _editor(session_id: str, authorization: Optional[str]) -> PlannerEditor:
    user_id = get_user_id(authorization)
    try:
        return sessions.get(session_id, user_id)
    except SessionNotFound:
        raise HTTPException(404, "Editor session not found")


def _result(editor: PlannerEditor, changed: bool) -> dict:
    return {"changed": changed, "session": editor.to_view()}


# --------------------------
# Open a session (hydrate: AI plan > saved trip > empty)
# --------------------------
@router.post("", status_code=201)
def create_session(data: CreateSessionIn, authorization: Optional[str] = Header(None)):
    user_id = get_user_id(authorization)

    try:
        editor = PlannerEditor(
            owner_id=user_id,
            catalog=places,
            gateway=gateway,
            start=data.start,
            end=data.end,
            trip_id=data.trip_id,
            regions=data.regions,
        )
        editor.load(ai_plan=data.ai_plan, ai_title=data.ai_title)
    except InvalidDateRange as e:
        raise HTTPException(400, str(e))
    except TripNotFound:
        raise HTTPException(404, "Trip not found")

    sessions.add(editor)
    return editor.to_view()


@router.get("/{session_id}")
def get_session(session_id: str, authorization: Optional[str] = Header(None)):
    return _editor(session_id, authorization).to_view()


@router.delete("/{session_id}")
def discard_session(session_id: str, authorization: Optional[str] = Header(None)):
    _editor(session_id, authorization)
    sessions.discard(session_id)
    return {"discarded": True}


# --------------------------
# Header edits
# --------------------------
@router.put("/{session_id}/dates")
def set_dates(session_id: str, data: DatesIn, authorization: Optional[str] = Header(None)):
    editor = _editor(session_id, authorization)
    try:
        editor.set_dates(data.start, data.end)
    except InvalidDateRange as e:
        raise HTTPException(400, str(e))
    return _result(editor, True)


@router.put("/{session_id}/title")
def rename(session_id: str, data: TitleIn, authorization: Optional[str] = Header(None)):
    editor = _editor(session_id, authorization)
    editor.rename(data.title)
    return _result(editor, True)


@router.put("/{session_id}/active-day")
def set_active_day(session_id: str, data: ActiveDayIn, authorization: Optional[str] = Header(None)):
    editor = _editor(session_id, authorization)
    return _result(editor, editor.set_active_day(data.day))


# --------------------------
# Plan edits
# --------------------------
@router.post("/{session_id}/places")
def add_place(session_id: str, data: AddPlaceIn, authorization: Optional[str] = Header(None)):
    editor = _editor(session_id, authorization)
    try:
        changed = editor.add_place(data.place_id, data.day)
    except PlaceNotFound:
        raise HTTPException(404, "Place not found")
    return _result(editor, changed)


@router.delete("/{session_id}/days/{day}/places/{place_id}")
def remove_place(session_id: str, day: int, place_id: str,
                 authorization: Optional[str] = Header(None)):
    editor = _editor(session_id, authorization)
    return _result(editor, editor.remove_place(day, place_id))


@router.post("/{session_id}/days/{day}/reorder")
def reorder(session_id: str, day: int, data: ReorderIn,
            authorization: Optional[str] = Header(None)):
    editor = _editor(session_id, authorization)
    return _result(editor, editor.reorder(day, data.from_id, data.to_id))


# --------------------------
# Browse the session's place list
# --------------------------
@router.get("/{session_id}/places")
def browse_places(
    session_id: str,
    sort: Optional[str] = None,
    q: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    authorization: Optional[str] = Header(None),
):
    editor = _editor(session_id, authorization)
    page, total = editor.browse(sort=sort, query=q, limit=limit, offset=offset)
    return {"items": [p.model_dump() for p in page], "total": total}


# --------------------------
# Save (session closes on success)
# --------------------------
@router.post("/{session_id}/save")
def save(session_id: str, authorization: Optional[str] = Header(None)):
    editor = _editor(session_id, authorization)
    was_update = editor.is_update

    try:
        trip_id = editor.save()
    except PlanValidationError as e:
        raise HTTPException(400, str(e))
    except SaveInProgress:
        raise HTTPException(409, "The trip is already being saved")
    except PersistenceError as e:
        logger.error(f"Saving session {session_id} failed: {e}")
        raise HTTPException(500, "Failed to save the trip")

    sessions.discard(session_id)
    return {"trip_id": trip_id, "updated": was_update}

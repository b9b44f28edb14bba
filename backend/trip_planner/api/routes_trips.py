# backend/trip_planner/api/routes_trips.py

from fastapi import APIRouter, Header, HTTPException
from typing import Dict, List, Optional

from trip_planner.core.errors import InvalidDateRange, PersistenceError, PlanValidationError
from trip_planner.core.logger import logger
from trip_planner.core.security import get_user_id
from trip_planner.db.sqlite_store import SQLiteStore
from trip_planner.models.place_models import Place
from trip_planner.models.trip_models import SaveTripIn, SaveTripOut, TripHeader
from trip_planner.planner.persistence import PlanPersistenceGateway
from trip_planner.planner.plan_state import PlanState
from trip_planner.services.place_service import PlaceService
from trip_planner.utils.day_range import generate_days, validate_plan

router = APIRouter(prefix="/trips", tags=["trips"])

db = SQLiteStore()
places = PlaceService(store=db)
gateway = PlanPersistenceGateway(store=db)


def _owned_header(trip_id: str, user_id: str) -> dict:
    header = db.get_trip(trip_id)
    if not header or header["user_id"] != user_id:
        raise HTTPException(404, "Trip not found")
    return header


def _build_state(data: SaveTripIn) -> PlanState:
    """Validate the submitted trip and normalize its plan (range, order, duplicates)."""
    try:
        validate_plan(data.trip_title)
        days = generate_days(data.trip_start_date, data.trip_end_date)
    except (PlanValidationError, InvalidDateRange) as e:
        raise HTTPException(400, str(e))

    plan: Dict[int, List[Place]] = {}
    for day, visits in data.plan.items():
        for visit in visits:
            place = places.get_place(visit.place_id)
            if place is None:
                raise HTTPException(400, f"Unknown place: {visit.place_id}")
            plan.setdefault(day, []).append(place)

    state = PlanState(days)
    state.hydrate_from_trip(plan)
    return state


def _save(data: SaveTripIn, user_id: str, trip_id: Optional[str] = None) -> SaveTripOut:
    state = _build_state(data)
    header = TripHeader(
        trip_id=trip_id,
        user_id=user_id,
        trip_title=data.trip_title.strip(),
        trip_start_date=data.trip_start_date,
        trip_end_date=data.trip_end_date,
    )
    try:
        saved_id = gateway.save(state.as_mapping(), header, is_update=trip_id is not None)
    except PersistenceError as e:
        logger.error(f"Saving trip for user {user_id} failed: {e}")
        raise HTTPException(500, "Failed to save the trip")
    return SaveTripOut(trip_id=saved_id, place_count=state.total_places)


# --------------------------
# List my trips
# --------------------------
@router.get("")
def list_trips(authorization: Optional[str] = Header(None)):
    user_id = get_user_id(authorization)
    return {"items": [t.model_dump(mode="json") for t in gateway.list_trips(user_id)]}


# --------------------------
# Load one trip (grouped by day)
# --------------------------
@router.get("/{trip_id}")
def get_trip(trip_id: str, authorization: Optional[str] = Header(None)):
    user_id = get_user_id(authorization)
    loaded = gateway.load(trip_id)
    if loaded is None or loaded.header.user_id != user_id:
        raise HTTPException(404, "Trip not found")

    return {
        "header": loaded.header.model_dump(mode="json"),
        "plan": {
            str(day): [
                {**place.model_dump(), "visit_order": i}
                for i, place in enumerate(day_places, 1)
            ]
            for day, day_places in sorted(loaded.plan.items())
        },
    }


# --------------------------
# Save new trip
# --------------------------
@router.post("", response_model=SaveTripOut, status_code=201)
def create_trip(data: SaveTripIn, authorization: Optional[str] = Header(None)):
    user_id = get_user_id(authorization)
    return _save(data, user_id)


# --------------------------
# Replace an existing trip
# --------------------------
@router.put("/{trip_id}", response_model=SaveTripOut)
def update_trip(trip_id: str, data: SaveTripIn, authorization: Optional[str] = Header(None)):
    user_id = get_user_id(authorization)
    _owned_header(trip_id, user_id)
    return _save(data, user_id, trip_id)

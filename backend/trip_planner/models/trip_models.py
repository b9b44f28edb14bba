# backend/trip_planner/models/trip_models.py

import datetime as dt
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from trip_planner.models.place_models import Place


class DayInfo(BaseModel):
    day: int
    date: dt.date


class PlanAssignment(BaseModel):
    place: Place
    day_number: int
    visit_order: int


class DayBucket(BaseModel):
    day: int
    date: Optional[dt.date] = None
    places: List[PlanAssignment] = Field(default_factory=list)


class TripHeader(BaseModel):
    trip_id: Optional[str] = None
    user_id: str
    trip_title: str
    trip_start_date: Optional[dt.date] = None
    trip_end_date: Optional[dt.date] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class LoadedTrip(BaseModel):
    header: TripHeader
    plan: Dict[int, List[Place]] = Field(default_factory=dict)


class TripSummary(BaseModel):
    trip_id: str
    trip_title: str
    trip_start_date: Optional[dt.date] = None
    trip_end_date: Optional[dt.date] = None
    place_count: int = 0
    updated_at: Optional[str] = None


# ----------------------------------------------------------
# /trips request bodies
# ----------------------------------------------------------
class PlannedVisitIn(BaseModel):
    place_id: str


class SaveTripIn(BaseModel):
    trip_title: str
    trip_start_date: dt.date
    trip_end_date: dt.date
    # "1" -> [{"place_id": ...}, ...] in visit order
    plan: Dict[int, List[PlannedVisitIn]] = Field(default_factory=dict)


class SaveTripOut(BaseModel):
    trip_id: str
    place_count: int

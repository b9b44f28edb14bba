# backend/trip_planner/models/planner_models.py

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union


class CreateSessionIn(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None
    trip_id: Optional[str] = None
    regions: List[str] = Field(default_factory=list)

    # AI proposal: {"1": [{"place_name": ...}]} or the whole {"title", "plan"},
    # as an object or a JSON string
    ai_plan: Optional[Union[Dict[str, Any], str]] = None
    ai_title: Optional[str] = None


class DatesIn(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None


class TitleIn(BaseModel):
    title: str


class ActiveDayIn(BaseModel):
    day: int


class AddPlaceIn(BaseModel):
    place_id: str
    day: Optional[int] = None    # defaults to the active day


class ReorderIn(BaseModel):
    from_id: str
    to_id: str

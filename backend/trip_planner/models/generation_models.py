# backend/trip_planner/models/generation_models.py

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class GeneratePlanQuery(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None
    companion: Optional[str] = None
    speed: Optional[str] = None           # relaxed / normal / packed
    styles: List[str] = Field(default_factory=list)
    transports: List[str] = Field(default_factory=list)
    regions: List[str] = Field(default_factory=list)


class GeneratedPlan(BaseModel):
    title: str = ""
    # "1" -> [{"place_name": "..."}], kept raw; hydration validates entries
    plan: Dict[str, Any] = Field(default_factory=dict)

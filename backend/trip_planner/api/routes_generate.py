# backend/trip_planner/api/routes_generate.py

import sqlite3
from fastapi import APIRouter, HTTPException, Query
from typing import List, Optional

from trip_planner.core.errors import PlanGenerationError
from trip_planner.core.logger import logger
from trip_planner.db.sqlite_store import SQLiteStore
from trip_planner.models.generation_models import GeneratePlanQuery
from trip_planner.services.place_service import PlaceService
from trip_planner.services.plan_generation_service import PlanGenerationService

router = APIRouter(tags=["generate"])

db = SQLiteStore()
places = PlaceService(store=db)
generator = PlanGenerationService()


@router.get("/generate-plan", summary="AI-proposed day-by-day plan")
def generate_plan(
    start: Optional[str] = None,
    end: Optional[str] = None,
    companion: Optional[str] = None,
    speed: Optional[str] = None,
    style: List[str] = Query(default=[]),
    transport: List[str] = Query(default=[]),
    region: List[str] = Query(default=[]),
):
    """
    Returns {"title": str, "plan": {"1": [{"place_name": ...}], ...}}.
    Places are restricted to the catalog of the selected regions.
    """
    if not region:
        raise HTTPException(status_code=400, detail="No region selected. Pick at least one region.")

    query = GeneratePlanQuery(
        start=start,
        end=end,
        companion=companion,
        speed=speed,
        styles=style,
        transports=transport,
        regions=region,
    )

    try:
        names = places.place_names_for_regions(region)
        result = generator.generate(query, names)
    except (PlanGenerationError, sqlite3.Error) as e:
        logger.error(f"AI plan generation failed for regions {region}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate an AI recommendation.")

    return result.model_dump()

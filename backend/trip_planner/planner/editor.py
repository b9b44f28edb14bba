# backend/trip_planner/planner/editor.py

import json
import sqlite3
import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from trip_planner.core.errors import (
    PersistenceError,
    PlaceNotFound,
    PlanValidationError,
    SaveInProgress,
    TripNotFound,
)
from trip_planner.core.logger import logger
from trip_planner.models.place_models import Place, PlaceRatingPatch
from trip_planner.models.trip_models import TripHeader
from trip_planner.planner.persistence import PlanPersistenceGateway
from trip_planner.planner.plan_state import HydrationSource, PlanState
from trip_planner.services.place_service import PlaceService
from trip_planner.services.realtime_service import merge_rating_patch
from trip_planner.utils.day_range import (
    DateLike,
    format_day_label,
    generate_days,
    parse_date,
    validate_plan,
)


DEFAULT_TITLE = "My new trip"


def _coerce_ai_plan(ai_plan: Union[str, Mapping, None]) -> Tuple[Optional[Mapping], Optional[str]]:
    """
    Accepts the bare day mapping or the whole {"title", "plan"} response,
    as a dict or a JSON string. Returns (mapping, title); mapping is None
    when the input is not usable.
    """
    data: Any = ai_plan
    if isinstance(ai_plan, str):
        try:
            data = json.loads(ai_plan)
        except json.JSONDecodeError as e:
            logger.warning(f"AI plan is not valid JSON, starting empty: {e}")
            return None, None

    if not isinstance(data, Mapping):
        logger.warning("AI plan is not a JSON object, starting empty")
        return None, None

    if isinstance(data.get("plan"), Mapping):
        title = data.get("title")
        return data["plan"], title if isinstance(title, str) else None
    return data, None


class PlannerEditor:
    """
    One editing session over a trip plan.

    Composes the place catalog, the plan state and the persistence gateway:
    browse places, assign them to days, reorder, change dates, rename, save.
    Edits are serialized per session; route handlers run in a thread pool.
    """

    def __init__(self, owner_id: str,
                 catalog: PlaceService,
                 gateway: PlanPersistenceGateway,
                 start: DateLike = None, end: DateLike = None,
                 trip_id: Optional[str] = None,
                 regions: Optional[List[str]] = None):
        self.session_id = str(uuid4())
        self.owner_id = owner_id
        self.catalog = catalog
        self.gateway = gateway
        self.trip_id = trip_id
        self.regions = list(regions or [])

        self.start_date = parse_date(start)
        self.end_date = parse_date(end)
        self.state = PlanState(generate_days(self.start_date, self.end_date))

        self.title = DEFAULT_TITLE
        self.places: List[Place] = []
        self.is_saving = False
        self._lock = threading.Lock()

    @property
    def is_update(self) -> bool:
        return bool(self.trip_id)

    # ------------------------------------------------------------------
    # hydration: AI plan > persisted trip > empty
    # ------------------------------------------------------------------
    def load(self, ai_plan: Union[str, Mapping, None] = None,
             ai_title: Optional[str] = None) -> HydrationSource:
        self.places = self.catalog.list_places(self.regions or None)

        if ai_plan is not None:
            mapping, title = _coerce_ai_plan(ai_plan)
            if ai_title or title:
                self.title = ai_title or title
            if mapping is not None:
                self.state.hydrate_from_ai(mapping, self.places)
            else:
                self.state.hydrate_empty()
            return self.state.source

        if self.trip_id:
            loaded = self.gateway.load(self.trip_id)
            if loaded is None or loaded.header.user_id != self.owner_id:
                raise TripNotFound(f"Trip {self.trip_id} not found")

            self.title = loaded.header.trip_title
            if self.start_date is None and self.end_date is None:
                self.start_date = loaded.header.trip_start_date
                self.end_date = loaded.header.trip_end_date
                self.state.days = generate_days(self.start_date, self.end_date)
            self.state.hydrate_from_trip(loaded.plan)
            return self.state.source

        self.state.hydrate_empty()
        return self.state.source

    # ------------------------------------------------------------------
    # header edits
    # ------------------------------------------------------------------
    def set_dates(self, start: DateLike, end: DateLike):
        days = generate_days(start, end)
        with self._lock:
            self.start_date = parse_date(start)
            self.end_date = parse_date(end)
            self.state.prune_to_range(days)

    def rename(self, title: str):
        with self._lock:
            self.title = title

    def set_active_day(self, day: int) -> bool:
        with self._lock:
            return self.state.set_active_day(day)

    # ------------------------------------------------------------------
    # plan edits
    # ------------------------------------------------------------------
    def _find_place(self, place_id: str) -> Place:
        for place in self.places:
            if place.place_id == place_id:
                return place
        place = self.catalog.get_place(place_id)
        if place is None:
            raise PlaceNotFound(f"Place {place_id} not found")
        return place

    def add_place(self, place_id: str, day: Optional[int] = None) -> bool:
        with self._lock:
            if self.state.contains(place_id):
                return False

            place = self._find_place(place_id)
            if not place.has_coords:
                try:
                    filled = self.catalog.fetch_place_with_coords(place_id)
                except sqlite3.Error as e:
                    logger.warning(f"Could not resolve coordinates for {place_id}: {e}")
                    filled = None
                if filled is not None and filled.has_coords:
                    place = place.model_copy(
                        update={"latitude": filled.latitude, "longitude": filled.longitude}
                    )

            return self.state.add_place(place, day)

    def remove_place(self, day: int, place_id: str) -> bool:
        with self._lock:
            return self.state.remove_place(day, place_id)

    def reorder(self, day: int, from_id: str, to_id: str) -> bool:
        with self._lock:
            return self.state.reorder(day, from_id, to_id)

    # ------------------------------------------------------------------
    # catalog side
    # ------------------------------------------------------------------
    def browse(self, sort: Optional[str] = None, query: Optional[str] = None,
               limit: Optional[int] = None, offset: int = 0) -> Tuple[List[Place], int]:
        return self.catalog.browse(self.places, sort=sort, query=query, limit=limit, offset=offset)

    def apply_rating_patch(self, patch: PlaceRatingPatch):
        with self._lock:
            self.places = merge_rating_patch(self.places, patch)

    # ------------------------------------------------------------------
    # save
    # ------------------------------------------------------------------
    def save(self) -> str:
        with self._lock:
            if self.is_saving:
                raise SaveInProgress("Save already in progress")

            validate_plan(self.title)
            if self.start_date is None or self.end_date is None:
                raise PlanValidationError("Please choose the travel dates.")

            self.is_saving = True
            header = TripHeader(
                trip_id=self.trip_id,
                user_id=self.owner_id,
                trip_title=self.title.strip(),
                trip_start_date=self.start_date,
                trip_end_date=self.end_date,
            )
            plan = self.state.as_mapping()
            is_update = self.is_update

        try:
            trip_id = self.gateway.save(plan, header, is_update)
        except PersistenceError as e:
            # header already written: retries must update it, not add another
            if e.trip_id:
                self.trip_id = e.trip_id
            raise
        finally:
            self.is_saving = False

        self.trip_id = trip_id
        return trip_id

    # ------------------------------------------------------------------
    # view
    # ------------------------------------------------------------------
    def to_view(self) -> Dict[str, Any]:
        labels = {d.day: format_day_label(d) for d in self.state.days}
        return {
            "session_id": self.session_id,
            "trip_id": self.trip_id,
            "title": self.title,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "source": self.state.source.value,
            "active_day": self.state.active_day,
            "is_saving": self.is_saving,
            "days": [
                {
                    "day": bucket.day,
                    "date": bucket.date.isoformat() if bucket.date else None,
                    "label": labels.get(bucket.day),
                    "places": [
                        {**a.place.model_dump(), "visit_order": a.visit_order}
                        for a in bucket.places
                    ],
                }
                for bucket in self.state.buckets
            ],
        }

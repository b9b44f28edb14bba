# backend/trip_planner/planner/plan_state.py

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from trip_planner.core.logger import logger
from trip_planner.models.place_models import Place
from trip_planner.models.trip_models import DayBucket, DayInfo, PlanAssignment


class HydrationSource(str, Enum):
    UNINITIALIZED = "uninitialized"
    AI_PLAN = "ai_plan"
    PERSISTED_TRIP = "persisted_trip"
    EMPTY = "empty"


def _renumber(day: int, places: Iterable[PlanAssignment]) -> List[PlanAssignment]:
    return [
        a if (a.visit_order == i and a.day_number == day)
        else a.model_copy(update={"visit_order": i, "day_number": day})
        for i, a in enumerate(places, 1)
    ]


def _day_key(key: Any) -> Optional[int]:
    try:
        day = int(key)
    except (TypeError, ValueError):
        return None
    return day if day >= 1 else None


class PlanState:
    """
    Day-bucketed place assignments for one editor session.

    Buckets are kept as a list addressed by `day - 1`, so the days present
    are always exactly 1..N. Within a bucket `visit_order` is always 1..len.
    A place id appears at most once across all buckets.
    """

    def __init__(self, days: Optional[List[DayInfo]] = None):
        self.days: List[DayInfo] = list(days or [])
        self.source = HydrationSource.UNINITIALIZED
        self.active_day = 1
        self._buckets: List[DayBucket] = []

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------
    @property
    def hydrated(self) -> bool:
        return self.source is not HydrationSource.UNINITIALIZED

    @property
    def buckets(self) -> List[DayBucket]:
        return list(self._buckets)

    @property
    def total_places(self) -> int:
        return sum(len(b.places) for b in self._buckets)

    def bucket(self, day: int) -> Optional[DayBucket]:
        if 1 <= day <= len(self._buckets):
            return self._buckets[day - 1]
        return None

    def assignments(self, day: int) -> List[PlanAssignment]:
        bucket = self.bucket(day)
        return list(bucket.places) if bucket else []

    def contains(self, place_id: str) -> bool:
        return any(a.place.place_id == place_id for b in self._buckets for a in b.places)

    def as_mapping(self) -> Dict[int, List[PlanAssignment]]:
        return {b.day: list(b.places) for b in self._buckets}

    # ------------------------------------------------------------------
    # hydration (at most once per session)
    # ------------------------------------------------------------------
    def _begin_hydration(self, source: HydrationSource) -> bool:
        if self.hydrated:
            logger.warning(f"Plan already hydrated from {self.source.value}; ignoring {source.value}")
            return False
        self.source = source
        return True

    def _date_for(self, day: int):
        return self.days[day - 1].date if day <= len(self.days) else None

    def _fill(self, count: int, places_by_day: Mapping[int, List[Place]]):
        seen: Set[str] = set()
        buckets = []
        for day in range(1, count + 1):
            assignments = []
            for place in places_by_day.get(day, []):
                if place.place_id in seen:
                    continue
                seen.add(place.place_id)
                assignments.append(
                    PlanAssignment(place=place, day_number=day, visit_order=len(assignments) + 1)
                )
            buckets.append(DayBucket(day=day, date=self._date_for(day), places=assignments))
        self._buckets = buckets

    def hydrate_empty(self) -> bool:
        if not self._begin_hydration(HydrationSource.EMPTY):
            return False
        self._fill(len(self.days), {})
        return True

    def hydrate_from_ai(self, plan: Mapping[str, Any], catalog: List[Place]) -> bool:
        """
        `plan` is the generation service's {"1": [{"place_name": ...}], ...}.

        Names are matched exactly against `catalog`; unknown names, malformed
        entries and day keys outside the range are dropped silently.
        """
        if not self._begin_hydration(HydrationSource.AI_PLAN):
            return False

        by_name: Dict[str, Place] = {}
        for place in catalog:
            by_name.setdefault(place.place_name, place)

        places_by_day: Dict[int, List[Place]] = {}
        dropped = 0
        for key, entries in (plan or {}).items():
            day = _day_key(key)
            if day is None or not isinstance(entries, list):
                continue
            for entry in entries:
                name = entry.get("place_name") if isinstance(entry, dict) else None
                place = by_name.get(name) if isinstance(name, str) else None
                if place is None:
                    dropped += 1
                    continue
                places_by_day.setdefault(day, []).append(place)

        count = len(self.days) if self.days else max(places_by_day, default=0)
        self._fill(count, places_by_day)
        if dropped:
            logger.info(f"AI plan hydration dropped {dropped} unknown places")
        return True

    def hydrate_from_trip(self, plan: Mapping[int, List[Place]]) -> bool:
        """`plan` is day number -> places in stored visit order."""
        if not self._begin_hydration(HydrationSource.PERSISTED_TRIP):
            return False

        count = len(self.days) if self.days else max(plan, default=0)
        self._fill(count, plan)
        return True

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------
    def set_active_day(self, day: int) -> bool:
        if self.bucket(day) is None:
            return False
        self.active_day = day
        return True

    def add_place(self, place: Place, day: Optional[int] = None) -> bool:
        day = self.active_day if day is None else day
        bucket = self.bucket(day)
        if bucket is None or self.contains(place.place_id):
            return False

        bucket.places = bucket.places + [
            PlanAssignment(place=place, day_number=day, visit_order=len(bucket.places) + 1)
        ]
        return True

    def remove_place(self, day: int, place_id: str) -> bool:
        bucket = self.bucket(day)
        if bucket is None:
            return False

        remaining = [a for a in bucket.places if a.place.place_id != place_id]
        if len(remaining) == len(bucket.places):
            return False

        bucket.places = _renumber(day, remaining)
        return True

    def reorder(self, day: int, from_id: str, to_id: str) -> bool:
        """Move `from_id` to the index currently held by `to_id` (splice semantics)."""
        bucket = self.bucket(day)
        if bucket is None or from_id == to_id:
            return False

        ids = [a.place.place_id for a in bucket.places]
        if from_id not in ids or to_id not in ids:
            return False

        old_index, new_index = ids.index(from_id), ids.index(to_id)
        places = list(bucket.places)
        places.insert(new_index, places.pop(old_index))
        bucket.places = _renumber(day, places)
        return True

    def prune_to_range(self, days: List[DayInfo]) -> bool:
        """
        Rebuild buckets for exactly `days`: kept days carry their lists,
        new days start empty, trailing days are dropped with their places.
        An empty sequence (dates not known yet) leaves the plan as it is.
        """
        if not days:
            return False

        self.days = list(days)
        buckets = []
        for info in self.days:
            previous = self.bucket(info.day)
            buckets.append(DayBucket(
                day=info.day,
                date=info.date,
                places=list(previous.places) if previous else [],
            ))
        self._buckets = buckets

        if self.bucket(self.active_day) is None:
            self.active_day = 1
        return True

# backend/trip_planner/planner/persistence.py

import sqlite3
from typing import Dict, List, Mapping, Optional

from trip_planner.core.errors import PersistenceError
from trip_planner.core.logger import logger
from trip_planner.db.sqlite_store import SQLiteStore
from trip_planner.models.place_models import Place
from trip_planner.models.trip_models import LoadedTrip, PlanAssignment, TripHeader, TripSummary


def detail_rows(trip_id: str, plan: Mapping[int, List[PlanAssignment]]) -> List[Dict]:
    """Flatten day -> assignments into trip_plan_detail rows, renumbering visit_order per day."""
    return [
        {
            "trip_id": trip_id,
            "place_id": a.place.place_id,
            "day_number": int(day),
            "visit_order": i,
        }
        for day, assignments in sorted(plan.items())
        for i, a in enumerate(assignments, 1)
    ]


class PlanPersistenceGateway:
    """
    Writes a plan as one trip_plan header row plus trip_plan_detail rows.

    Updates are a full replace of the detail rows, never a diff. The header
    write and the detail replace are separate commits: if the details fail
    after the header was written, the header stays as written.
    """

    def __init__(self, store: Optional[SQLiteStore] = None):
        self.store = store or SQLiteStore()

    def save(self, plan: Mapping[int, List[PlanAssignment]], header: TripHeader,
             is_update: bool = False) -> str:
        if is_update:
            if not header.trip_id:
                raise PersistenceError("trip_id is required to update a trip")
            trip_id = header.trip_id
            try:
                found = self.store.update_trip(
                    trip_id, header.trip_title, header.trip_start_date, header.trip_end_date
                )
            except sqlite3.Error as e:
                logger.error(f"Failed to update trip header {trip_id}: {e}")
                raise PersistenceError("Failed to update trip") from e
            if not found:
                raise PersistenceError(f"Trip {trip_id} not found")
        else:
            try:
                trip_id = self.store.insert_trip(
                    header.user_id, header.trip_title, header.trip_start_date, header.trip_end_date
                )
            except sqlite3.Error as e:
                logger.error(f"Failed to insert trip header for user {header.user_id}: {e}")
                raise PersistenceError("Failed to save trip") from e

        rows = detail_rows(trip_id, plan)
        try:
            if is_update:
                self.store.replace_trip_details(trip_id, rows)
            else:
                self.store.insert_trip_details(rows)
        except sqlite3.Error as e:
            logger.error(f"Trip {trip_id} header saved but details failed: {e}")
            raise PersistenceError("Failed to save trip details", trip_id=trip_id) from e

        logger.info(f"Saved trip {trip_id} ({'update' if is_update else 'new'}, {len(rows)} places)")
        return trip_id

    def load(self, trip_id: Optional[str]) -> Optional[LoadedTrip]:
        if not trip_id:
            return None

        header_row = self.store.get_trip(trip_id)
        if not header_row:
            return None

        plan: Dict[int, List[Place]] = {}
        for row in self.store.get_trip_details(trip_id):
            day = row.pop("day_number")
            row.pop("visit_order")
            plan.setdefault(day, []).append(Place(**row))

        return LoadedTrip(header=TripHeader(**header_row), plan=plan)

    def list_trips(self, user_id: str) -> List[TripSummary]:
        return [TripSummary(**row) for row in self.store.list_trips(user_id)]

# backend/trip_planner/core/errors.py

from typing import Optional


class InvalidDateRange(ValueError):
    """Unparseable date, or end date before start date."""


class PlanValidationError(ValueError):
    """Plan cannot be saved as-is (message is user-facing)."""


class PlaceNotFound(LookupError):
    pass


class PlanGenerationError(RuntimeError):
    """Generation service failed or answered with something that is not a plan."""


class PersistenceError(RuntimeError):
    """Storage write failed. `trip_id` is set when a new header was already written."""

    def __init__(self, message: str, trip_id: Optional[str] = None):
        super().__init__(message)
        self.trip_id = trip_id


class SaveInProgress(RuntimeError):
    pass


class TripNotFound(LookupError):
    pass


class SessionNotFound(LookupError):
    pass

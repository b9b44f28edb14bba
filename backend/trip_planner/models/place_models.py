# backend/trip_planner/models/place_models.py

from pydantic import BaseModel
from typing import Optional


class Place(BaseModel):
    place_id: str
    place_name: str
    region_name: Optional[str] = None
    place_address: Optional[str] = None

    # null until resolved (catalog row or geocoding fallback)
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # aggregates; None sorts as zero
    average_rating: Optional[float] = None
    review_count: Optional[int] = None
    favorite_count: Optional[int] = None

    @property
    def has_coords(self) -> bool:
        return self.latitude is not None and self.longitude is not None


# ----------------------------------------------------------
# Rating-aggregate patch pushed by the realtime feed
# ----------------------------------------------------------
class PlaceRatingPatch(BaseModel):
    place_id: str
    average_rating: Optional[float] = None
    review_count: Optional[int] = None
    favorite_count: Optional[int] = None


class PlaceRatingUpdateIn(BaseModel):
    average_rating: Optional[float] = None
    review_count: Optional[int] = None
    favorite_count: Optional[int] = None

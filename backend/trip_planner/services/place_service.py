# backend/trip_planner/services/place_service.py

import re
import unicodedata
from typing import List, Dict, Any, Optional, Tuple

from trip_planner.core.config_loader import settings
from trip_planner.core.logger import logger
from trip_planner.db.sqlite_store import SQLiteStore, RATING_COLUMNS
from trip_planner.models.place_models import Place, PlaceRatingPatch
from trip_planner.services.geocoding_service import GeocodingService
from trip_planner.services.realtime_service import PlaceRatingFeed, rating_feed


SORT_ORDERS = ("popularity_desc", "review_desc", "rating_desc")
DEFAULT_SORT = "popularity_desc"


def _zero(value) -> float:
    return value or 0


def _sort_key(sort: str):
    if sort == "review_desc":
        return lambda p: (_zero(p.review_count), _zero(p.favorite_count))
    if sort == "rating_desc":
        return lambda p: (_zero(p.average_rating), _zero(p.favorite_count))
    return lambda p: _zero(p.favorite_count)


class PlaceService:

    def __init__(self, store: Optional[SQLiteStore] = None,
                 geocoder: Optional[GeocodingService] = None,
                 feed: Optional[PlaceRatingFeed] = None):
        self.store = store or SQLiteStore()
        self.geocoder = geocoder or GeocodingService()
        self.feed = feed or rating_feed

    # -------------------------------------------------------
    # NORMALIZE TEXT FOR SEARCH
    # -------------------------------------------------------
    @staticmethod
    def _normalize_text(text: str) -> str:
        """
        Lowercase, strip accents, collapse whitespace.

        Example:
            "Café  Gyeongbokgung" -> "cafe gyeongbokgung"
        """
        if not text:
            return ""

        text = unicodedata.normalize("NFD", text.lower().strip())
        text = re.sub(r'[\u0300-\u036f]', '', text)
        return re.sub(r'\s+', ' ', text).strip()

    # -------------------------------------------------------
    # CATALOG READS
    # -------------------------------------------------------
    def list_places(self, regions: Optional[List[str]] = None) -> List[Place]:
        return [Place(**row) for row in self.store.list_places(regions)]

    def get_place(self, place_id: str) -> Optional[Place]:
        row = self.store.get_place(place_id)
        return Place(**row) if row else None

    def place_names_for_regions(self, regions: List[str]) -> List[str]:
        return self.store.list_place_names(regions)

    # -------------------------------------------------------
    # COORDINATES: catalog row first, then geocoding fallback
    # -------------------------------------------------------
    def fetch_place_with_coords(self, place_id: str) -> Optional[Place]:
        place = self.get_place(place_id)
        if place is None or place.has_coords:
            return place

        query = " ".join(
            part for part in (place.place_name, place.place_address or place.region_name) if part
        )
        coords = self.geocoder.find_coordinates(query)
        if not coords:
            return place

        self.store.update_place_coords(place_id, coords["lat"], coords["lng"])
        logger.info(f"Resolved coordinates for {place_id}: {coords}")
        return place.model_copy(update={"latitude": coords["lat"], "longitude": coords["lng"]})

    # -------------------------------------------------------
    # BROWSING (sort + search + paging)
    # -------------------------------------------------------
    def browse(self, places: List[Place], sort: Optional[str] = None,
               query: Optional[str] = None, limit: Optional[int] = None,
               offset: int = 0) -> Tuple[List[Place], int]:
        """Returns (page, total matching)."""
        sort = sort if sort in SORT_ORDERS else DEFAULT_SORT
        ordered = sorted(places, key=_sort_key(sort), reverse=True)

        if query:
            needle = self._normalize_text(query)
            ordered = [p for p in ordered if needle in self._normalize_text(p.place_name)]

        limit = settings.places_page_size if limit is None else limit
        offset = max(offset, 0)
        return ordered[offset:offset + limit], len(ordered)

    # -------------------------------------------------------
    # RATING AGGREGATES -> realtime feed
    # -------------------------------------------------------
    def update_rating(self, place_id: str, values: Dict[str, Any]) -> Optional[PlaceRatingPatch]:
        changes = {k: v for k, v in values.items() if k in RATING_COLUMNS and v is not None}
        if not self.store.update_place_aggregates(place_id, changes):
            return None

        patch = PlaceRatingPatch(place_id=place_id, **changes)
        if changes:
            self.feed.publish(patch)
        return patch

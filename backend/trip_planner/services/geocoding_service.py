# backend/trip_planner/services/geocoding_service.py

import requests
from typing import Dict, Optional
from trip_planner.core.config_loader import settings
from trip_planner.core.logger import logger


class GeocodingService:
    """
    Coordinate lookup through Google Places Text Search (New).
    Best-effort: every failure is logged and reported as None.
    """

    SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"

    def __init__(self, api_key: Optional[str] = None):
        self.key = settings.GOOGLE_MAPS_API_KEY if api_key is None else api_key

    @property
    def enabled(self) -> bool:
        return bool(self.key)

    # -------------------------------------------------------
    # TEXT SEARCH -> FIRST RESULT LOCATION
    # -------------------------------------------------------
    def find_coordinates(self, query: str) -> Optional[Dict[str, float]]:
        """
        Args:
            query: place name, optionally followed by address/region

        Returns:
            {"lat": float, "lng": float} or None
        """
        if not self.enabled or not query:
            return None

        payload = {
            "textQuery": query,
            "maxResultCount": 1,
        }
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.key,
            "X-Goog-FieldMask": "places.displayName,places.location",
        }

        try:
            logger.debug(f"Geocoding place: {query}")
            resp = requests.post(self.SEARCH_URL, json=payload, headers=headers, timeout=15)
            resp.raise_for_status()

            places = resp.json().get("places", [])
            if not places:
                logger.info(f"No geocoding result for: {query}")
                return None

            location = places[0].get("location") or {}
            if "latitude" not in location or "longitude" not in location:
                return None
            return {"lat": float(location["latitude"]), "lng": float(location["longitude"])}
        except requests.exceptions.HTTPError as e:
            logger.error(f"HTTP error geocoding '{query}': {e}")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error geocoding '{query}': {e}")
            return None
        except ValueError as e:
            logger.error(f"Invalid geocoding response for '{query}': {e}")
            return None
        except (TypeError, KeyError, AttributeError) as e:
            logger.error(f"Unexpected geocoding payload for '{query}': {e}")
            return None

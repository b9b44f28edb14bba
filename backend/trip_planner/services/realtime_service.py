# backend/trip_planner/services/realtime_service.py

import asyncio
import threading
from typing import Callable, Dict, List

from trip_planner.core.logger import logger
from trip_planner.models.place_models import Place, PlaceRatingPatch


RATING_FIELDS = ("average_rating", "review_count", "favorite_count")

Subscriber = Callable[[PlaceRatingPatch], None]


def merge_rating_patch(places: List[Place], patch: PlaceRatingPatch) -> List[Place]:
    """
    Copy of `places` where the place matching `patch.place_id` carries the
    rating aggregates present in the patch. Other fields are never touched.
    """
    changes = {
        field: getattr(patch, field)
        for field in RATING_FIELDS
        if getattr(patch, field) is not None
    }
    if not changes:
        return list(places)

    return [
        p.model_copy(update=changes) if p.place_id == patch.place_id else p
        for p in places
    ]


class PlaceRatingFeed:
    """In-process fan-out of place rating updates."""

    def __init__(self):
        self._subscribers: Dict[int, Subscriber] = {}
        self._next_id = 0
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            token = self._next_id
            self._next_id += 1
            self._subscribers[token] = callback

        def unsubscribe():
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def subscribe_queue(self, loop: asyncio.AbstractEventLoop,
                        queue: "asyncio.Queue[PlaceRatingPatch]") -> Callable[[], None]:
        """
        Deliver patches into an asyncio queue owned by `loop` (WebSocket clients).
        When a bounded queue is full the patch is dropped for that client.
        """
        def offer(patch: PlaceRatingPatch):
            try:
                queue.put_nowait(patch)
            except asyncio.QueueFull:
                logger.warning(f"Rating queue full, dropping patch for {patch.place_id}")

        return self.subscribe(lambda patch: loop.call_soon_threadsafe(offer, patch))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, patch: PlaceRatingPatch):
        with self._lock:
            subscribers = list(self._subscribers.values())

        logger.debug(f"Publishing rating patch for {patch.place_id} to {len(subscribers)} subscribers")
        for callback in subscribers:
            try:
                callback(patch)
            except Exception as e:
                logger.error(f"Rating subscriber failed for {patch.place_id}: {e}")


rating_feed = PlaceRatingFeed()

# backend/trip_planner/planner/sessions.py

import threading
from typing import Callable, Dict, Optional

from trip_planner.core.errors import SessionNotFound
from trip_planner.core.logger import logger
from trip_planner.planner.editor import PlannerEditor
from trip_planner.services.realtime_service import PlaceRatingFeed, rating_feed


class EditorSessionRegistry:
    """Open editor sessions by id; each one follows the rating feed while open."""

    def __init__(self, feed: Optional[PlaceRatingFeed] = None):
        self.feed = feed or rating_feed
        self._sessions: Dict[str, PlannerEditor] = {}
        self._unsubscribers: Dict[str, Callable[[], None]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, editor: PlannerEditor) -> PlannerEditor:
        with self._lock:
            self._sessions[editor.session_id] = editor
            self._unsubscribers[editor.session_id] = self.feed.subscribe(editor.apply_rating_patch)
        logger.info(f"Opened editor session {editor.session_id} for user {editor.owner_id}")
        return editor

    def get(self, session_id: str, owner_id: str) -> PlannerEditor:
        editor = self._sessions.get(session_id)
        # other owners' sessions look the same as missing ones
        if editor is None or editor.owner_id != owner_id:
            raise SessionNotFound(f"Editor session {session_id} not found")
        return editor

    def discard(self, session_id: str) -> bool:
        with self._lock:
            editor = self._sessions.pop(session_id, None)
            unsubscribe = self._unsubscribers.pop(session_id, None)
        if unsubscribe:
            unsubscribe()
        if editor is not None:
            logger.info(f"Closed editor session {session_id}")
        return editor is not None


sessions = EditorSessionRegistry()

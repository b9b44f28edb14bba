# backend/trip_planner/db/sqlite_store.py

import sqlite3
import time
from pathlib import Path
from datetime import date
from typing import Optional, Dict, Any, List, Iterable
from uuid import uuid4

from trip_planner.core.config_loader import settings
from trip_planner.utils.day_range import current_time_str


# Retry configuration
MAX_RETRIES = 5
RETRY_DELAY = 0.1  # 100ms

RATING_COLUMNS = ("average_rating", "review_count", "favorite_count")

PLACE_SELECT = """
SELECT p.place_id, p.place_name, p.place_address,
       p.latitude, p.longitude,
       p.average_rating, p.review_count, p.favorite_count,
       r.region_name
FROM place p
LEFT JOIN region r ON r.region_id = p.region_id
"""


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


class SQLiteStore:
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = str(db_path or settings.DB_PATH)
        if self.db_path != ":memory:":
            Path(self.db_path).resolve().parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=30.0
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")
        self.conn.execute("PRAGMA busy_timeout=30000")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._init_tables()

    def _execute_with_retry(self, operation, *args, **kwargs):
        """Execute database operation with retry logic for handling locked database"""
        for attempt in range(MAX_RETRIES):
            try:
                return operation(*args, **kwargs)
            except sqlite3.OperationalError as e:
                if "locked" in str(e).lower() and attempt < MAX_RETRIES - 1:
                    time.sleep(RETRY_DELAY * (attempt + 1))
                    continue
                raise

    # ----------------------------------------------------------------------
    # CREATE TABLES
    # ----------------------------------------------------------------------
    def _init_tables(self):
        cur = self.conn.cursor()

        cur.execute("""
        CREATE TABLE IF NOT EXISTS region (
            region_id INTEGER PRIMARY KEY AUTOINCREMENT,
            region_name TEXT UNIQUE NOT NULL
        );
        """)

        # PLACE CATALOG
        cur.execute("""
        CREATE TABLE IF NOT EXISTS place (
            place_id TEXT PRIMARY KEY,
            place_name TEXT NOT NULL,
            region_id INTEGER,
            place_address TEXT,
            latitude REAL,
            longitude REAL,
            average_rating REAL DEFAULT 0,
            review_count INTEGER DEFAULT 0,
            favorite_count INTEGER DEFAULT 0,
            FOREIGN KEY (region_id) REFERENCES region(region_id)
        );
        """)

        # TRIP HEADER
        cur.execute("""
        CREATE TABLE IF NOT EXISTS trip_plan (
            trip_id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            trip_title TEXT NOT NULL,
            trip_start_date TEXT,
            trip_end_date TEXT,
            created_at TEXT,
            updated_at TEXT
        );
        """)

        # TRIP DAY DETAILS
        cur.execute("""
        CREATE TABLE IF NOT EXISTS trip_plan_detail (
            trip_plan_detail_id INTEGER PRIMARY KEY AUTOINCREMENT,
            trip_id TEXT NOT NULL,
            place_id TEXT NOT NULL,
            day_number INTEGER NOT NULL,
            visit_order INTEGER NOT NULL,
            FOREIGN KEY (trip_id) REFERENCES trip_plan(trip_id) ON DELETE CASCADE,
            FOREIGN KEY (place_id) REFERENCES place(place_id)
        );
        """)

        # INDEXES
        cur.execute("CREATE INDEX IF NOT EXISTS idx_place_region ON place(region_id);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_trip_user ON trip_plan(user_id);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_detail_trip ON trip_plan_detail(trip_id);")

        self.conn.commit()

    # ----------------------------------------------------------------------
    # REGIONS
    # ----------------------------------------------------------------------
    def upsert_region(self, region_name: str) -> int:
        def _upsert_region():
            cur = self.conn.cursor()
            cur.execute(
                "INSERT OR IGNORE INTO region (region_name) VALUES (?)",
                (region_name,)
            )
            self.conn.commit()
            cur.execute("SELECT region_id FROM region WHERE region_name = ?", (region_name,))
            return cur.fetchone()["region_id"]

        return self._execute_with_retry(_upsert_region)

    # ----------------------------------------------------------------------
    # PLACE CATALOG
    # ----------------------------------------------------------------------
    def upsert_place(
        self, place_id: str, place_name: str, region_name: Optional[str] = None,
        place_address: Optional[str] = None,
        latitude: Optional[float] = None, longitude: Optional[float] = None,
        average_rating: Optional[float] = 0, review_count: Optional[int] = 0,
        favorite_count: Optional[int] = 0
    ):
        region_id = self.upsert_region(region_name) if region_name else None

        def _upsert_place():
            cur = self.conn.cursor()
            cur.execute("""
            REPLACE INTO place (place_id, place_name, region_id, place_address,
                                latitude, longitude,
                                average_rating, review_count, favorite_count)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                place_id, place_name, region_id, place_address,
                latitude, longitude,
                average_rating, review_count, favorite_count
            ))
            self.conn.commit()

        self._execute_with_retry(_upsert_place)

    def get_place(self, place_id: str) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(PLACE_SELECT + " WHERE p.place_id = ?", (place_id,))
        row = cur.fetchone()
        return dict(row) if row else None

    def list_places(self, region_names: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        if region_names:
            marks = ", ".join("?" for _ in region_names)
            cur.execute(
                PLACE_SELECT + f" WHERE r.region_name IN ({marks}) ORDER BY p.place_name",
                tuple(region_names)
            )
        else:
            cur.execute(PLACE_SELECT + " ORDER BY p.place_name")
        return [dict(r) for r in cur.fetchall()]

    def list_place_names(self, region_names: List[str]) -> List[str]:
        return [p["place_name"] for p in self.list_places(region_names)]

    def update_place_coords(self, place_id: str, latitude: float, longitude: float):
        def _update_coords():
            cur = self.conn.cursor()
            cur.execute(
                "UPDATE place SET latitude=?, longitude=? WHERE place_id = ?",
                (latitude, longitude, place_id)
            )
            self.conn.commit()

        self._execute_with_retry(_update_coords)

    def update_place_aggregates(self, place_id: str, values: Dict[str, Any]) -> bool:
        """Update rating aggregates; keys outside RATING_COLUMNS are ignored."""
        fields = {k: v for k, v in values.items() if k in RATING_COLUMNS and v is not None}
        if not fields:
            return self.get_place(place_id) is not None

        assignments = ", ".join(f"{k}=?" for k in fields)

        def _update_aggregates():
            cur = self.conn.cursor()
            cur.execute(
                f"UPDATE place SET {assignments} WHERE place_id = ?",
                (*fields.values(), place_id)
            )
            self.conn.commit()
            return cur.rowcount > 0

        return self._execute_with_retry(_update_aggregates)

    # ----------------------------------------------------------------------
    # TRIP HEADER
    # ----------------------------------------------------------------------
    def insert_trip(self, user_id: str, title: str,
                    start_date: Optional[date], end_date: Optional[date]) -> str:
        trip_id = str(uuid4())

        def _insert_trip():
            now = current_time_str()
            cur = self.conn.cursor()
            cur.execute("""
            INSERT INTO trip_plan (trip_id, user_id, trip_title,
                                   trip_start_date, trip_end_date,
                                   created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (trip_id, user_id, title, _iso(start_date), _iso(end_date), now, now))
            self.conn.commit()
            return trip_id

        return self._execute_with_retry(_insert_trip)

    def update_trip(self, trip_id: str, title: str,
                    start_date: Optional[date], end_date: Optional[date]) -> bool:
        def _update_trip():
            cur = self.conn.cursor()
            cur.execute("""
            UPDATE trip_plan SET trip_title=?, trip_start_date=?, trip_end_date=?, updated_at=?
            WHERE trip_id = ?
            """, (title, _iso(start_date), _iso(end_date), current_time_str(), trip_id))
            self.conn.commit()
            return cur.rowcount > 0

        return self._execute_with_retry(_update_trip)

    def get_trip(self, trip_id: str) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM trip_plan WHERE trip_id = ?", (trip_id,))
        row = cur.fetchone()
        return dict(row) if row else None

    def list_trips(self, user_id: str) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("""
        SELECT t.*, COUNT(d.trip_plan_detail_id) AS place_count
        FROM trip_plan t
        LEFT JOIN trip_plan_detail d ON d.trip_id = t.trip_id
        WHERE t.user_id = ?
        GROUP BY t.trip_id
        ORDER BY t.updated_at DESC, t.created_at DESC
        """, (user_id,))
        return [dict(r) for r in cur.fetchall()]

    # ----------------------------------------------------------------------
    # TRIP DAY DETAILS
    # ----------------------------------------------------------------------
    def insert_trip_details(self, rows: Iterable[Dict[str, Any]]):
        rows = list(rows)
        if not rows:
            return

        def _insert_details():
            with self.conn:
                self.conn.executemany("""
                INSERT INTO trip_plan_detail (trip_id, place_id, day_number, visit_order)
                VALUES (:trip_id, :place_id, :day_number, :visit_order)
                """, rows)

        self._execute_with_retry(_insert_details)

    def replace_trip_details(self, trip_id: str, rows: Iterable[Dict[str, Any]]):
        """Delete every detail row of the trip and insert `rows`, in one transaction."""
        rows = list(rows)

        def _replace_details():
            with self.conn:
                self.conn.execute("DELETE FROM trip_plan_detail WHERE trip_id = ?", (trip_id,))
                if rows:
                    self.conn.executemany("""
                    INSERT INTO trip_plan_detail (trip_id, place_id, day_number, visit_order)
                    VALUES (:trip_id, :place_id, :day_number, :visit_order)
                    """, rows)

        self._execute_with_retry(_replace_details)

    def get_trip_details(self, trip_id: str) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("""
        SELECT d.day_number, d.visit_order,
               p.place_id, p.place_name, p.place_address,
               p.latitude, p.longitude,
               p.average_rating, p.review_count, p.favorite_count,
               r.region_name
        FROM trip_plan_detail d
        JOIN place p ON p.place_id = d.place_id
        LEFT JOIN region r ON r.region_id = p.region_id
        WHERE d.trip_id = ?
        ORDER BY d.day_number ASC, d.visit_order ASC
        """, (trip_id,))
        return [dict(r) for r in cur.fetchall()]

# backend/trip_planner/utils/day_range.py

from datetime import date, datetime, timedelta
from typing import List, Optional, Union
import pytz

from trip_planner.core.config_loader import settings
from trip_planner.core.errors import InvalidDateRange, PlanValidationError
from trip_planner.models.trip_models import DayInfo


DateLike = Union[date, str, None]


def parse_date(value: DateLike) -> Optional[date]:
    """
    Accepts:
    - datetime.date / datetime.datetime
    - 2025-03-12
    - 2025.03.12 / 2025. 03. 12 (display format)
    - empty string / None -> None
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if not text:
        return None

    # Display format "yyyy. MM. dd"
    if "." in text:
        text = "-".join(part.strip() for part in text.split(".") if part.strip())

    try:
        return date.fromisoformat(text)
    except ValueError:
        raise InvalidDateRange(f"Invalid date: {value!r}")


def generate_days(start: DateLike, end: DateLike) -> List[DayInfo]:
    """
    Inclusive day range: 2025-03-12 .. 2025-03-14 -> days 1, 2, 3.
    Either bound missing -> [] (dates not chosen yet).
    """
    start_date = parse_date(start)
    end_date = parse_date(end)

    if start_date is None or end_date is None:
        return []

    if end_date < start_date:
        raise InvalidDateRange(
            f"End date {end_date.isoformat()} is before start date {start_date.isoformat()}"
        )

    duration = (end_date - start_date).days + 1
    return [
        DayInfo(day=i + 1, date=start_date + timedelta(days=i))
        for i in range(duration)
    ]


def format_day_label(day: DayInfo) -> str:
    return day.date.strftime("%Y. %m. %d")


def validate_plan(title: Optional[str]) -> None:
    if not title or not title.strip():
        raise PlanValidationError("Please enter a trip title.")


def current_time_str() -> str:
    return datetime.now(pytz.timezone(settings.timezone)).strftime("%Y-%m-%d %H:%M:%S")

"""Rental period helpers: durations, date validation, season and weekday."""

from __future__ import annotations

import math
from datetime import date, datetime, time
from typing import Optional, Union

from dress_pricing.errors import InvalidDateRange
from dress_pricing.schemas.catalog import ServiceTypeConfig

DateLike = Union[date, datetime, str]

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# Meteorological seasons, northern hemisphere
SEASONS_BY_MONTH = {
    12: "winter", 1: "winter", 2: "winter",
    3: "spring", 4: "spring", 5: "spring",
    6: "summer", 7: "summer", 8: "summer",
    9: "autumn", 10: "autumn", 11: "autumn",
}


def to_datetime(value: DateLike) -> datetime:
    """Accept ISO strings, dates and datetimes; dates start at midnight."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def calculate_duration_days(start: DateLike, end: DateLike) -> int:
    """Rental length in days, any started day counts."""
    delta = to_datetime(end) - to_datetime(start)
    return math.ceil(delta.total_seconds() / 86400)


def calculate_duration_hours(start: DateLike, end: DateLike) -> int:
    delta = to_datetime(end) - to_datetime(start)
    return math.ceil(delta.total_seconds() / 3600)


def validate_date_range(start: DateLike, end: DateLike) -> tuple[datetime, datetime]:
    """Return both bounds as datetimes, or raise InvalidDateRange."""
    start_dt, end_dt = to_datetime(start), to_datetime(end)
    if start_dt >= end_dt:
        raise InvalidDateRange()
    return start_dt, end_dt


def validate_contract_dates(
    start: DateLike,
    end: DateLike,
    service_type_config: Optional[ServiceTypeConfig] = None,
) -> None:
    """Check ordering and the service type's duration limits."""
    validate_date_range(start, end)
    if service_type_config is None:
        return

    duration = calculate_duration_days(start, end)
    if service_type_config.min_duration_days and duration < service_type_config.min_duration_days:
        raise InvalidDateRange(f"Minimum duration: {service_type_config.min_duration_days} days")
    if service_type_config.max_duration_days and duration > service_type_config.max_duration_days:
        raise InvalidDateRange(f"Maximum duration: {service_type_config.max_duration_days} days")


def weekday_for(value: DateLike) -> str:
    return WEEKDAYS[to_datetime(value).weekday()]


def season_for(value: DateLike) -> str:
    return SEASONS_BY_MONTH[to_datetime(value).month]

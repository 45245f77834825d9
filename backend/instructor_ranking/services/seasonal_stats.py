# backend/instructor_ranking/services/seasonal_stats.py
"""
Season bucketing for the `seasonal_stats` JSON column.

A season starts on the first day of ``start_month``. With the default
November start, 2025-11-03 and 2026-02-14 both fall in season "2025-2026".
The current season is the one containing "now"; only it and the season
before it are kept. Activity dated before the previous season is not tracked.
"""

from copy import deepcopy
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..models.instructor_stats import empty_season


def season_for(moment: datetime, start_month: int) -> Tuple[int, str]:
    """Return ``(start_year, label)`` of the season containing ``moment``."""
    start_year = moment.year if moment.month >= start_month else moment.year - 1
    if start_month == 1:
        return start_year, str(start_year)
    return start_year, f"{start_year}-{start_year + 1}"


def _new_season(start_year: int, label: str) -> Dict[str, Any]:
    season = empty_season(label)
    season["start_year"] = start_year
    return season


def roll_season_forward(
    seasonal: Optional[Dict[str, Any]], now: datetime, start_month: int
) -> Dict[str, Any]:
    """
    Make the season containing ``now`` the current one.

    A current season one season behind becomes the previous season; anything
    older is dropped. Already up-to-date input is returned as an equal copy.
    """
    result = deepcopy(seasonal) if seasonal else {}
    current = result.get("current_season") or empty_season()
    previous = result.get("previous_season") or empty_season()
    start_year, label = season_for(now, start_month)
    current_year = current.get("start_year")

    if current_year is None or current_year < start_year:
        previous = current if current_year == start_year - 1 else empty_season()
        current = _new_season(start_year, label)

    result["current_season"] = current
    result["previous_season"] = previous
    return result


def apply_season_delta(
    seasonal: Optional[Dict[str, Any]],
    moment: datetime,
    start_month: int,
    *,
    lessons: int = 0,
    earnings: float = 0.0,
    rating_sum: int = 0,
    reviews: int = 0,
) -> Dict[str, Any]:
    """
    Add activity dated ``moment`` to its season and return the new mapping.

    The input is never mutated; JSON columns only persist on reassignment.
    """
    result = deepcopy(seasonal) if seasonal else {}
    current = result.get("current_season") or empty_season()
    previous = result.get("previous_season") or empty_season()
    start_year, label = season_for(moment, start_month)
    current_year = current.get("start_year")

    if current_year is None:
        current = _new_season(start_year, label)
    elif start_year > current_year:
        previous = current if start_year == current_year + 1 else empty_season()
        current = _new_season(start_year, label)
    elif start_year == current_year - 1 and previous.get("start_year") is None:
        previous = _new_season(start_year, label)

    if current.get("start_year") == start_year:
        target = current
    elif previous.get("start_year") == start_year:
        target = previous
    else:
        target = None

    if target is not None:
        target["lessons"] = int(target.get("lessons", 0)) + lessons
        target["earnings"] = round(float(target.get("earnings", 0.0)) + float(earnings), 2)
        target["rating_sum"] = int(target.get("rating_sum", 0)) + rating_sum
        target["reviews"] = int(target.get("reviews", 0)) + reviews
        target["rating"] = target["rating_sum"] / target["reviews"] if target["reviews"] else 0.0

    result["current_season"] = current
    result["previous_season"] = previous
    return result

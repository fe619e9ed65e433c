"""Validation and normalisation of user-supplied game filters.

A *GameFilters* value is a plain dict with these keys::

    {
        'genres':           ['indie', 'rpg'],   # always contains 'indie'
        'min_rating':       70,                 # 0-100 or None
        'min_reviews':      50,                 # >= 0 or None
        'min_release_year': 2016,               # 1990-2030 or None
        'max_release_year': 2020,               # 1990-2030 or None
        'independent_only': True,
        'dates':            '2016-01-01,2020-12-31',  # or None
    }

:func:`normalize_filters` accepts loosely-typed input (query-string values,
CLI arguments) and always produces that shape.  Feeding its output back in
returns an equal dict.
"""

from __future__ import annotations

import datetime
import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger('indiepick.filters')

INDIE_GENRE = 'indie'
MIN_YEAR = 1990
MAX_YEAR = 2030
DEFAULT_MIN_YEAR = 2015
DEFAULT_CAP_YEAR = 2025


def default_date_range(min_year: int = DEFAULT_MIN_YEAR, cap_year: int = DEFAULT_CAP_YEAR) -> str:
    """``start,end`` range covering *min_year* through *cap_year*."""
    return f'{min_year}-01-01,{max(cap_year, min_year)}-12-31'


DEFAULT_DATE_RANGE = default_date_range()

_DATES_RE = re.compile(r'^\d{4}-\d{2}-\d{2},\d{4}-\d{2}-\d{2}$')
_TRUE_STRINGS = {'true', '1', 'yes', 'on'}
_FALSE_STRINGS = {'false', '0', 'no', 'off'}

# query-string name -> filter key
_QUERY_KEYS = {
    'genres': 'genres',
    'minRating': 'min_rating',
    'minReviews': 'min_reviews',
    'minReleaseYear': 'min_release_year',
    'maxReleaseYear': 'max_release_year',
    'independentOnly': 'independent_only',
    'dates': 'dates',
}


class ValidationError(ValueError):
    """Raised when a filter value has the wrong shape or is out of range."""


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _normalize_genres(value: Any) -> List[str]:
    if _is_blank(value):
        items: List[Any] = []
    elif isinstance(value, str):
        items = value.split(',')
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    else:
        raise ValidationError("genres must be a list of genre slugs")

    genres: List[str] = []
    for item in items:
        if not isinstance(item, str):
            raise ValidationError(f"Invalid genre: {item!r}")
        slug = item.strip().lower()
        if slug and slug not in genres:
            genres.append(slug)
    if INDIE_GENRE not in genres:
        genres.append(INDIE_GENRE)
    return genres


def _to_number(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}")
    if number != number or number in (float('inf'), float('-inf')):
        raise ValidationError(f"{field} must be a finite number")
    return number


def _bounded_int(value: Any, field: str, low: int, high: Optional[int]) -> Optional[int]:
    if _is_blank(value):
        return None
    # range check on the raw value, before truncation
    number = _to_number(value, field)
    if number < low or (high is not None and number > high):
        if high is None:
            raise ValidationError(f"{field} must be at least {low}")
        raise ValidationError(f"{field} must be between {low} and {high}")
    return int(number)


def _to_bool(value: Any, field: str, default: bool) -> bool:
    if _is_blank(value):
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValidationError(f"{field} must be true or false")


def validate_dates(value: str) -> str:
    """Return *value* if it is a ``YYYY-MM-DD,YYYY-MM-DD`` range of real dates.

    Raises:
        ValidationError: Pattern mismatch, impossible date, or start after end.
    """
    if not isinstance(value, str) or not _DATES_RE.match(value.strip()):
        raise ValidationError(f"dates must look like YYYY-MM-DD,YYYY-MM-DD, got {value!r}")
    start_s, end_s = value.strip().split(',')
    try:
        start = datetime.date.fromisoformat(start_s)
        end = datetime.date.fromisoformat(end_s)
    except ValueError as exc:
        raise ValidationError(f"dates contains an invalid date: {exc}")
    if start > end:
        raise ValidationError("dates start must not be after its end")
    return f"{start_s},{end_s}"


def normalize_filters(
    raw: Optional[Mapping[str, Any]] = None,
    fallback_dates: str = DEFAULT_DATE_RANGE,
) -> Dict[str, Any]:
    """Validate *raw* and return a canonical GameFilters dict.

    A malformed ``dates`` value is replaced by *fallback_dates* (by default
    :data:`DEFAULT_DATE_RANGE`) instead of failing the whole request.

    Raises:
        ValidationError: Any other field is malformed or out of range.
    """
    raw = raw or {}

    min_year = _bounded_int(raw.get('min_release_year'), 'minReleaseYear', MIN_YEAR, MAX_YEAR)
    max_year = _bounded_int(raw.get('max_release_year'), 'maxReleaseYear', MIN_YEAR, MAX_YEAR)
    if min_year is not None and max_year is not None and min_year > max_year:
        raise ValidationError("minReleaseYear cannot be after maxReleaseYear")

    dates = raw.get('dates')
    if _is_blank(dates):
        dates = None
    else:
        try:
            dates = validate_dates(dates)
        except ValidationError as exc:
            logger.warning("%s; using default range %s", exc, fallback_dates)
            dates = fallback_dates

    return {
        'genres': _normalize_genres(raw.get('genres')),
        'min_rating': _bounded_int(raw.get('min_rating'), 'minRating', 0, 100),
        'min_reviews': _bounded_int(raw.get('min_reviews'), 'minReviews', 0, None),
        'min_release_year': min_year,
        'max_release_year': max_year,
        'independent_only': _to_bool(raw.get('independent_only'), 'independentOnly', True),
        'dates': dates,
    }


def parse_query_args(args: Mapping[str, Any]) -> Dict[str, Any]:
    """Map HTTP query arguments (camelCase) onto raw filter keys.

    ``genres`` is expected as a JSON array (``["indie","rpg"]``); anything
    that does not decode to a list is treated as a comma-separated string.
    """
    raw: Dict[str, Any] = {}
    for query_key, filter_key in _QUERY_KEYS.items():
        value = args.get(query_key)
        if value is not None:
            raw[filter_key] = value

    genres = raw.get('genres')
    if isinstance(genres, str) and genres.strip().startswith('['):
        try:
            decoded = json.loads(genres)
        except ValueError:
            raise ValidationError("genres must be a JSON array of strings")
        if not isinstance(decoded, list):
            raise ValidationError("genres must be a JSON array of strings")
        raw['genres'] = decoded
    return raw


def effective_date_range(
    filters: Mapping[str, Any],
    default_min_year: int = DEFAULT_MIN_YEAR,
    cap_year: int = DEFAULT_CAP_YEAR,
) -> str:
    """Return the ``start,end`` date range used for catalog queries.

    ``dates`` wins when present; otherwise the range is built from the year
    bounds, defaulting to *default_min_year* and capped at *cap_year*.
    """
    if filters.get('dates'):
        return filters['dates']
    start_year = filters.get('min_release_year') or default_min_year
    end_year = min(filters.get('max_release_year') or cap_year, cap_year)
    end_year = max(end_year, start_year)
    return f'{start_year}-01-01,{end_year}-12-31'


def range_years(date_range: str) -> tuple:
    """Return ``(start_year, end_year)`` of a ``YYYY-MM-DD,YYYY-MM-DD`` range."""
    start, end = date_range.split(',')
    return int(start[:4]), int(end[:4])

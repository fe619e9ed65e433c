"""Random game selection.

Turns a normalised GameFilters dict into exactly one catalog game:

* query the catalog for popular titles in the requested window and genres,
  retrying once with every constraint but the date range dropped
* keep independent titles (by tag/genre, then by excluding major publishers)
* shuffle, pick, and re-check the pick against the rating/review/year floors
* steer away from games recently shown for the same year bucket

Year windows starting at or after ``recent_year_cutoff`` are treated as
"recent": the catalog has little rating data for them yet, so the rating and
review floors are left out of the query, the requested page and ordering are
randomised for variety, and independence filtering is skipped.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Any, Dict, Iterable, List, Optional

from catalog_client import UpstreamError

from .filter_service import (
    DEFAULT_CAP_YEAR, DEFAULT_MIN_YEAR, effective_date_range, range_years,
)
from .history_service import RecentlyShownTracker

logger = logging.getLogger('indiepick.selector')

NOT_FOUND_MESSAGE = "No games found matching your criteria. Try adjusting your filters."

DEFAULT_RECENT_YEAR_CUTOFF = 2024
PC_PLATFORM = '4'

# Developers / publishers whose titles are not considered independent
MAJOR_PUBLISHERS = (
    'Electronic Arts',
    'Ubisoft',
    'Activision',
    'Blizzard',
    'Take-Two Interactive',
    '2K Games',
    'Rockstar Games',
    'Square Enix',
    'Sony Interactive Entertainment',
    'Microsoft Game Studios',
    'Nintendo',
    'Bandai Namco',
    'Capcom',
    'SEGA',
    'THQ Nordic',
    'Warner Bros. Interactive',
    '505 Games',
    'Focus Home Interactive',
    'Devolver Digital',
)

_PRIMARY_PAGE_SIZE = 100
_RECENT_PAGE_SIZE = 20
_RECENT_MAX_PAGE = 5
_RECENT_ORDERINGS = ('-added', '-released')


class NotFoundError(Exception):
    """Raised when no candidate survives querying and filtering."""


# ---------------------------------------------------------------------------
# Candidate helpers
# ---------------------------------------------------------------------------

def _names(entries: Optional[Iterable[Dict[str, Any]]]) -> List[str]:
    return [e.get('name') or '' for e in entries or []]


def is_indie(game: Dict[str, Any]) -> bool:
    """True if any tag or genre is named (or slugged) ``indie``."""
    for entry in (game.get('tags') or []) + (game.get('genres') or []):
        if (entry.get('name') or '').lower() == 'indie':
            return True
        if (entry.get('slug') or '').lower() == 'indie':
            return True
    return False


def has_major_publisher(game: Dict[str, Any],
                        denylist: Iterable[str] = MAJOR_PUBLISHERS) -> bool:
    """True if a developer or publisher name contains a denylisted company."""
    companies = _names(game.get('developers')) + _names(game.get('publishers'))
    majors = [m.lower() for m in denylist]
    return any(
        major in company.lower()
        for company in companies if company
        for major in majors
    )


def rating_percent(game: Dict[str, Any]) -> int:
    """Catalog rating (0-5) scaled by ten and rounded half-up."""
    return int(math.floor((game.get('rating') or 0) * 10 + 0.5))


def release_year(game: Dict[str, Any]) -> Optional[int]:
    released = game.get('released') or ''
    try:
        return int(released[:4])
    except ValueError:
        return None


def matches_filters(game: Dict[str, Any], filters: Dict[str, Any],
                    start_year: int, end_year: int) -> bool:
    """Check a candidate against the year window and rating/review floors."""
    year = release_year(game)
    if year is None or not start_year <= year <= end_year:
        return False
    min_rating = filters.get('min_rating')
    if min_rating and rating_percent(game) < min_rating:
        return False
    min_reviews = filters.get('min_reviews')
    if min_reviews and (game.get('ratings_count') or 0) < min_reviews:
        return False
    return True


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------

class CandidateSelector:
    """Pick one random game for a set of filters.

    Args:
        client:             Catalog client exposing ``search_games(params)``.
        tracker:            Recently-shown tracker; a private one is created
                            when omitted.
        recent_year_cutoff: First release year treated as a "recent" window.
        default_min_year:   Start year used when no bounds are supplied.
        cap_year:           Latest end year ever queried from year bounds.
        platforms:          Catalog platform ids restricting every query.
        rng:                ``random.Random`` instance (seedable in tests).
    """

    def __init__(
        self,
        client,
        tracker: Optional[RecentlyShownTracker] = None,
        recent_year_cutoff: int = DEFAULT_RECENT_YEAR_CUTOFF,
        default_min_year: int = DEFAULT_MIN_YEAR,
        cap_year: int = DEFAULT_CAP_YEAR,
        platforms: Optional[str] = PC_PLATFORM,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client
        self.tracker = tracker if tracker is not None else RecentlyShownTracker()
        self.recent_year_cutoff = recent_year_cutoff
        self.default_min_year = default_min_year
        self.cap_year = cap_year
        self.platforms = platforms
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def date_range(self, filters: Dict[str, Any]) -> str:
        return effective_date_range(filters, self.default_min_year, self.cap_year)

    def is_recent_window(self, date_range: str) -> bool:
        start_year, _ = range_years(date_range)
        return start_year >= self.recent_year_cutoff

    def bucket_for(self, filters: Dict[str, Any], date_range: str) -> str:
        """Year bucket for recency tracking (``'all'`` if no year was chosen)."""
        if filters.get('dates') or filters.get('min_release_year'):
            return self.tracker.bucket_key(range_years(date_range)[0])
        return self.tracker.bucket_key(None)

    def select(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        """Return one game matching *filters*.

        A failed primary query is treated like an empty one.

        Raises:
            NotFoundError: Nothing survived the queries and filters.
            catalog_client.UpstreamError: The fallback query failed.
        """
        date_range = self.date_range(filters)
        recent = self.is_recent_window(date_range)
        logger.info("Selecting game for range %s (%s window)",
                    date_range, 'recent' if recent else 'older')

        try:
            candidates = self._client.search_games(
                self.build_primary_query(filters, date_range, recent))
            logger.debug("Primary query returned %d candidates", len(candidates))
        except UpstreamError as e:
            # a random page past the end of a small result set answers 404
            logger.warning("Primary query failed (%s), trying fallback", e)
            candidates = []

        if not candidates:
            logger.info("No games from primary query, trying fallback without genre filter")
            candidates = self._client.search_games(self.build_fallback_query(date_range))
            logger.debug("Fallback query returned %d candidates", len(candidates))
            if not candidates:
                raise NotFoundError(NOT_FOUND_MESSAGE)

        pool = list(candidates)
        if filters.get('independent_only') and not recent:
            pool = self.filter_independent(pool)
        elif filters.get('independent_only'):
            logger.debug("Recent window, skipping independence filter")

        if not pool:
            raise NotFoundError(NOT_FOUND_MESSAGE)

        self._rng.shuffle(pool)
        selected = pool[0]

        start_year, end_year = range_years(date_range)
        if not matches_filters(selected, filters, start_year, end_year):
            matching = [g for g in pool if matches_filters(g, filters, start_year, end_year)]
            if matching:
                logger.debug("%r misses the filters, picking among %d matching games",
                             selected.get('name'), len(matching))
                selected = self._rng.choice(matching)
            else:
                logger.info("No candidate matches every filter, keeping best match %r",
                            selected.get('name'))

        final = self._avoid_recent(selected, pool, self.bucket_for(filters, date_range))
        logger.info("Selected %r (id %s)", final.get('name'), final.get('id'))
        return final

    # ------------------------------------------------------------------
    # Query builders
    # ------------------------------------------------------------------

    def build_primary_query(self, filters: Dict[str, Any], date_range: str,
                            recent: bool) -> Dict[str, Any]:
        genres = ['indie'] + [g for g in filters.get('genres') or [] if g != 'indie']
        params: Dict[str, Any] = {
            'page_size': _PRIMARY_PAGE_SIZE,
            'dates': date_range,
            'platforms': self.platforms,
            'ordering': '-added',
            'genres': ','.join(genres),
        }
        if recent:
            params['page_size'] = _RECENT_PAGE_SIZE
            params['page'] = self._rng.randint(1, _RECENT_MAX_PAGE)
            params['ordering'] = self._rng.choice(_RECENT_ORDERINGS)
        else:
            if filters.get('min_rating'):
                params['metacritic'] = f"{filters['min_rating']},100"
            if filters.get('min_reviews'):
                params['ratings_count'] = filters['min_reviews']
        return params

    def build_fallback_query(self, date_range: str) -> Dict[str, Any]:
        return {
            'page_size': _PRIMARY_PAGE_SIZE,
            'dates': date_range,
            'platforms': self.platforms,
            'ordering': '-added',
        }

    # ------------------------------------------------------------------
    # Filtering / recency
    # ------------------------------------------------------------------

    def filter_independent(self, candidates: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Keep indie-tagged games, else games without a major publisher, else all."""
        indie = [g for g in candidates if is_indie(g)]
        logger.debug("%d of %d candidates are tagged indie", len(indie), len(candidates))
        if indie:
            return indie

        independent = [g for g in candidates if not has_major_publisher(g)]
        logger.debug("%d candidates have no major publisher", len(independent))
        if independent:
            return independent

        logger.info("Independence filter removed every candidate, using them unfiltered")
        return list(candidates)

    def _avoid_recent(self, selected: Dict[str, Any], pool: List[Dict[str, Any]],
                      bucket: str) -> Dict[str, Any]:
        final = selected
        if len(pool) > self.tracker.capacity and self.tracker.contains(bucket, selected.get('id')):
            fresh = [g for g in pool if not self.tracker.contains(bucket, g.get('id'))]
            if fresh:
                final = self._rng.choice(fresh)
                logger.debug("%r was shown recently, switched to %r",
                             selected.get('name'), final.get('name'))
            else:
                logger.debug("Every candidate was shown recently in bucket %s", bucket)
        self.tracker.record(bucket, final.get('id'))
        return final

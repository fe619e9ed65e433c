"""Similar-game recommendations.

Given one catalog game, build a catalog query for titles that share its
genres, its three leading tags and its developers, restricted to well-reviewed
games from a broad date range, and return them together with the names of
the factors used so the UI can explain the match.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from .selection_service import PC_PLATFORM

logger = logging.getLogger('indiepick.recommend')

# ---------------------------------------------------------------------------
# Query constants
# ---------------------------------------------------------------------------
_DEFAULT_COUNT       = 4
_DEFAULT_DATE_RANGE  = '2015-01-01,2025-12-31'
_DEFAULT_METACRITIC  = 70     # minimum aggregated score out of 100
_MAX_TAGS            = 3


def _ids(entries: List[Dict[str, Any]]) -> str:
    return ','.join(str(e['id']) for e in entries if e.get('id') is not None)


def _names(entries: List[Dict[str, Any]]) -> List[str]:
    return [e['name'] for e in entries if e.get('name')]


class RecommendationComposer:
    """Find games similar to a given catalog game.

    Args:
        client:         Catalog client exposing ``get_game`` and ``search_games``.
        count:          Number of similar games to request.
        date_range:     ``YYYY-MM-DD,YYYY-MM-DD`` window for candidates.
        min_metacritic: Minimum aggregated score (0-100).
        platforms:      Catalog platform ids, or None for all platforms.
    """

    def __init__(
        self,
        client,
        count: int = _DEFAULT_COUNT,
        date_range: str = _DEFAULT_DATE_RANGE,
        min_metacritic: int = _DEFAULT_METACRITIC,
        platforms: str = PC_PLATFORM,
    ) -> None:
        self._client        = client
        self.count          = max(1, count)
        self.date_range     = date_range
        self.min_metacritic = min_metacritic
        self.platforms      = platforms

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def recommend(self, game_id) -> Dict[str, Any]:
        """Return ``{'results': [...], 'similarityFactors': {...}}`` for *game_id*.

        Raises:
            catalog_client.UpstreamError: The detail or search call failed.
        """
        game = self._client.get_game(game_id)
        params = self.build_query(game, game_id)
        logger.debug("Fetching recommendations for %s with %s", game_id, params)

        results = [
            g for g in self._client.search_games(params)
            if str(g.get('id')) != str(game_id)
        ]
        return {
            'results': results,
            'similarityFactors': self.similarity_factors(game),
        }

    def build_query(self, game: Dict[str, Any], game_id) -> Dict[str, Any]:
        """Catalog search parameters for titles similar to *game*."""
        tags = (game.get('tags') or [])[:_MAX_TAGS]
        params: Dict[str, Any] = {
            'genres': _ids(game.get('genres') or []),
            'tags': _ids(tags),
            'developers': _ids(game.get('developers') or []),
            'exclude_games': str(game_id),
            'page_size': self.count,
            'ordering': '-rating',
            'dates': self.date_range,
            'platforms': self.platforms,
            'metacritic': f'{self.min_metacritic},100',
        }
        return {k: v for k, v in params.items() if v not in (None, '')}

    @staticmethod
    def similarity_factors(game: Dict[str, Any]) -> Dict[str, List[str]]:
        """Human-readable genre, tag and developer names behind the query."""
        return {
            'genres': _names(game.get('genres') or []),
            'tags': _names((game.get('tags') or [])[:_MAX_TAGS]),
            'developers': _names(game.get('developers') or []),
        }

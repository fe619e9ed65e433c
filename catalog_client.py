"""
catalog_client.py
=================
Thin wrapper around the RAWG video game database used by IndiePick to
search for candidate games, fetch full game details and list genres.

Authentication
--------------
RAWG expects the API key as a ``key`` query parameter on every request.
Obtain a free key at https://rawg.io/apidocs.

Usage
-----
::

    from catalog_client import RAWGClient

    client = RAWGClient(api_key="abc")
    games = client.search_games({"genres": "indie", "page_size": 100})
    # [{"id": 3328, "name": "...", "rating": 4.2, "ratings_count": 512, ...}, ...]

    detail = client.get_game(3328)
    genres = client.list_genres()
    # [{"id": 51, "name": "Indie", "slug": "indie"}, ...]
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger('indiepick.catalog')

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_RAWG_BASE = "https://api.rawg.io/api"
_DEFAULT_TIMEOUT = 10  # seconds
# Game details kept in memory, least recently used evicted first
DEFAULT_CACHE_SIZE = 256
# RAWG refuses page sizes above 100
MAX_PAGE_SIZE = 100


class UpstreamError(Exception):
    """Raised when the catalog cannot be reached or answers with an error."""


class RAWGClient:
    """Minimal RAWG API client.

    Every public method either returns parsed data or raises
    :class:`UpstreamError`; there is no retry logic here.
    """

    def __init__(
        self,
        api_key: str,
        timeout: int = _DEFAULT_TIMEOUT,
        base_url: str = _RAWG_BASE,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        """
        Args:
            api_key:    RAWG API key.
            timeout:    HTTP request timeout in seconds.
            base_url:   API root, overridable for tests or a local mirror.
            cache_size: Maximum number of game details kept in memory.
        """
        if cache_size < 1:
            raise ValueError("cache_size must be at least 1")
        self.session = requests.Session()
        self.details_cache: Dict[int, Dict[str, Any]] = OrderedDict()
        self.cache_size = cache_size
        self._api_key  = api_key
        self._timeout  = timeout
        self._base_url = base_url.rstrip('/')

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    def search_games(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Return the ``results`` list of a ``/games`` search.

        *params* is passed through as RAWG query parameters (``genres``,
        ``dates``, ``ordering``, ``page_size``, ``metacritic`` ...).  Values
        that are ``None`` or empty strings are dropped.

        Raises:
            UpstreamError: Transport failure or non-2xx response.
        """
        query = {k: v for k, v in params.items() if v is not None and v != ''}
        if 'page_size' in query:
            query['page_size'] = min(int(query['page_size']), MAX_PAGE_SIZE)
        data = self._get('/games', params=query)
        results = data.get('results') or []
        logger.debug("Search %s returned %d of %s games",
                     query, len(results), data.get('count', 0))
        return results

    def get_game(self, game_id) -> Dict[str, Any]:
        """Return the full detail object for *game_id* (kept in a bounded LRU cache).

        Raises:
            UpstreamError: Transport failure, non-2xx response or bad id.
        """
        try:
            gid = int(game_id)
        except (ValueError, TypeError):
            raise UpstreamError(f"Invalid game id: {game_id!r}")

        if gid in self.details_cache:
            self.details_cache.move_to_end(gid)
            return self.details_cache[gid]

        game = self._get(f'/games/{gid}')
        self.details_cache[gid] = game
        while len(self.details_cache) > self.cache_size:
            self.details_cache.popitem(last=False)
        return game

    def list_genres(self) -> List[Dict[str, Any]]:
        """Return every catalog genre as ``{id, name, slug}``.

        Raises:
            UpstreamError: Transport failure or non-2xx response.
        """
        data = self._get('/genres')
        return [
            {'id': g.get('id'), 'name': g.get('name', ''), 'slug': g.get('slug', '')}
            for g in data.get('results') or []
        ]

    def clear_cache(self) -> None:
        """Forget all memoised game details."""
        self.details_cache.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Perform a GET request against the catalog and return parsed JSON."""
        url = self._base_url + path
        query = dict(params or {})
        query['key'] = self._api_key
        try:
            resp = self.session.get(url, params=query, timeout=self._timeout)
            resp.raise_for_status()
        except requests.HTTPError as exc:
            logger.error("RAWG API error %s for %s: %s",
                         resp.status_code, path, resp.text)
            raise UpstreamError(
                f"RAWG API error {resp.status_code} for {path}"
            ) from exc
        except requests.RequestException as exc:
            logger.error("Network error calling RAWG %s: %s", path, exc)
            raise UpstreamError(f"Network error calling RAWG API: {exc}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(f"RAWG returned invalid JSON for {path}") from exc

#!/usr/bin/env python3
"""
IndiePick - Random Indie Game Discovery
Pick a random independent game from the RAWG catalog, filtered by genre,
rating, review count and release window, and find similar titles.
"""

import json
import logging
import os
import sys
import argparse
from typing import Dict, List, Optional

from colorama import init, Fore, Style

from catalog_client import DEFAULT_CACHE_SIZE, RAWGClient, UpstreamError
from app.services import (
    CandidateSelector, NotFoundError, RecentlyShownTracker,
    RecommendationComposer, ValidationError, normalize_filters,
)
from app.services.filter_service import (
    DEFAULT_CAP_YEAR, DEFAULT_MIN_YEAR, default_date_range,
)
from app.services.selection_service import DEFAULT_RECENT_YEAR_CUTOFF, PC_PLATFORM

__version__ = '1.0.0'

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root IndiePick logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger('indiepick')
    # FileHandler subclasses StreamHandler, so match the exact type
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


# Module-level logger used throughout indiepick.py
logger = setup_logging(os.getenv('INDIEPICK_LOG_LEVEL', 'WARNING'))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: Dict = {
    'rawg_api_key': '',
    'api_timeout_seconds': 10,
    'details_cache_size': DEFAULT_CACHE_SIZE,
    'recent_year_cutoff': DEFAULT_RECENT_YEAR_CUTOFF,
    'default_min_year': DEFAULT_MIN_YEAR,
    'max_release_year_cap': DEFAULT_CAP_YEAR,
    'recent_capacity': RecentlyShownTracker.DEFAULT_CAPACITY,
    'platforms': PC_PLATFORM,
    'log_level': 'WARNING',
}

_PLACEHOLDER_VALUES = {'DEMO_MODE', 'DEMO_KEY', 'YOUR_RAWG_API_KEY_HERE'}


class ConfigError(Exception):
    """Raised when the config file exists but cannot be parsed."""


def is_placeholder_value(value: str) -> bool:
    """Check if a value is a placeholder/demo sentinel that should not be used for real API calls."""
    if not value or not isinstance(value, str):
        return True
    return value.startswith('YOUR_') or value in _PLACEHOLDER_VALUES


def load_config(config_path: str = 'config.json') -> Dict:
    """Load configuration from an optional JSON file with environment variable support

    Values are layered: built-in defaults, then the file (if it exists),
    then environment variables:
    - RAWG_API_KEY overrides rawg_api_key
    - INDIEPICK_LOG_LEVEL overrides log_level

    Raises:
        ConfigError: The file exists but is not a JSON object.
    """
    config = dict(DEFAULT_CONFIG)
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Error parsing config file {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must contain a JSON object")
        config.update(data)

    if os.getenv('RAWG_API_KEY'):
        config['rawg_api_key'] = os.getenv('RAWG_API_KEY')
    if os.getenv('INDIEPICK_LOG_LEVEL'):
        config['log_level'] = os.getenv('INDIEPICK_LOG_LEVEL')
    return config


# ---------------------------------------------------------------------------
# Integration point
# ---------------------------------------------------------------------------

class IndieFinder:
    """Owns the catalog client and the selection/recommendation services.

    Pass *client* to inject a fake catalog (tests, demos); otherwise a
    :class:`RAWGClient` is built from the config.
    """

    def __init__(self, config: Optional[Dict] = None, client=None, rng=None):
        self._log = logging.getLogger('indiepick.finder')
        self.config = dict(DEFAULT_CONFIG)
        self.config.update(config or {})

        # Re-apply log level from config (allows "log_level": "DEBUG" in config.json)
        setup_logging(self.config.get('log_level', 'WARNING'))

        api_key = self.config.get('rawg_api_key', '')
        self.catalog_configured = client is not None or not is_placeholder_value(api_key)
        if client is None:
            if is_placeholder_value(api_key):
                self._log.warning("No RAWG API key configured; catalog requests will fail.")
            client = RAWGClient(api_key, timeout=self.config['api_timeout_seconds'],
                                cache_size=self.config['details_cache_size'])
        self.client = client

        self.tracker = RecentlyShownTracker(self.config['recent_capacity'])
        self.selector = CandidateSelector(
            client,
            tracker=self.tracker,
            recent_year_cutoff=self.config['recent_year_cutoff'],
            default_min_year=self.config['default_min_year'],
            cap_year=self.config['max_release_year_cap'],
            platforms=self.config['platforms'],
            rng=rng,
        )
        self.recommender = RecommendationComposer(client, platforms=self.config['platforms'])
        # replacement for a malformed ``dates`` filter, following the configured years
        self.fallback_dates = default_date_range(self.config['default_min_year'],
                                                 self.config['max_release_year_cap'])

    def random_game(self, raw_filters: Optional[Dict] = None) -> Dict:
        """Normalise *raw_filters* and return one randomly selected game.

        Raises:
            ValidationError, NotFoundError, UpstreamError
        """
        filters = normalize_filters(raw_filters, fallback_dates=self.fallback_dates)
        self._log.info("Random game requested with filters %s", filters)
        return self.selector.select(filters)

    def game_details(self, game_id) -> Dict:
        return self.client.get_game(game_id)

    def recommendations(self, game_id) -> Dict:
        return self.recommender.recommend(game_id)

    def genres(self) -> List[Dict]:
        return self.client.list_genres()


# ---------------------------------------------------------------------------
# Terminal output
# ---------------------------------------------------------------------------

def display_game_info(game: Dict, detailed: bool = False):
    """Display information about a game"""
    name = game.get('name', 'Unknown Game')
    genres = ', '.join(g.get('name', '') for g in game.get('genres') or []) or 'Unknown'

    print(f"\n{Fore.GREEN}{'='*60}")
    print(f"{Fore.CYAN}{Style.BRIGHT}🎮 {name}")
    print(f"{Fore.GREEN}{'='*60}")
    print(f"{Fore.YELLOW}Game ID: {Fore.WHITE}{game.get('id')}")
    print(f"{Fore.YELLOW}Released: {Fore.WHITE}{game.get('released') or 'Unknown'}")
    print(f"{Fore.YELLOW}Rating: {Fore.WHITE}{game.get('rating', 0)} / 5 "
          f"({game.get('ratings_count', 0)} ratings)")
    print(f"{Fore.YELLOW}Genres: {Fore.WHITE}{genres}")

    if detailed:
        developers = ', '.join(d.get('name', '') for d in game.get('developers') or [])
        if developers:
            print(f"{Fore.YELLOW}Developers: {Fore.WHITE}{developers}")
        description = game.get('description_raw') or game.get('description')
        if description:
            print(f"\n{Fore.YELLOW}Description:")
            print(f"{Fore.WHITE}{description}")

    if game.get('slug'):
        print(f"\n{Fore.YELLOW}RAWG: {Fore.WHITE}https://rawg.io/games/{game['slug']}")
    print(f"{Fore.GREEN}{'='*60}\n")


def display_recommendations(data: Dict):
    factors = data.get('similarityFactors', {})
    print(f"\n{Fore.MAGENTA}Similar games "
          f"(genres: {', '.join(factors.get('genres', [])) or '-'}; "
          f"tags: {', '.join(factors.get('tags', [])) or '-'}; "
          f"developers: {', '.join(factors.get('developers', [])) or '-'})")
    results = data.get('results') or []
    if not results:
        print(f"{Fore.YELLOW}No similar games found.")
    for i, game in enumerate(results, 1):
        print(f"{Fore.CYAN}{i}. {Fore.WHITE}{game.get('name')} "
              f"{Fore.YELLOW}({game.get('released') or '?'}, rating {game.get('rating', 0)})")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='IndiePick - Random Indie Game Discovery',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  indiepick --random                          # Pick a random indie game
  indiepick --random --genres rpg,strategy    # Restrict to genres
  indiepick --random --min-year 2010 --max-year 2014 --min-rating 70
  indiepick --details 3328                    # Show one game
  indiepick --recommend 3328                  # Games similar to 3328
  indiepick --list-genres                     # Show catalog genres
        """
    )
    parser.add_argument('--config', '-c', default='config.json',
                        help='Path to config file (default: config.json)')
    parser.add_argument('--log-level', help='Override log level (e.g. DEBUG)')

    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument('--random', '-r', action='store_true',
                        help='Pick a random game and exit')
    action.add_argument('--details', type=int, metavar='ID',
                        help='Show details for a catalog game id')
    action.add_argument('--recommend', type=int, metavar='ID',
                        help='Show games similar to a catalog game id')
    action.add_argument('--list-genres', action='store_true',
                        help='List catalog genres')

    parser.add_argument('--genres', type=str,
                        help='Genre slugs, comma-separated (e.g., "rpg,strategy")')
    parser.add_argument('--min-rating', type=int, help='Minimum rating (0-100)')
    parser.add_argument('--min-reviews', type=int, help='Minimum number of ratings')
    parser.add_argument('--min-year', type=int, help='Earliest release year (1990-2030)')
    parser.add_argument('--max-year', type=int, help='Latest release year (1990-2030)')
    parser.add_argument('--dates', type=str,
                        help='Explicit release range YYYY-MM-DD,YYYY-MM-DD (overrides years)')
    parser.add_argument('--include-mainstream', action='store_true',
                        help='Do not restrict picks to independent games')
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"{Fore.RED}{e}")
        sys.exit(1)
    if args.log_level:
        config['log_level'] = args.log_level

    if is_placeholder_value(config.get('rawg_api_key', '')):
        print(f"{Fore.RED}Error: Please configure your RAWG API key in {args.config} "
              f"or set the RAWG_API_KEY environment variable")
        print(f"{Fore.YELLOW}Get a free key at: https://rawg.io/apidocs")
        sys.exit(1)

    finder = IndieFinder(config)

    try:
        if args.random:
            raw = {
                'genres': args.genres,
                'min_rating': args.min_rating,
                'min_reviews': args.min_reviews,
                'min_release_year': args.min_year,
                'max_release_year': args.max_year,
                'independent_only': not args.include_mainstream,
                'dates': args.dates,
            }
            print(f"{Fore.CYAN}Searching the catalog...")
            display_game_info(finder.random_game(raw))
        elif args.details is not None:
            display_game_info(finder.game_details(args.details), detailed=True)
        elif args.recommend is not None:
            display_recommendations(finder.recommendations(args.recommend))
        elif args.list_genres:
            for genre in finder.genres():
                print(f"{Fore.CYAN}{genre['slug']:<24}{Fore.WHITE}{genre['name']}")
    except ValidationError as e:
        print(f"{Fore.RED}Invalid filter: {e}")
        sys.exit(2)
    except NotFoundError as e:
        print(f"{Fore.YELLOW}{e}")
        sys.exit(1)
    except UpstreamError as e:
        print(f"{Fore.RED}Could not reach the game catalog: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print(f"\n\n{Fore.YELLOW}Interrupted by user. Goodbye!")


if __name__ == "__main__":
    main()

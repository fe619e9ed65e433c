#!/usr/bin/env python3
"""
Unit tests for IndiePick core functionality (config, finder, CLI).

Run with:
    python -m pytest tests/
  or
    python -m unittest discover tests/
"""
import io
import json
import logging
import os
import random
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock, patch

# Make sure indiepick can be imported regardless of where tests are run from.
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import indiepick
from app.services import NotFoundError, ValidationError
from catalog_client import RAWGClient, UpstreamError

FAKE_API_KEY = 'TEST_API_KEY_12345'

FAKE_GAMES = [
    {'id': 3328, 'name': 'Hollow Knight', 'slug': 'hollow-knight', 'released': '2017-02-24',
     'rating': 4.4, 'ratings_count': 2900, 'genres': [{'id': 51, 'name': 'Indie', 'slug': 'indie'}]},
    {'id': 4286, 'name': 'Celeste', 'slug': 'celeste', 'released': '2018-01-25',
     'rating': 4.3, 'ratings_count': 2100, 'genres': [{'id': 51, 'name': 'Indie', 'slug': 'indie'}]},
]


def make_catalog(results=None):
    catalog = MagicMock()
    catalog.search_games.return_value = list(FAKE_GAMES if results is None else results)
    catalog.get_game.side_effect = lambda gid: {'id': int(gid), 'name': 'Hollow Knight',
                                                'genres': [], 'tags': [], 'developers': []}
    catalog.list_genres.return_value = [{'id': 51, 'name': 'Indie', 'slug': 'indie'}]
    return catalog


# ===========================================================================
# Helper function tests
# ===========================================================================

class TestIsPlaceholderValue(unittest.TestCase):

    def test_empty(self):
        self.assertTrue(indiepick.is_placeholder_value(''))
        self.assertTrue(indiepick.is_placeholder_value(None))

    def test_template_value(self):
        self.assertTrue(indiepick.is_placeholder_value('YOUR_RAWG_API_KEY_HERE'))
        self.assertTrue(indiepick.is_placeholder_value('YOUR_KEY'))

    def test_demo_values(self):
        self.assertTrue(indiepick.is_placeholder_value('DEMO_MODE'))
        self.assertTrue(indiepick.is_placeholder_value('DEMO_KEY'))

    def test_real_key(self):
        self.assertFalse(indiepick.is_placeholder_value(FAKE_API_KEY))


class TestSetupLogging(unittest.TestCase):

    def test_sets_level(self):
        logger = indiepick.setup_logging('DEBUG')
        self.assertEqual(logger.name, 'indiepick')
        self.assertEqual(logger.level, 10)
        indiepick.setup_logging('WARNING')

    def test_unknown_level_defaults_to_warning(self):
        logger = indiepick.setup_logging('LOUD')
        self.assertEqual(logger.level, 30)

    def _console_handlers(self, logger):
        return [h for h in logger.handlers if type(h) is logging.StreamHandler]

    def test_single_console_handler(self):
        indiepick.setup_logging('INFO')
        logger = indiepick.setup_logging('INFO')
        self.assertEqual(len(self._console_handlers(logger)), 1)
        indiepick.setup_logging('WARNING')

    def test_file_handler_does_not_replace_console(self):
        logger = logging.getLogger('indiepick')
        tmp = tempfile.mkdtemp()
        fh = logging.FileHandler(os.path.join(tmp, 'extra.log'))
        logger.addHandler(fh)
        try:
            indiepick.setup_logging('WARNING')
            self.assertEqual(len(self._console_handlers(logger)), 1)
        finally:
            logger.removeHandler(fh)
            fh.close()
            shutil.rmtree(tmp)


# ===========================================================================
# Configuration
# ===========================================================================

class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp, 'config.json')

    def tearDown(self):
        shutil.rmtree(self.tmp)

    @patch.dict(os.environ, {'RAWG_API_KEY': '', 'INDIEPICK_LOG_LEVEL': ''})
    def test_missing_file_gives_defaults(self):
        config = indiepick.load_config(self.path)
        self.assertEqual(config, indiepick.DEFAULT_CONFIG)

    @patch.dict(os.environ, {'RAWG_API_KEY': '', 'INDIEPICK_LOG_LEVEL': ''})
    def test_file_values_applied(self):
        with open(self.path, 'w') as f:
            json.dump({'rawg_api_key': FAKE_API_KEY, 'recent_year_cutoff': 2023}, f)
        config = indiepick.load_config(self.path)
        self.assertEqual(config['rawg_api_key'], FAKE_API_KEY)
        self.assertEqual(config['recent_year_cutoff'], 2023)
        self.assertEqual(config['api_timeout_seconds'], 10)

    @patch.dict(os.environ, {'RAWG_API_KEY': 'ENV_KEY', 'INDIEPICK_LOG_LEVEL': 'DEBUG'})
    def test_env_overrides_file(self):
        with open(self.path, 'w') as f:
            json.dump({'rawg_api_key': FAKE_API_KEY, 'log_level': 'ERROR'}, f)
        config = indiepick.load_config(self.path)
        self.assertEqual(config['rawg_api_key'], 'ENV_KEY')
        self.assertEqual(config['log_level'], 'DEBUG')

    def test_invalid_json(self):
        with open(self.path, 'w') as f:
            f.write('{not json')
        with self.assertRaises(indiepick.ConfigError):
            indiepick.load_config(self.path)

    def test_non_object(self):
        with open(self.path, 'w') as f:
            json.dump(['a', 'b'], f)
        with self.assertRaises(indiepick.ConfigError):
            indiepick.load_config(self.path)


# ===========================================================================
# IndieFinder
# ===========================================================================

class TestIndieFinder(unittest.TestCase):

    def test_builds_rawg_client_from_config(self):
        finder = indiepick.IndieFinder({'rawg_api_key': FAKE_API_KEY, 'api_timeout_seconds': 3})
        self.assertIsInstance(finder.client, RAWGClient)
        self.assertTrue(finder.catalog_configured)

    def test_details_cache_size_from_config(self):
        finder = indiepick.IndieFinder({'rawg_api_key': FAKE_API_KEY, 'details_cache_size': 16})
        self.assertEqual(finder.client.cache_size, 16)

    def test_malformed_dates_follow_configured_years(self):
        finder = indiepick.IndieFinder({'default_min_year': 2010, 'max_release_year_cap': 2020},
                                       client=make_catalog(), rng=random.Random(2))
        finder.random_game({'dates': 'not-a-range'})
        query = finder.client.search_games.call_args[0][0]
        self.assertEqual(query['dates'], '2010-01-01,2020-12-31')

    def test_placeholder_key_not_configured(self):
        finder = indiepick.IndieFinder({'rawg_api_key': 'YOUR_RAWG_API_KEY_HERE'})
        self.assertFalse(finder.catalog_configured)

    def test_injected_client(self):
        catalog = make_catalog()
        finder = indiepick.IndieFinder(client=catalog)
        self.assertIs(finder.client, catalog)
        self.assertTrue(finder.catalog_configured)

    def test_config_flows_into_services(self):
        finder = indiepick.IndieFinder({'recent_capacity': 5, 'recent_year_cutoff': 2022,
                                        'platforms': '4,187'}, client=make_catalog())
        self.assertEqual(finder.tracker.capacity, 5)
        self.assertIs(finder.selector.tracker, finder.tracker)
        self.assertEqual(finder.selector.recent_year_cutoff, 2022)
        self.assertEqual(finder.recommender.platforms, '4,187')

    def test_random_game(self):
        finder = indiepick.IndieFinder(client=make_catalog(), rng=random.Random(1))
        game = finder.random_game({'genres': 'rpg'})
        self.assertIn(game['id'], (3328, 4286))
        query = finder.client.search_games.call_args[0][0]
        self.assertEqual(query['genres'], 'indie,rpg')

    def test_random_game_validation(self):
        finder = indiepick.IndieFinder(client=make_catalog())
        with self.assertRaises(ValidationError):
            finder.random_game({'min_rating': 500})
        finder.client.search_games.assert_not_called()

    def test_random_game_not_found(self):
        finder = indiepick.IndieFinder(client=make_catalog(results=[]))
        with self.assertRaises(NotFoundError):
            finder.random_game({})

    def test_game_details(self):
        finder = indiepick.IndieFinder(client=make_catalog())
        self.assertEqual(finder.game_details(3328)['id'], 3328)

    def test_recommendations(self):
        finder = indiepick.IndieFinder(client=make_catalog())
        data = finder.recommendations(3328)
        self.assertIn('results', data)
        self.assertIn('similarityFactors', data)
        self.assertNotIn(3328, [g['id'] for g in data['results']])

    def test_genres(self):
        finder = indiepick.IndieFinder(client=make_catalog())
        self.assertEqual(finder.genres()[0]['slug'], 'indie')


# ===========================================================================
# CLI
# ===========================================================================

class TestMain(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp, 'config.json')
        with open(self.path, 'w') as f:
            json.dump({'rawg_api_key': FAKE_API_KEY}, f)

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def _run(self, argv, finder):
        with patch('indiepick.IndieFinder', return_value=finder), \
             patch('sys.stdout', new_callable=io.StringIO) as out:
            indiepick.main(['--config', self.path] + argv)
        return out.getvalue()

    def test_requires_action(self):
        with patch('sys.stderr', new_callable=io.StringIO):
            with self.assertRaises(SystemExit) as ctx:
                indiepick.main([])
        self.assertEqual(ctx.exception.code, 2)

    @patch.dict(os.environ, {'RAWG_API_KEY': ''})
    def test_missing_key_exits(self):
        missing = os.path.join(self.tmp, 'missing.json')
        with patch('sys.stdout', new_callable=io.StringIO):
            with self.assertRaises(SystemExit) as ctx:
                indiepick.main(['--config', missing, '--random'])
        self.assertEqual(ctx.exception.code, 1)

    def test_random_passes_filters(self):
        finder = MagicMock()
        finder.random_game.return_value = FAKE_GAMES[0]
        output = self._run(['--random', '--genres', 'rpg', '--min-rating', '70',
                            '--min-year', '2016'], finder)
        self.assertIn('Hollow Knight', output)
        raw = finder.random_game.call_args[0][0]
        self.assertEqual(raw['genres'], 'rpg')
        self.assertEqual(raw['min_rating'], 70)
        self.assertEqual(raw['min_release_year'], 2016)
        self.assertTrue(raw['independent_only'])

    def test_include_mainstream(self):
        finder = MagicMock()
        finder.random_game.return_value = FAKE_GAMES[1]
        self._run(['--random', '--include-mainstream'], finder)
        self.assertFalse(finder.random_game.call_args[0][0]['independent_only'])

    def test_validation_error_exit_code(self):
        finder = MagicMock()
        finder.random_game.side_effect = ValidationError('minRating must be between 0 and 100')
        with self.assertRaises(SystemExit) as ctx:
            self._run(['--random', '--min-rating', '500'], finder)
        self.assertEqual(ctx.exception.code, 2)

    def test_not_found_exit_code(self):
        finder = MagicMock()
        finder.random_game.side_effect = NotFoundError('nothing')
        with self.assertRaises(SystemExit) as ctx:
            self._run(['--random'], finder)
        self.assertEqual(ctx.exception.code, 1)

    def test_upstream_error_exit_code(self):
        finder = MagicMock()
        finder.game_details.side_effect = UpstreamError('down')
        with self.assertRaises(SystemExit) as ctx:
            self._run(['--details', '3328'], finder)
        self.assertEqual(ctx.exception.code, 1)

    def test_recommend(self):
        finder = MagicMock()
        finder.recommendations.return_value = {
            'results': [FAKE_GAMES[1]],
            'similarityFactors': {'genres': ['Indie'], 'tags': [], 'developers': []},
        }
        output = self._run(['--recommend', '3328'], finder)
        finder.recommendations.assert_called_once_with(3328)
        self.assertIn('Celeste', output)

    def test_list_genres(self):
        finder = MagicMock()
        finder.genres.return_value = [{'id': 51, 'name': 'Indie', 'slug': 'indie'}]
        output = self._run(['--list-genres'], finder)
        self.assertIn('indie', output)


if __name__ == '__main__':
    unittest.main()

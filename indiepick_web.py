#!/usr/bin/env python3
"""
IndiePick Web - JSON API for random indie game discovery
Exposes the random pick, game details, recommendations and genre list over
HTTP for the browser front-end (or any other client).
"""

import logging
import argparse
import os
import threading
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

import indiepick
from catalog_client import UpstreamError
from app.services import NotFoundError, ValidationError, parse_query_args

load_dotenv()

# Initialize logging early so service module logs are captured
log_level = os.getenv('INDIEPICK_LOG_LEVEL', 'INFO')
indiepick.setup_logging(log_level)
web_logger = logging.getLogger('indiepick.web')

LOG_FILE = os.path.join('logs', 'indiepick_web.log')


def setup_file_logging(path: str = LOG_FILE) -> Optional[logging.FileHandler]:
    """Also write IndiePick logs to *path*; called once by the server entry point.

    Returns the handler, or None when the file cannot be opened.
    """
    root = logging.getLogger('indiepick')
    target = os.path.abspath(path)
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return handler
    try:
        os.makedirs(os.path.dirname(target), exist_ok=True)
        fh = logging.FileHandler(target)
    except OSError:
        web_logger.warning('Could not create log file handler for %s', path)
        return None
    fh.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s'))
    fh.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.addHandler(fh)
    return fh

app = Flask(__name__)

CONFIG_PATH = os.getenv('INDIEPICK_CONFIG', 'config.json')

# Global finder instance (owns the catalog client and recently-shown tracker)
finder: Optional[indiepick.IndieFinder] = None
finder_lock = threading.Lock()


def get_finder() -> indiepick.IndieFinder:
    """Return the shared finder, creating it from config on first use."""
    global finder
    if finder is None:
        with finder_lock:
            if finder is None:
                finder = indiepick.IndieFinder(indiepick.load_config(CONFIG_PATH))
                web_logger.info("Initialized IndieFinder (catalog configured: %s)",
                                finder.catalog_configured)
    return finder


def _message(text: str, status: int):
    return jsonify({'message': text}), status


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------

@app.route('/api/games/random')
def api_random_game():
    """Pick a random game matching the query-string filters"""
    try:
        raw = parse_query_args(request.args)
        game = get_finder().random_game(raw)
        return jsonify(game)
    except ValidationError as e:
        web_logger.info("Rejected filters %s: %s", dict(request.args), e)
        return _message(str(e), 400)
    except NotFoundError as e:
        return _message(str(e), 404)
    except UpstreamError as e:
        web_logger.error("Random game fetch error: %s", e)
        return _message('Failed to fetch random game. Please try again.', 500)


@app.route('/api/games/<int:game_id>')
def api_game_details(game_id):
    """Full catalog details for one game"""
    try:
        return jsonify(get_finder().game_details(game_id))
    except UpstreamError as e:
        web_logger.error("Game details fetch error for %s: %s", game_id, e)
        return _message('Failed to fetch game details', 500)


@app.route('/api/games/<int:game_id>/recommendations')
def api_game_recommendations(game_id):
    """Games similar to *game_id* plus the factors used to find them"""
    try:
        return jsonify(get_finder().recommendations(game_id))
    except UpstreamError as e:
        web_logger.error("Recommendation fetch error for %s: %s", game_id, e)
        return _message('Failed to fetch recommendations', 500)


@app.route('/api/genres')
def api_genres():
    """Catalog genre list"""
    try:
        return jsonify(get_finder().genres())
    except UpstreamError as e:
        web_logger.error("Genre fetch error: %s", e)
        return _message('Failed to fetch genres', 500)


@app.route('/api/status')
def api_status():
    return jsonify({
        'status': 'ok',
        'catalog_configured': get_finder().catalog_configured,
        'version': indiepick.__version__,
    })


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    """Last-resort handler so no request crashes without a JSON body"""
    if isinstance(e, HTTPException):
        return _message(e.description, e.code)
    web_logger.exception("Unhandled error on %s: %s", request.path, e)
    return _message('Internal server error', 500)


# ---------------------------------------------------------------------------
# API Documentation: OpenAPI 3.0 + Swagger UI
# ---------------------------------------------------------------------------

@app.route('/api/openapi.json')
def api_openapi_spec():
    """Serve the OpenAPI 3.0 specification as JSON."""
    from openapi_spec import build_spec
    server_url = request.url_root.rstrip('/')
    return jsonify(build_spec(server_url=server_url, version=indiepick.__version__))


@app.route('/api/docs')
def api_swagger_ui():
    """Serve an interactive Swagger UI for the IndiePick REST API."""
    openapi_url = '/api/openapi.json'
    html = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>IndiePick API Documentation</title>
  <link rel="stylesheet"
        href="https://unpkg.com/swagger-ui-dist@5/swagger-ui.css">
</head>
<body>
  <div id="swagger-ui"></div>
  <script src="https://unpkg.com/swagger-ui-dist@5/swagger-ui-bundle.js"></script>
  <script>
    SwaggerUIBundle({{
      url: "{openapi_url}",
      dom_id: "#swagger-ui",
      presets: [SwaggerUIBundle.presets.apis, SwaggerUIBundle.SwaggerUIStandalonePreset],
      layout: "BaseLayout",
      deepLinking: true,
    }});
  </script>
</body>
</html>"""
    return html, 200, {'Content-Type': 'text/html; charset=utf-8'}


def main():
    """Main entry point for the web server"""
    global CONFIG_PATH
    parser = argparse.ArgumentParser(description='IndiePick Web API')
    parser.add_argument('--config', default=CONFIG_PATH, help='Path to config file')
    parser.add_argument('--host', default='127.0.0.1', help='Interface to bind')
    parser.add_argument('--port', type=int, default=5000, help='Port to listen on')
    args = parser.parse_args()

    CONFIG_PATH = args.config
    setup_file_logging()
    get_finder()

    print("\n" + "="*60)
    print("🎮 IndiePick Web is starting...")
    print("="*60)
    print(f"\nAPI docs: http://{args.host}:{args.port}/api/docs")
    print("\nPress Ctrl+C to stop the server")
    print("="*60 + "\n")

    try:
        app.run(host=args.host, port=args.port, debug=False)
    except KeyboardInterrupt:
        print("\n\n" + "="*60)
        print("🛑 IndiePick Web stopped")
        print("="*60 + "\n")


if __name__ == "__main__":
    main()

"""
pagecast backend: Flask app that pushes live chat-view configs to WebSocket clients.

Flow:
  1. A client opens /ws?pageId=<id> and gets the page's current view (if any).
  2. Someone POSTs /api/pages/<id> → the page config is replaced and the new
     view is pushed to every client subscribed to <id>.
  3. /api/config and /api/reset change the global config and push to
     clients subscribed with an empty pageId.
"""

import logging
import traceback
from dataclasses import dataclass

from dotenv import load_dotenv
load_dotenv()

from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

import config
from events import SubscriptionHub
from logging_config import setup_logging
from routes.pages import pages_bp
from routes.stream import sock, stream_bp
from services.updates import UpdateOrchestrator
from store import ConfigStore, PageRegistry

logger = logging.getLogger(__name__)


@dataclass
class Components:
    """Everything that holds state. Built once per app."""

    store: ConfigStore
    registry: PageRegistry
    hub: SubscriptionHub
    orchestrator: UpdateOrchestrator


def create_app(store=None, registry=None, hub=None, static_dir=None) -> Flask:
    store = store if store is not None else ConfigStore()
    registry = registry if registry is not None else PageRegistry()
    hub = hub if hub is not None else SubscriptionHub()
    static_dir = static_dir or config.STATIC_DIR

    app = Flask(__name__, static_folder=None)
    app.extensions["pagecast"] = Components(
        store=store,
        registry=registry,
        hub=hub,
        orchestrator=UpdateOrchestrator(store, registry, hub),
    )

    CORS(
        app,
        origins=config.CORS_ORIGINS,
        methods=config.CORS_METHODS,
        allow_headers=config.CORS_HEADERS,
    )

    @app.before_request
    def log_request():
        logger.info(f"REQUEST: {request.method} {request.path}")

    @app.errorhandler(Exception)
    def handle_any_error(e):
        """Last-resort safety net: log it and return a JSON 500."""
        if isinstance(e, HTTPException):
            return e
        logger.error(f"[GLOBAL ERROR] {type(e).__name__}: {e}\n{traceback.format_exc()}")
        return jsonify({"error": "Internal server error", "detail": str(e)}), 500

    app.register_blueprint(pages_bp)
    app.register_blueprint(stream_bp)
    sock.init_app(app)

    # Static files last so /api and /ws win
    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def serve_frontend(path):
        """Serve the built front-end bundle."""
        return send_from_directory(static_dir, path or "index.html")

    return app


app = create_app()


def log_routes(app: Flask):
    logger.info("Routes registered:")
    for rule in sorted(app.url_map.iter_rules(), key=lambda r: r.rule):
        methods = ",".join(sorted(m for m in rule.methods if m not in ("HEAD", "OPTIONS")))
        logger.info(f"- {methods} {rule.rule}")


def main():
    setup_logging(config.LOG_LEVEL)

    logger.info("=" * 60)
    logger.info(f"  pagecast server starting on http://{config.HOST}:{config.PORT}")
    if config.CORS_ORIGINS == "*":
        logger.info("  CORS: all origins allowed (development posture)")
    logger.info("=" * 60)
    log_routes(app)

    app.run(
        host=config.HOST,
        port=config.PORT,
        debug=config.DEBUG,
        use_reloader=config.DEBUG,
        threaded=True,
    )


if __name__ == "__main__":
    main()

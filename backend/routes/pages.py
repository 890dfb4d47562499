"""
Config API routes: pages, global config, reset.
"""
import logging

from flask import Blueprint, Response, current_app, jsonify, request

from store import PageConfig, SharedConfig

logger = logging.getLogger(__name__)

pages_bp = Blueprint("pages", __name__, url_prefix="/api")


def _components():
    return current_app.extensions["pagecast"]


def text_error(message: str, status: int) -> Response:
    """Plain-text error body, like net/http's http.Error."""
    return Response(message + "\n", status=status, mimetype="text/plain")


def _decode(record_type):
    """Parse the request body into `record_type`, or None if it is not valid."""
    data = request.get_json(force=True, silent=True)
    if data is None:
        return None
    try:
        return record_type.from_dict(data)
    except ValueError as e:
        logger.info(f"[API] Rejected body: {e}")
        return None


@pages_bp.route("/pages", methods=["GET"])
def list_pages():
    """All known pages as [{pageId, displayName}]."""
    return jsonify(_components().registry.list())


@pages_bp.route("/pages/<page_id>", methods=["GET"])
def get_page(page_id: str):
    page = _components().registry.get(page_id)
    if page is None:
        return text_error("Page not found", 404)
    return jsonify(page.to_dict())


@pages_bp.route("/pages/", defaults={"page_id": ""}, methods=["POST"])
@pages_bp.route("/pages/<page_id>", methods=["POST"])
def update_page(page_id: str):
    """
    Replace the page's config (empty message/color/theme get defaults) and
    push the new view to every connection subscribed to that page.
    """
    record = _decode(PageConfig)
    if record is None:
        return text_error("Invalid request body", 400)
    if not page_id:
        return text_error("PageID is required", 400)

    _components().orchestrator.update_page(page_id, record)
    return jsonify({"status": "updated", "pageId": page_id})


@pages_bp.route("/config", methods=["GET"])
def get_config():
    return jsonify(_components().store.read().to_dict())


@pages_bp.route("/config", methods=["POST"])
def update_config():
    """Partial update of the global config: empty fields are left unchanged."""
    partial = _decode(SharedConfig)
    if partial is None:
        return text_error("Invalid request body", 400)

    _components().orchestrator.update_global(partial)
    return jsonify({"status": "updated"})


@pages_bp.route("/reset", methods=["POST"])
def reset_config():
    _components().orchestrator.reset_global()
    return jsonify({"status": "reset"})


@pages_bp.route("/health")
def health():
    c = _components()
    return jsonify({"status": "ok", "connections": c.hub.count(), "pages": len(c.registry)})

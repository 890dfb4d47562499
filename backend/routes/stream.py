"""
WebSocket endpoint: GET /ws?pageId=<id>

One thread per connection. After the initial snapshot the thread just sits in
a blocking receive so we notice when the peer goes away. Nothing the client
sends is processed.
"""
import logging

from flask import Blueprint, current_app, request
from flask_sock import Sock
from simple_websocket import ConnectionClosed

from config import origin_allowed
from routes.pages import text_error

logger = logging.getLogger(__name__)

stream_bp = Blueprint("stream", __name__)
sock = Sock()


@stream_bp.before_request
def check_subscription():
    """Reject before the upgrade, so nothing gets registered."""
    page_id = request.args.get("pageId", "")
    logger.info(f"[WS] Connection requested for pageId: '{page_id}'")
    if not page_id:
        return text_error("PageID is required", 400)
    if not origin_allowed(request.headers.get("Origin")):
        logger.warning(f"[WS] Origin not allowed: {request.headers.get('Origin')}")
        return text_error("Origin not allowed", 403)
    return None


def wait_for_disconnect(conn, page_id: str):
    """Block until the connection closes or a read fails."""
    while True:
        try:
            conn.receive()
        except ConnectionClosed:
            logger.info(f"[WS] Client on page '{page_id}' disconnected")
            return
        except Exception as e:
            logger.warning(f"[WS] Read error on page '{page_id}': {e}")
            return


@sock.route("/ws", bp=stream_bp)
def websocket(ws):
    page_id = request.args.get("pageId", "")
    components = current_app.extensions["pagecast"]

    components.orchestrator.bootstrap(ws, page_id)
    try:
        wait_for_disconnect(ws, page_id)
    finally:
        components.hub.unregister(ws)

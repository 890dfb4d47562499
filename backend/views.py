"""
Turns a config record into the render-ready view model pushed to clients.
Pure functions: no locks, no shared state.
"""

import json
import logging
from datetime import datetime, timezone

from config import FONT_SIZE, SECONDARY_COLOR

logger = logging.getLogger(__name__)


def encode_messages(messages) -> str:
    """JSON-encode the message list, or "[]" if that fails."""
    try:
        return json.dumps([m.to_dict() for m in messages])
    except (TypeError, ValueError, AttributeError) as e:
        logger.error(f"[View] Error encoding messages: {e}")
        return "[]"


def build_view(message: str, color: str, theme: str, chat_partner, messages) -> dict:
    """
    Build the UI config for one chat view. Always exactly two components:
    "chat-header" then "chat-messages".
    """
    return {
        "layout": theme,
        "updatedAt": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "theme": {
            "primaryColor": color,
            "secondaryColor": SECONDARY_COLOR,
            "fontSize": FONT_SIZE,
        },
        "components": [
            {
                "type": "chat-header",
                "id": "chat-partner-info",
                "content": message,
                "properties": {
                    "userName": chat_partner.name,
                    "userStatus": chat_partner.status,
                },
            },
            {
                "type": "chat-messages",
                "id": "message-list",
                "content": "",
                "properties": {
                    "messages": encode_messages(messages),
                },
            },
        ],
    }


def build_view_for(config) -> dict:
    """Shortcut for a SharedConfig snapshot."""
    return build_view(config.message, config.color, config.theme, config.chat_partner, config.messages)

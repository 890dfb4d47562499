"""
Centralized config for the pagecast backend.
Everything is read from the environment (a local .env is loaded by app.py).
"""
import os

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8080))
DEBUG = os.getenv("FLASK_DEBUG", "0").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Built front-end bundle served at "/"
STATIC_DIR = os.getenv("STATIC_DIR", os.path.join(BASE_DIR, "frontend", "dist"))

# CORS: every origin is allowed unless CORS_ORIGINS says otherwise (dev posture).
_origins = os.getenv("CORS_ORIGINS", "*").strip()
CORS_ORIGINS = "*" if _origins in ("", "*") else [o.strip() for o in _origins.split(",") if o.strip()]
CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization"]

# Record defaults
DEFAULT_MESSAGE = "Welcome to Chat"
DEFAULT_COLOR = "#ffffff"
DEFAULT_THEME = "light"
DEFAULT_PARTNER_NAME = "Chat Partner"
DEFAULT_PARTNER_STATUS = "Offline"

# View model theme block constants
SECONDARY_COLOR = "#000000"
FONT_SIZE = "16px"


def origin_allowed(origin) -> bool:
    """True if a WebSocket handshake from this Origin header may proceed."""
    if CORS_ORIGINS == "*":
        return True
    return bool(origin) and origin in CORS_ORIGINS

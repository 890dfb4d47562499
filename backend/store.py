"""
In-memory state: the global shared config and the per-page config registry.

Each store owns its own read/write lock. No method ever holds more than one
store's lock, and nothing here calls out to the hub or the view builder.
"""

import copy
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from config import (
    DEFAULT_COLOR,
    DEFAULT_MESSAGE,
    DEFAULT_PARTNER_NAME,
    DEFAULT_PARTNER_STATUS,
    DEFAULT_THEME,
)


class RWLock:
    """Many readers or one writer. Writers are preferred once they start waiting."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    def read(self):
        return _Guard(self.acquire_read, self.release_read)

    def write(self):
        return _Guard(self.acquire_write, self.release_write)


class _Guard:
    def __init__(self, acquire, release):
        self._acquire = acquire
        self._release = release

    def __enter__(self):
        self._acquire()
        return self

    def __exit__(self, *exc):
        self._release()
        return False


# ═══════════════════════════════════════════════════════════════════════════════
# Records (JSON keys match the wire format the front-end expects)
# ═══════════════════════════════════════════════════════════════════════════════

def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_str(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _get_instant(data: dict, key: str) -> str:
    """An ISO-8601 timestamp with a UTC offset, returned as sent ("" if absent)."""
    value = _get_str(data, key)
    if not value:
        return ""
    normalized = value[:-1] + "+00:00" if value[-1] in "Zz" else value
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        raise ValueError(f"{key} must be an ISO-8601 timestamp") from None
    if parsed.tzinfo is None:
        raise ValueError(f"{key} must include a UTC offset")
    return value


def _get_obj(data: dict, key: str) -> dict:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be an object")
    return value


@dataclass
class ChatUser:
    name: str = ""    # Display name of the partner
    status: str = ""  # Online / Offline / Away
    avatar: str = ""  # Avatar image URL

    @classmethod
    def from_dict(cls, data: dict) -> "ChatUser":
        return cls(
            name=_get_str(data, "name"),
            status=_get_str(data, "status"),
            avatar=_get_str(data, "avatar"),
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "status": self.status, "avatar": self.avatar}


@dataclass(frozen=True)
class Message:
    """A single chat message. Never mutated once stored."""

    id: str = ""
    content: str = ""
    sender: str = ""
    timestamp: str = field(default_factory=_utc_now_iso)  # ISO-8601, echoed back verbatim

    @classmethod
    def from_dict(cls, data) -> "Message":
        if not isinstance(data, dict):
            raise ValueError("message entries must be objects")
        return cls(
            id=_get_str(data, "id"),
            content=_get_str(data, "content"),
            sender=_get_str(data, "sender"),
            timestamp=_get_instant(data, "timestamp") or _utc_now_iso(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "sender": self.sender,
            "timestamp": self.timestamp,
        }


@dataclass
class SharedConfig:
    """Everything needed to render one chat view."""

    message: str = ""    # Header text
    color: str = ""      # Primary theme color (hex)
    theme: str = ""      # light / dark, also used as the layout name
    chat_partner: ChatUser = field(default_factory=ChatUser)
    messages: List[Message] = field(default_factory=list)  # Send order

    @classmethod
    def defaults(cls) -> "SharedConfig":
        return cls(
            message=DEFAULT_MESSAGE,
            color=DEFAULT_COLOR,
            theme=DEFAULT_THEME,
            chat_partner=ChatUser(name=DEFAULT_PARTNER_NAME, status=DEFAULT_PARTNER_STATUS, avatar=""),
            messages=[],
        )

    @classmethod
    def from_dict(cls, data) -> "SharedConfig":
        """Decode a JSON object. Missing keys become empty values."""
        if not isinstance(data, dict):
            raise ValueError("config must be an object")
        raw_messages = data.get("messages") or []
        if not isinstance(raw_messages, list):
            raise ValueError("messages must be a list")
        return cls(
            message=_get_str(data, "message"),
            color=_get_str(data, "color"),
            theme=_get_str(data, "theme"),
            chat_partner=ChatUser.from_dict(_get_obj(data, "chatPartner")),
            messages=[Message.from_dict(m) for m in raw_messages],
        )

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "color": self.color,
            "theme": self.theme,
            "chatPartner": self.chat_partner.to_dict(),
            "messages": [m.to_dict() for m in self.messages],
        }

    def with_defaults(self) -> "SharedConfig":
        """Copy with empty message/color/theme replaced by the server defaults."""
        return replace(
            self,
            message=self.message or DEFAULT_MESSAGE,
            color=self.color or DEFAULT_COLOR,
            theme=self.theme or DEFAULT_THEME,
        )


@dataclass
class PageConfig:
    page_id: str = ""
    display_name: str = ""
    config: SharedConfig = field(default_factory=SharedConfig)

    @classmethod
    def from_dict(cls, data) -> "PageConfig":
        if not isinstance(data, dict):
            raise ValueError("page body must be an object")
        return cls(
            page_id=_get_str(data, "pageId"),
            display_name=_get_str(data, "displayName"),
            config=SharedConfig.from_dict(_get_obj(data, "config")),
        )

    def to_dict(self) -> dict:
        return {
            "pageId": self.page_id,
            "displayName": self.display_name,
            "config": self.config.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# Stores
# ═══════════════════════════════════════════════════════════════════════════════

class ConfigStore:
    """Holds the one process-wide SharedConfig."""

    def __init__(self, initial: Optional[SharedConfig] = None):
        self._lock = RWLock()
        self._config = initial if initial is not None else SharedConfig.defaults()

    def read(self) -> SharedConfig:
        with self._lock.read():
            return copy.deepcopy(self._config)

    def merge_update(self, partial: SharedConfig) -> SharedConfig:
        """
        Overwrite every non-empty field of `partial` onto the stored config and
        return the merged snapshot. The partner is replaced as a whole when a
        name is given; the message list is replaced when non-empty.
        """
        with self._lock.write():
            current = self._config
            if partial.message:
                current.message = partial.message
            if partial.color:
                current.color = partial.color
            if partial.theme:
                current.theme = partial.theme
            if partial.chat_partner.name:
                current.chat_partner = copy.deepcopy(partial.chat_partner)
            if partial.messages:
                current.messages = list(partial.messages)
            return copy.deepcopy(current)

    def reset(self) -> SharedConfig:
        with self._lock.write():
            self._config = SharedConfig.defaults()
            return copy.deepcopy(self._config)


class PageRegistry:
    """pageId -> PageConfig. Pages are never deleted."""

    def __init__(self):
        self._lock = RWLock()
        self._pages: Dict[str, PageConfig] = {}
        # Bumped on every upsert; lets readers tell whether what they hold is still current
        self._versions: Dict[str, int] = {}
        self._next_version = 1

    def list(self) -> List[Dict[str, str]]:
        with self._lock.read():
            return [
                {"pageId": page_id, "displayName": page.display_name}
                for page_id, page in self._pages.items()
            ]

    def get(self, page_id: str) -> Optional[PageConfig]:
        with self._lock.read():
            page = self._pages.get(page_id)
            return copy.deepcopy(page) if page is not None else None

    def get_versioned(self, page_id: str) -> Tuple[Optional[PageConfig], int]:
        """Like get(), plus the page's version (0 for an unknown page)."""
        with self._lock.read():
            page = self._pages.get(page_id)
            version = self._versions.get(page_id, 0)
            return (copy.deepcopy(page) if page is not None else None), version

    def upsert(self, page_id: str, record: PageConfig) -> PageConfig:
        """Store `record` under `page_id` (replacing any entry) and return what was stored."""
        stored = copy.deepcopy(replace(record, page_id=page_id, config=record.config.with_defaults()))
        with self._lock.write():
            self._pages[page_id] = stored
            self._versions[page_id] = self._next_version
            self._next_version += 1
            return copy.deepcopy(stored)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._pages)

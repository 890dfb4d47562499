"""
Update flows: write to a store, build the view from the result, push it out.

Store calls return plain snapshots, so the view is always built after the
store lock is released and the hub lock is only taken afterwards.

Note: global update/reset broadcast with pageId "" and therefore only reach
connections tagged with the empty pageId. The WebSocket route never registers
such a connection, so in practice these broadcasts reach nobody. That is the
existing behaviour, kept as is until product intent says otherwise.
"""

import logging
from typing import Optional

from events import SubscriptionHub
from store import ConfigStore, PageConfig, PageRegistry, SharedConfig
from views import build_view_for

logger = logging.getLogger(__name__)

GLOBAL_PAGE_ID = ""


class UpdateOrchestrator:
    def __init__(self, store: ConfigStore, registry: PageRegistry, hub: SubscriptionHub):
        self.store = store
        self.registry = registry
        self.hub = hub

    def update_global(self, partial: SharedConfig) -> SharedConfig:
        merged = self.store.merge_update(partial)
        self.hub.broadcast(build_view_for(merged), GLOBAL_PAGE_ID)
        return merged

    def reset_global(self) -> SharedConfig:
        fresh = self.store.reset()
        self.hub.broadcast(build_view_for(fresh), GLOBAL_PAGE_ID)
        return fresh

    def update_page(self, page_id: str, record: PageConfig) -> PageConfig:
        if not page_id:
            raise ValueError("PageID is required")
        stored = self.registry.upsert(page_id, record)
        logger.info(f"[Pages] Updated page '{page_id}'")
        self.hub.broadcast(build_view_for(stored.config), page_id)
        return stored

    def bootstrap(self, conn, page_id: str) -> Optional[PageConfig]:
        """
        Register a new connection and send it the current page view, if the
        page exists. Returns the page that was sent, or None.
        """
        if not page_id:
            raise ValueError("PageID is required")
        self.hub.register(conn, page_id)
        page, version = self.registry.get_versioned(page_id)
        if page is None:
            logger.info(f"[WS] No config yet for page '{page_id}', waiting for updates")
            return None

        # An upsert can commit and broadcast between the read and the send.
        # Resend until what this connection last got is still the current version.
        while True:
            if not self.hub.send_to(conn, build_view_for(page.config)):
                logger.warning(f"[WS] Error sending initial config for page '{page_id}'")
                return page
            latest, latest_version = self.registry.get_versioned(page_id)
            if latest_version == version:
                return page
            logger.info(f"[WS] Page '{page_id}' changed during initial send, resending")
            page, version = latest, latest_version

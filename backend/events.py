"""
Live WebSocket connections and page-filtered broadcast.

Every connection is tagged with the pageId it subscribed with. A broadcast
holds the hub lock for the whole pass, so membership is stable while it runs
and no two threads ever write to the same socket at once. A connection that
fails a send is closed and dropped in the same pass.
"""

import json
import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class SubscriptionHub:
    def __init__(self):
        # connection -> pageId
        self._clients: Dict[object, str] = {}
        self._lock = threading.Lock()

    def register(self, conn, page_id: str):
        """Add a connection to the live set. A connection keeps its first pageId."""
        with self._lock:
            current = self._clients.get(conn)
            if current is None:
                self._clients[conn] = page_id
        if current is not None:
            logger.warning(f"[Hub] Connection already registered for page '{current}', ignoring '{page_id}'")
            return
        logger.info(f"[Hub] Registered connection for page '{page_id}'")

    def unregister(self, conn):
        """Remove a connection. Removing an unknown connection is a no-op."""
        with self._lock:
            page_id = self._clients.pop(conn, None)
        if page_id is not None:
            logger.info(f"[Hub] Unregistered connection for page '{page_id}'")

    def broadcast(self, view: dict, page_id: str) -> int:
        """
        Send `view` to every connection tagged with exactly `page_id`.
        Returns how many connections received it.
        """
        payload = json.dumps(view)
        delivered = 0
        with self._lock:
            for conn, conn_page in list(self._clients.items()):
                if conn_page != page_id:
                    continue
                if self._send_locked(conn, payload):
                    delivered += 1
        logger.info(f"[Hub] Broadcast to page '{page_id}': {delivered} delivered")
        return delivered

    def send_to(self, conn, view: dict) -> bool:
        """Send `view` to one registered connection only."""
        payload = json.dumps(view)
        with self._lock:
            if conn not in self._clients:
                return False
            return self._send_locked(conn, payload)

    def count(self, page_id: Optional[str] = None) -> int:
        with self._lock:
            if page_id is None:
                return len(self._clients)
            return sum(1 for p in self._clients.values() if p == page_id)

    def _send_locked(self, conn, payload: str) -> bool:
        # Caller holds self._lock
        try:
            conn.send(payload)
            return True
        except Exception as e:
            page_id = self._clients.pop(conn, None)
            logger.warning(f"[Hub] Websocket error on page '{page_id}': {e}")
            try:
                conn.close()
            except Exception as close_err:
                logger.debug(f"[Hub] Close after send failure also failed: {close_err}")
            return False

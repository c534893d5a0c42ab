"""Domain event names and the buffering event bus"""

import logging
import threading
from typing import Any, Callable, Optional

from docvault.core.ports import EventEmitter

logger = logging.getLogger(__name__)


EVENT_PREFIX = "docvault"

ENTRY_CREATED       = f"{EVENT_PREFIX}/entry/created"        # {path, projectId, title}
ENTRY_UPDATED       = f"{EVENT_PREFIX}/entry/updated"        # {path, projectId, title}
ENTRY_DELETED       = f"{EVENT_PREFIX}/entry/deleted"        # {path, projectId, hard?}
ENTRY_RESTORED      = f"{EVENT_PREFIX}/entry/restored"       # {path, projectId}
ENTRY_ACCESSED      = f"{EVENT_PREFIX}/entry/accessed"       # {path, projectId, title}
ENTRY_LIST_ACCESSED = f"{EVENT_PREFIX}/entry/list-accessed"  # {projectId, count, limit, offset}
ENTRY_COUNT_CHANGED = f"{EVENT_PREFIX}/project/entry-count"  # {projectId, count}

Transport = Callable[[str, dict[str, Any]], None]


class EventBus(EventEmitter):
    """Queues events until a transport is connected, then replays them once and forwards the rest."""

    def __init__(self):
        self._lock = threading.Lock()
        self._transport: Optional[Transport] = None
        self._buffered: list[tuple[str, dict[str, Any]]] = []

    def connect(self, transport: Transport) -> None:
        with self._lock:
            self._transport = transport
            pending, self._buffered = self._buffered, []
            for name, payload in pending:
                transport(name, payload)
        if pending:
            logger.debug("replayed %d buffered events", len(pending))

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return self._transport is not None

    def emit(self, name: str, payload: dict[str, Any]) -> None:
        with self._lock:
            if self._transport is None:
                self._buffered.append((name, payload))
                return
            transport = self._transport
        transport(name, payload)


def log_transport(name: str, payload: dict[str, Any]) -> None:
    """Transport that writes each event to the docvault.events logger."""
    logging.getLogger("docvault.events").info("%s %s", name, payload)

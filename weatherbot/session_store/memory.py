"""In-memory conversation state; lives as long as the process."""

import threading
from typing import Optional

from weatherbot.session_store.base import ConversationStateStore

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="session_store/in_memory_state_store")


class InMemoryConversationStateStore(ConversationStateStore):
    """Thread-safe user id -> last location map."""

    def __init__(self) -> None:
        logger.debug("Initializing InMemoryConversationStateStore")
        self._last_locations: dict[int, str] = {}
        self._lock = threading.Lock()

    def set_last_location(self, user_id: int, location: str) -> None:
        """Overwrite the user's last location; concurrent writes are last-write-wins."""
        with self._lock:
            self._last_locations[user_id] = location

    def get_last_location(self, user_id: int) -> Optional[str]:
        with self._lock:
            return self._last_locations.get(user_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_locations)

    def clear(self) -> None:
        """Forget every user."""
        with self._lock:
            self._last_locations.clear()

"""Shared protocol for conversation state backends."""

from typing import Optional, Protocol


class ConversationStateStore(Protocol):
    """Remembers the last location each user asked about."""

    def set_last_location(self, user_id: int, location: str) -> None:
        """Record `location` as the user's last successful query."""

    def get_last_location(self, user_id: int) -> Optional[str]:
        """Return the user's last queried location, or None if there is none."""

    def clear(self) -> None:
        """Forget every user."""

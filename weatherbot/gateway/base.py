"""Interface the dispatcher uses to talk back to the chat platform."""

from typing import Optional, Protocol, Sequence

from weatherbot.domain import ReplyAffordance


class MessagingGateway(Protocol):
    """Outbound half of the messaging platform."""

    def send_message(
        self,
        chat_id: int,
        text: str,
        affordances: Optional[Sequence[ReplyAffordance]] = None,
    ) -> None:
        """Deliver `text` to the chat, rendering affordances as buttons. Raises GatewayError."""

    def acknowledge_callback(self, callback_id: str) -> None:
        """Stop the client's loading indicator for a button press. Raises GatewayError."""

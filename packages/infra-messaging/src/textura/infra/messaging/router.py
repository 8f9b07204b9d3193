"""Subject-to-handler routing for inbound messages.

Subjects are matched exactly, ignoring case. A message on a subject nobody
registered for is logged and dropped: unroutable messages must never block
a consumer or be redelivered forever.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """One message taken off the bus.

    Attributes:
        subject: Subject (stream name) the message arrived on.
        data: Raw message body, normally an envelope's JSON.
        message_id: Transport-assigned id, for logging.
    """

    subject: str
    data: str | bytes
    message_id: str = ""


MessageHandler = Callable[[InboundMessage], Awaitable[None]]


class MessageRouter:
    """Dispatches inbound messages to the handler registered for their subject.

    Example:
        >>> router = MessageRouter()
        >>> router.register("erp.fabric", handler)
        >>> await router.route(InboundMessage(subject="ERP.Fabric", data=b"{}"))
    """

    def __init__(self) -> None:
        self._handlers: dict[str, MessageHandler] = {}

    @staticmethod
    def _key(subject: str) -> str:
        return subject.lower()

    def register(self, subject: str, handler: MessageHandler) -> None:
        """Register ``handler`` for ``subject``, replacing any previous one."""
        key = self._key(subject)
        if key in self._handlers:
            logger.warning("router: replacing handler for subject %s", subject)
        self._handlers[key] = handler
        logger.info("router: registered handler for subject %s", subject)

    @property
    def subjects(self) -> list[str]:
        """Registered subjects (lower-cased), in registration order."""
        return list(self._handlers)

    def handler_for(self, subject: str) -> MessageHandler | None:
        return self._handlers.get(self._key(subject))

    async def route(self, message: InboundMessage) -> None:
        """Deliver ``message`` to its handler.

        Handler exceptions propagate so that the transport leaves the message
        unacknowledged.
        """
        handler = self.handler_for(message.subject)
        if handler is None:
            logger.warning(
                "router: no handler for subject %s, dropping message %s",
                message.subject,
                message.message_id,
            )
            return
        await handler(message)

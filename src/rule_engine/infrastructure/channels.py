"""Channel senders."""

import threading
import uuid
from datetime import datetime
from typing import Callable

from loguru import logger

from src.rule_engine.domain.models import DispatchReceipt, NotificationType, OutboundMessage, local_now
from src.rule_engine.domain.protocols import ChannelSender


class LoggingChannelSender(ChannelSender):
    """Sender that only logs messages. Default transport until a real provider is wired in."""

    def __init__(self, channel: NotificationType, clock: Callable[[], datetime] = local_now):
        self.channel = channel
        self._clock = clock

    def send(self, message: OutboundMessage) -> DispatchReceipt:
        message_id = uuid.uuid4().hex
        logger.info(f"[{self.channel.value}] -> {message.recipient}: {message.content[:80]!r} (id={message_id})")
        return DispatchReceipt(
            channel=message.channel,
            recipient=message.recipient,
            provider_message_id=message_id,
            sent_at=self._clock(),
        )


class InMemoryChannelSender(ChannelSender):
    """Sender that keeps every message in memory (for testing)."""

    def __init__(self, channel: NotificationType):
        self.channel = channel
        self.messages: list[OutboundMessage] = []
        self._lock = threading.Lock()

    def send(self, message: OutboundMessage) -> DispatchReceipt:
        with self._lock:
            self.messages.append(message)
            message_id = f"{self.channel.value.lower()}-{len(self.messages)}"
        return DispatchReceipt(
            channel=message.channel,
            recipient=message.recipient,
            provider_message_id=message_id,
        )

    def clear(self):
        with self._lock:
            self.messages.clear()

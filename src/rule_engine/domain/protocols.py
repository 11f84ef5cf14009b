"""Protocols (interfaces) for rule engine collaborators."""

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from src.rule_engine.domain.models import (
    DispatchReceipt,
    NotificationRule,
    NotificationType,
    OutboundMessage,
    RenderedTemplate,
    UserNotificationStats,
)


@runtime_checkable
class RuleStore(Protocol):
    """Interface for the external rule storage layer."""

    def list_active_rules_for_recipient(self, recipient_id: str) -> Sequence[NotificationRule]:
        """
        Return the recipient's active rules.

        Returns:
            Rules sorted by descending priority; ties keep the store's natural order
        """
        ...


class StatsReader(Protocol):
    """Read access to per-recipient delivery stats."""

    def snapshot(self, recipient_id: str) -> UserNotificationStats:
        """Stats as they read right now, with any pending day rollover applied."""
        ...


class ChannelSender(Protocol):
    """Interface for one outbound transport (email, chat, broadcast...)."""

    def send(self, message: OutboundMessage) -> DispatchReceipt:
        """Deliver a message or raise."""
        ...


class TemplateRenderer(Protocol):
    """Interface for message template lookup and rendering."""

    def render(
        self, template_name: str, channel: NotificationType, variables: Mapping[str, Any]
    ) -> RenderedTemplate:
        """
        Render a named template.

        Raises:
            TemplateNotFoundError: If no active template has this name
            TemplateChannelMismatchError: If the template belongs to another channel
        """
        ...

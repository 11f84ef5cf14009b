"""Forwards matched rule actions to the configured channel senders."""

from typing import Any, Mapping

from loguru import logger

from src.config import DispatchConfig
from src.rule_engine.domain.exceptions import ChannelDeliveryError, DispatchError, UnsupportedChannelError
from src.rule_engine.domain.models import (
    DispatchReceipt,
    NotificationRequest,
    NotificationRule,
    NotificationType,
    OutboundMessage,
)
from src.rule_engine.domain.protocols import ChannelSender, TemplateRenderer


def _first_set(variables: Mapping[str, Any], key: str, default: str, *explicit: str | None) -> str:
    """First explicit value that is set, then variables[key], then the default."""
    for value in explicit:
        if value is not None:
            return value
    value = variables.get(key)
    if value is not None:
        return str(value)
    return default


class ActionDispatcher:
    """
    Resolves recipient, subject, sender and network for a rule and sends.

    Every value is taken from the rule's action config first, then from the
    fields the caller addressed the request with, then from the variables
    bag, then from the configured default.
    """

    def __init__(
        self,
        senders: Mapping[NotificationType, ChannelSender],
        template_renderer: TemplateRenderer | None = None,
        config: DispatchConfig | None = None,
    ):
        self.senders = dict(senders)
        self.template_renderer = template_renderer
        self.config = config or DispatchConfig()

    def resolve_recipient(
        self, rule: NotificationRule, variables: Mapping[str, Any], requested: str | None = None
    ) -> str:
        return _first_set(variables, "recipient", rule.user_id, rule.action_config.recipient, requested)

    def resolve_subject(
        self, rule: NotificationRule, variables: Mapping[str, Any], requested: str | None = None
    ) -> str:
        return _first_set(variables, "subject", self.config.default_subject, rule.action_config.subject, requested)

    def resolve_sender_name(
        self, rule: NotificationRule, variables: Mapping[str, Any], requested: str | None = None
    ) -> str:
        return _first_set(
            variables, "senderName", self.config.default_sender_name, rule.action_config.sender_name, requested
        )

    def resolve_network_id(
        self, rule: NotificationRule, variables: Mapping[str, Any], requested: str | None = None
    ) -> str:
        return _first_set(
            variables, "networkId", self.config.default_network_id, rule.action_config.network_id, requested
        )

    @staticmethod
    def compose(
        channel: NotificationType,
        content: str,
        variables: Mapping[str, Any],
        recipient: str,
        subject: str,
        sender_name: str,
        network_id: str,
    ) -> OutboundMessage:
        """Shape resolved values into the message a channel expects."""
        if channel == NotificationType.MOBILE_BROADCAST:
            return OutboundMessage(
                channel=channel,
                recipient=f"NETWORK:{network_id}",
                content=content,
                network_id=network_id,
                variables=variables,
            )

        return OutboundMessage(
            channel=channel,
            recipient=recipient,
            content=content,
            subject=subject if channel == NotificationType.EMAIL else None,
            sender_name=sender_name,
            variables=variables,
        )

    def build_message(
        self,
        rule: NotificationRule,
        content: str,
        variables: Mapping[str, Any] | None = None,
        request: NotificationRequest | None = None,
    ) -> OutboundMessage:
        """
        Resolve the message a rule's action would send, rendering its template if any.

        Args:
            rule: Matched rule; its channel is the one used
            content: Message body, replaced by the template output when the rule names one
            variables: Contextual variables
            request: Submitted notification whose explicit addressing ranks after the rule's action config
        """
        variables = variables or {}
        channel = rule.notification_type
        subject = self.resolve_subject(rule, variables, request.subject if request else None)

        if rule.template_name:
            if self.template_renderer is None:
                raise DispatchError(
                    f"Rule {rule.id} uses template {rule.template_name} but no template renderer is configured",
                    details={"rule_id": rule.id, "template_name": rule.template_name},
                )
            rendered = self.template_renderer.render(rule.template_name, channel, variables)
            content = rendered.content
            subject = rendered.subject or subject

        return self.compose(
            channel,
            content,
            variables,
            recipient=self.resolve_recipient(rule, variables, request.recipient if request else None),
            subject=subject,
            sender_name=self.resolve_sender_name(rule, variables, request.sender_name if request else None),
            network_id=self.resolve_network_id(rule, variables, request.network_id if request else None),
        )

    def build_request_message(self, request: NotificationRequest) -> OutboundMessage:
        """Message for a request sent as addressed, without any rule action."""
        variables = request.variables
        return self.compose(
            request.channel,
            request.content,
            variables,
            recipient=_first_set(variables, "recipient", request.recipient_id, request.recipient),
            subject=_first_set(variables, "subject", self.config.default_subject, request.subject),
            sender_name=_first_set(variables, "senderName", self.config.default_sender_name, request.sender_name),
            network_id=_first_set(variables, "networkId", self.config.default_network_id, request.network_id),
        )

    def dispatch(
        self,
        rule: NotificationRule,
        content: str,
        variables: Mapping[str, Any] | None = None,
        request: NotificationRequest | None = None,
    ) -> DispatchReceipt:
        """
        Execute a matched rule's action.

        Raises:
            UnsupportedChannelError: No sender for the rule's channel
            TemplateNotFoundError: The rule's template does not exist
            ChannelDeliveryError: The sender failed
        """
        message = self.build_message(rule, content, variables, request)
        logger.info(f"Dispatching rule {rule.id} ({rule.action_type}) over {message.channel.value}")
        receipt = self.deliver(message)
        return DispatchReceipt(
            channel=receipt.channel,
            recipient=receipt.recipient,
            provider_message_id=receipt.provider_message_id,
            rule_id=rule.id,
            sent_at=receipt.sent_at,
        )

    def deliver(self, message: OutboundMessage) -> DispatchReceipt:
        """Send an already resolved message over its channel."""
        sender = self.senders.get(message.channel)
        if sender is None:
            raise UnsupportedChannelError(message.channel.value)

        try:
            return sender.send(message)
        except DispatchError:
            raise
        except Exception as e:
            logger.error(f"Delivery over {message.channel.value} to {message.recipient} failed: {e}")
            raise ChannelDeliveryError(message.channel.value, message.recipient, e) from e

import pytest

from src.config import DispatchConfig
from src.rule_engine.application.action_dispatcher import ActionDispatcher
from src.rule_engine.domain.exceptions import (
    ChannelDeliveryError,
    DispatchError,
    TemplateChannelMismatchError,
    TemplateNotFoundError,
    UnsupportedChannelError,
)
from src.rule_engine.domain.models import NotificationRequest, NotificationRule, NotificationType, OutboundMessage


class ExplodingSender:
    def send(self, message):
        raise ConnectionError("smtp down")


def _rule(make_rule, **fields):
    return NotificationRule.model_validate(make_rule(**fields))


def test_recipient_resolution_order(dispatcher, make_rule):
    configured = _rule(make_rule, actionConfig={"recipient": "ops@example.com"})
    plain = _rule(make_rule)

    assert dispatcher.resolve_recipient(configured, {"recipient": "var@example.com"}) == "ops@example.com"
    assert dispatcher.resolve_recipient(plain, {"recipient": "var@example.com"}) == "var@example.com"
    assert dispatcher.resolve_recipient(plain, {}) == "u1"


def test_defaults_come_from_config(senders, make_rule):
    dispatcher = ActionDispatcher(
        senders, config=DispatchConfig(default_subject="Heads up", default_sender_name="Alerts")
    )
    rule = _rule(make_rule)

    assert dispatcher.resolve_subject(rule, {}) == "Heads up"
    assert dispatcher.resolve_sender_name(rule, {}) == "Alerts"
    assert dispatcher.resolve_subject(rule, {"subject": "From vars"}) == "From vars"


def test_dispatch_email(dispatcher, senders, make_rule):
    rule = _rule(make_rule, id=42, actionConfig={"subject": "Invoice", "senderName": "Billing"})

    receipt = dispatcher.dispatch(rule, "your invoice is ready", {"recipient": "a@example.com"})

    assert receipt.rule_id == 42
    assert receipt.recipient == "a@example.com"
    message = senders[NotificationType.EMAIL].messages[0]
    assert message.subject == "Invoice"
    assert message.sender_name == "Billing"
    assert message.content == "your invoice is ready"


def test_non_email_channels_have_no_subject(dispatcher, senders, make_rule):
    rule = _rule(make_rule, notificationType="SMS")

    dispatcher.dispatch(rule, "hi", {})

    assert senders[NotificationType.SMS].messages[0].subject is None


def test_broadcast_targets_network(dispatcher, senders, make_rule):
    rule = _rule(make_rule, notificationType="MOBILE_BROADCAST")

    receipt = dispatcher.dispatch(rule, "storm warning", {"networkId": "north"})

    assert receipt.recipient == "NETWORK:north"
    message = senders[NotificationType.MOBILE_BROADCAST].messages[0]
    assert message.network_id == "north"

    dispatcher.dispatch(rule, "storm warning", {})
    assert senders[NotificationType.MOBILE_BROADCAST].messages[1].recipient == "NETWORK:default"


def test_template_rendering(dispatcher, senders, templates, make_rule):
    templates.register(
        "invoice", NotificationType.EMAIL, "Hello {{name}}, you owe {{amount}}", subject="Invoice for {{name}}"
    )
    rule = _rule(make_rule, templateName="invoice")

    dispatcher.dispatch(rule, "ignored", {"name": "Ana", "amount": 10})

    message = senders[NotificationType.EMAIL].messages[0]
    assert message.content == "Hello Ana, you owe 10"
    assert message.subject == "Invoice for Ana"


def test_unknown_template(dispatcher, make_rule):
    with pytest.raises(TemplateNotFoundError):
        dispatcher.dispatch(_rule(make_rule, templateName="missing"), "x", {})


def test_inactive_template_is_not_found(dispatcher, templates, make_rule):
    templates.register("old", NotificationType.EMAIL, "x", is_active=False)

    with pytest.raises(TemplateNotFoundError):
        dispatcher.dispatch(_rule(make_rule, templateName="old"), "x", {})


def test_template_channel_mismatch(dispatcher, templates, make_rule):
    templates.register("sms-only", NotificationType.SMS, "x")

    with pytest.raises(TemplateChannelMismatchError):
        dispatcher.dispatch(_rule(make_rule, templateName="sms-only"), "x", {})


def test_template_without_renderer(senders, make_rule):
    dispatcher = ActionDispatcher(senders)

    with pytest.raises(DispatchError):
        dispatcher.dispatch(_rule(make_rule, templateName="any"), "x", {})


def test_unsupported_channel(make_rule):
    dispatcher = ActionDispatcher({})

    with pytest.raises(UnsupportedChannelError):
        dispatcher.dispatch(_rule(make_rule), "x", {})


def test_sender_failure_is_wrapped(make_rule):
    dispatcher = ActionDispatcher({NotificationType.EMAIL: ExplodingSender()})

    with pytest.raises(ChannelDeliveryError) as excinfo:
        dispatcher.dispatch(_rule(make_rule), "x", {})

    assert excinfo.value.details["original_error_type"] == "ConnectionError"
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_deliver_prebuilt_message(dispatcher, senders):
    message = OutboundMessage(channel=NotificationType.PUSH, recipient="device-1", content="ping")

    receipt = dispatcher.deliver(message)

    assert receipt.recipient == "device-1"
    assert senders[NotificationType.PUSH].messages == [message]


def test_request_addressing_ranks_after_action_config(dispatcher, make_rule):
    request = NotificationRequest(
        recipient_id="u1",
        channel=NotificationType.EMAIL,
        content="x",
        recipient="req@example.com",
        subject="From request",
    )
    rule = _rule(make_rule, actionConfig={"subject": "From rule"})

    message = dispatcher.build_message(rule, "x", {"recipient": "var@example.com", "subject": "From vars"}, request)

    assert message.recipient == "req@example.com"
    assert message.subject == "From rule"


@pytest.mark.parametrize("channel", [NotificationType.SMS, NotificationType.WHATSAPP, NotificationType.PUSH])
def test_request_and_rule_messages_agree_on_subject(dispatcher, make_rule, channel):
    request = NotificationRequest(recipient_id="u1", channel=channel, content="x", subject="Hello")
    rule = _rule(make_rule, notificationType=channel.value)

    assert dispatcher.build_request_message(request).subject is None
    assert dispatcher.build_message(rule, "x", {}, request).subject is None


def test_request_message_falls_back_to_recipient_id(dispatcher):
    request = NotificationRequest(recipient_id="u9", channel=NotificationType.EMAIL, content="x")

    message = dispatcher.build_request_message(request)

    assert message.recipient == "u9"
    assert message.subject == "Notification"
    assert message.sender_name == "Notification Service"

"""Domain layer for the notification rule engine."""

from src.rule_engine.domain.exceptions import (
    ChannelDeliveryError,
    DispatchError,
    InvalidEvaluationRequestError,
    RuleEngineException,
    RuleEvaluationError,
    RuleValidationError,
    TemplateChannelMismatchError,
    TemplateNotFoundError,
    UnsupportedChannelError,
)
from src.rule_engine.domain.models import (
    ActionConfig,
    ActionType,
    CompositeConditions,
    ContentConditions,
    DayOfWeek,
    DispatchReceipt,
    EvaluationContext,
    EvaluationResult,
    GateOutcome,
    GateStatus,
    NotificationRequest,
    NotificationRule,
    NotificationType,
    OutboundMessage,
    RenderedTemplate,
    RuleType,
    UserNotificationStats,
    VariableCondition,
)
from src.rule_engine.domain.protocols import ChannelSender, RuleStore, StatsReader, TemplateRenderer

__all__ = [
    "ActionConfig",
    "ActionType",
    "CompositeConditions",
    "ContentConditions",
    "DayOfWeek",
    "DispatchReceipt",
    "EvaluationContext",
    "EvaluationResult",
    "GateOutcome",
    "GateStatus",
    "NotificationRequest",
    "NotificationRule",
    "NotificationType",
    "OutboundMessage",
    "RenderedTemplate",
    "RuleType",
    "UserNotificationStats",
    "VariableCondition",
    "ChannelSender",
    "RuleStore",
    "StatsReader",
    "TemplateRenderer",
    "ChannelDeliveryError",
    "DispatchError",
    "InvalidEvaluationRequestError",
    "RuleEngineException",
    "RuleEvaluationError",
    "RuleValidationError",
    "TemplateChannelMismatchError",
    "TemplateNotFoundError",
    "UnsupportedChannelError",
]

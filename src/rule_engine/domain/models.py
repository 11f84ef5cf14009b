"""Domain models for the notification rule engine."""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Annotated, Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def local_now() -> datetime:
    """Current time as an aware datetime in the process-local zone."""
    return datetime.now().astimezone()


def stringify_value(value: Any) -> str:
    """String form used when comparing variables against configured conditions."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RuleType(str, Enum):
    """Condition family a rule belongs to."""

    TIME_BASED = "TIME_BASED"  # Day of week / time of day window
    FREQUENCY_BASED = "FREQUENCY_BASED"  # Daily cap and minimum interval
    CONTENT_BASED = "CONTENT_BASED"  # Length, keywords, variable checks
    COMPOSITE = "COMPOSITE"  # Combination of the three families above


class NotificationType(str, Enum):
    """Channel a rule pertains to."""

    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"
    SMS = "SMS"
    PUSH = "PUSH"
    MOBILE_BROADCAST = "MOBILE_BROADCAST"


class ActionType(str, Enum):
    """Well-known action values. Rules may carry any other string."""

    SEND_NOTIFICATION = "SEND_NOTIFICATION"
    BLOCK = "BLOCK"
    MODIFY = "MODIFY"
    ALLOW = "ALLOW"


NON_DISPATCHABLE_ACTIONS = frozenset({ActionType.ALLOW.value, ActionType.BLOCK.value})


def is_dispatchable_action(action_type: str) -> bool:
    """Whether a matched rule with this action should go through the dispatcher."""
    return action_type not in NON_DISPATCHABLE_ACTIONS


class DayOfWeek(str, Enum):
    """ISO day of week, in `datetime.weekday()` order."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_datetime(cls, moment: datetime) -> "DayOfWeek":
        return list(cls)[moment.weekday()]


class _Document(BaseModel):
    """Base for rule documents written in camelCase JSON."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        coerce_numbers_to_str=True,
    )


class VariableCondition(_Document):
    """Checks applied to the string form of one variable."""

    equals: str | None = None
    not_equals: str | None = Field(default=None, alias="notEquals")
    contains: str | None = None
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")

    @field_validator("equals", "not_equals", "contains", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        if value is None:
            return None
        return stringify_value(value)


class _ContentKeys(_Document):
    max_content_length: int | None = Field(default=None, alias="maxContentLength")
    blocked_keywords: list[str] | None = Field(default=None, alias="blockedKeywords")
    required_keywords: list[str] | None = Field(default=None, alias="requiredKeywords")
    variable_conditions: dict[str, VariableCondition] | None = Field(default=None, alias="variableConditions")


class ContentConditions(_ContentKeys):
    """Conditions document of a CONTENT_BASED rule."""

    kind: Literal["content"] = "content"


class CompositeConditions(_ContentKeys):
    """Conditions document of a COMPOSITE rule.

    The family flags select which sub-evaluators run; the content keys are
    reused by the content sub-check.
    """

    kind: Literal["composite"] = "composite"
    require_all: bool = Field(default=True, alias="requireAll")
    time_based: bool | None = Field(default=None, alias="timeBased")
    frequency_based: bool | None = Field(default=None, alias="frequencyBased")
    content_based: bool | None = Field(default=None, alias="contentBased")


RuleConditions = Annotated[ContentConditions | CompositeConditions, Field(discriminator="kind")]

_CONDITION_KINDS = {
    RuleType.CONTENT_BASED: "content",
    RuleType.COMPOSITE: "composite",
}


class ActionConfig(_Document):
    """Dispatch overrides attached to a rule."""

    model_config = ConfigDict(extra="allow")

    recipient: str | None = None
    subject: str | None = None
    sender_name: str | None = Field(default=None, alias="senderName")
    network_id: str | None = Field(default=None, alias="networkId")


class NotificationRule(_Document):
    """A stored rule as seen by the engine (read-only)."""

    id: int | str
    name: str
    user_id: str = Field(alias="userId")
    rule_type: RuleType = Field(alias="ruleType")
    notification_type: NotificationType = Field(alias="notificationType")
    description: str | None = None
    is_active: bool = Field(default=True, alias="isActive")
    priority: int = 0

    # Time-based fields
    days_of_week: frozenset[DayOfWeek] = Field(default_factory=frozenset, alias="daysOfWeek")
    start_time: time | None = Field(default=None, alias="startTime")
    end_time: time | None = Field(default=None, alias="endTime")
    timezone: str = "UTC"

    # Frequency fields
    max_notifications_per_day: int | None = Field(default=None, alias="maxNotificationsPerDay")
    min_interval_minutes: int | None = Field(default=None, alias="minIntervalMinutes")

    # Content / composite fields
    conditions: RuleConditions | None = None

    # Action settings
    action_type: str = Field(default=ActionType.SEND_NOTIFICATION.value, alias="actionType")
    action_config: ActionConfig = Field(default_factory=ActionConfig, alias="actionConfig")
    template_name: str | None = Field(default=None, alias="templateName")

    @model_validator(mode="before")
    @classmethod
    def _tag_conditions(cls, data: Any) -> Any:
        """Select the conditions variant from the rule type."""
        if not isinstance(data, dict):
            return data
        raw_type = data.get("ruleType", data.get("rule_type"))
        try:
            rule_type = RuleType(raw_type)
        except ValueError:
            return data  # reported by field validation

        data = dict(data)
        kind = _CONDITION_KINDS.get(rule_type)
        conditions = data.get("conditions")
        if kind is None:
            # Fields outside the rule's family are ignored
            data["conditions"] = None
        elif isinstance(conditions, dict):
            data["conditions"] = {**conditions, "kind": kind}
        return data

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _normalize_days(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(v.upper() if isinstance(v, str) else v for v in value)
        return value

    @field_validator("action_config", mode="before")
    @classmethod
    def _default_action_config(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("action_type", mode="before")
    @classmethod
    def _action_value(cls, value: Any) -> Any:
        return value.value if isinstance(value, ActionType) else value


class EvaluationResult(BaseModel):
    """Outcome of one evaluation call."""

    model_config = ConfigDict(frozen=True)

    blocked: bool = False
    block_reason: str | None = None
    applied_rules: tuple[NotificationRule, ...] = ()

    @classmethod
    def allow(cls) -> "EvaluationResult":
        return cls()

    @property
    def applied_rule_ids(self) -> list[int | str]:
        return [rule.id for rule in self.applied_rules]


@dataclass
class UserNotificationStats:
    """Per-recipient delivery counters."""

    last_reset_date: date
    daily_count: int = 0
    last_notification_time: datetime | None = None

    def as_of(self, today: date) -> "UserNotificationStats":
        """Copy of these stats as they read on `today` (rollover applied, nothing mutated)."""
        if self.last_reset_date < today:
            return UserNotificationStats(
                last_reset_date=today,
                daily_count=0,
                last_notification_time=self.last_notification_time,
            )
        return UserNotificationStats(
            last_reset_date=self.last_reset_date,
            daily_count=self.daily_count,
            last_notification_time=self.last_notification_time,
        )


@dataclass(frozen=True)
class EvaluationContext:
    """Everything a condition evaluator may look at besides the rule."""

    recipient_id: str
    content: str
    now: datetime
    variables: Mapping[str, Any] = field(default_factory=dict)
    stats: Any = None  # StatsReader, required by the frequency family


@dataclass(frozen=True)
class OutboundMessage:
    """A fully resolved message handed to a channel sender."""

    channel: NotificationType
    recipient: str
    content: str
    subject: str | None = None
    sender_name: str | None = None
    network_id: str | None = None
    variables: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DispatchReceipt:
    """Acknowledgement returned by a channel sender."""

    channel: NotificationType
    recipient: str
    provider_message_id: str | None = None
    rule_id: int | str | None = None
    sent_at: datetime | None = None


@dataclass(frozen=True)
class RenderedTemplate:
    """Template output for one message."""

    content: str
    subject: str | None = None


class GateStatus(str, Enum):
    """Outcome of a gated send."""

    SENT = "sent"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class NotificationRequest:
    """A candidate notification submitted to the gate."""

    recipient_id: str
    channel: NotificationType
    content: str
    variables: Mapping[str, Any] = field(default_factory=dict)
    recipient: str | None = None
    subject: str | None = None
    sender_name: str | None = None
    network_id: str | None = None


@dataclass(frozen=True)
class GateOutcome:
    """What happened to a submitted notification."""

    status: GateStatus
    evaluation: EvaluationResult
    receipts: tuple[DispatchReceipt, ...] = ()

    @property
    def blocked(self) -> bool:
        return self.status == GateStatus.BLOCKED

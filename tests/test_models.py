from datetime import date

import pytest
from pydantic import ValidationError

from src.rule_engine.domain.models import (
    ActionType,
    CompositeConditions,
    ContentConditions,
    DayOfWeek,
    NotificationRule,
    RuleType,
    UserNotificationStats,
    is_dispatchable_action,
)


def test_conditions_variant_follows_rule_type(make_rule):
    content = NotificationRule.model_validate(make_rule(conditions={"blockedKeywords": ["x"]}))
    composite = NotificationRule.model_validate(
        make_rule(ruleType="COMPOSITE", conditions={"requireAll": False, "timeBased": True})
    )

    assert isinstance(content.conditions, ContentConditions)
    assert isinstance(composite.conditions, CompositeConditions)
    assert composite.conditions.require_all is False
    assert composite.conditions.time_based is True
    assert composite.conditions.frequency_based is None


def test_conditions_ignored_outside_their_family(make_rule):
    rule = NotificationRule.model_validate(
        make_rule(ruleType="FREQUENCY_BASED", conditions={"whatever": [1, 2, 3]})
    )

    assert rule.conditions is None


def test_snake_case_fields_accepted():
    rule = NotificationRule(
        id=1,
        name="r",
        user_id="u1",
        rule_type=RuleType.TIME_BASED,
        notification_type="EMAIL",
        days_of_week=["monday"],
        action_type=ActionType.BLOCK,
    )

    assert rule.days_of_week == frozenset({DayOfWeek.MONDAY})
    assert rule.action_type == "BLOCK"
    assert rule.action_config.recipient is None


def test_unknown_rule_type_rejected(make_rule):
    with pytest.raises(ValidationError):
        NotificationRule.model_validate(make_rule(ruleType="GEOFENCE"))


def test_action_config_keeps_unknown_keys(make_rule):
    rule = NotificationRule.model_validate(make_rule(actionConfig={"networkId": 7, "priorityLane": "fast"}))

    assert rule.action_config.network_id == "7"
    assert rule.action_config.model_extra == {"priorityLane": "fast"}


def test_rules_are_immutable(make_rule):
    rule = NotificationRule.model_validate(make_rule())

    with pytest.raises(ValidationError):
        rule.priority = 99


def test_custom_action_types_are_kept(make_rule):
    rule = NotificationRule.model_validate(make_rule(actionType="ESCALATE"))

    assert rule.action_type == "ESCALATE"
    assert is_dispatchable_action(rule.action_type)
    assert not is_dispatchable_action("BLOCK")
    assert not is_dispatchable_action("ALLOW")


def test_stats_as_of_rolls_over_only_forward():
    stats = UserNotificationStats(last_reset_date=date(2024, 1, 2), daily_count=3)

    assert stats.as_of(date(2024, 1, 2)).daily_count == 3
    assert stats.as_of(date(2024, 1, 3)).daily_count == 0
    assert stats.daily_count == 3

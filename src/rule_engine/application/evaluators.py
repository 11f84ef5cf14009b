"""Condition evaluators, one per rule family.

Each evaluator takes a rule and an EvaluationContext and answers whether the
condition described by the rule currently holds. None of them mutate state;
the frequency family only reads the stats snapshot carried by the context.
"""

from datetime import timedelta
from typing import Any, Callable, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from src.rule_engine.domain.exceptions import RuleEvaluationError
from src.rule_engine.domain.models import (
    CompositeConditions,
    DayOfWeek,
    EvaluationContext,
    NotificationRule,
    RuleType,
    VariableCondition,
    stringify_value,
)

Evaluator = Callable[[NotificationRule, EvaluationContext], bool]


def evaluate_time_based(rule: NotificationRule, context: EvaluationContext) -> bool:
    """Match when the current day and time in the rule's zone fall inside its window."""
    try:
        zone = ZoneInfo(rule.timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise RuleEvaluationError(rule.id, f"unknown timezone {rule.timezone!r}", e) from e

    local = context.now.astimezone(zone)
    if rule.days_of_week and DayOfWeek.from_datetime(local) not in rule.days_of_week:
        return False

    current = local.time().replace(tzinfo=None)
    if rule.start_time is not None and current < rule.start_time:
        return False
    if rule.end_time is not None and current > rule.end_time:
        return False
    return True


def evaluate_frequency_based(rule: NotificationRule, context: EvaluationContext) -> bool:
    """Match when the rule's daily cap is reached or its minimum interval has not elapsed."""
    if rule.max_notifications_per_day is None and rule.min_interval_minutes is None:
        return True
    if context.stats is None:
        raise RuleEvaluationError(rule.id, "no stats available for frequency check")

    stats = context.stats.snapshot(rule.user_id)

    if rule.max_notifications_per_day is not None and stats.daily_count >= rule.max_notifications_per_day:
        logger.info(f"Daily notification limit reached for {rule.user_id} ({stats.daily_count})")
        return True

    if rule.min_interval_minutes is not None and stats.last_notification_time is not None:
        next_allowed = stats.last_notification_time + timedelta(minutes=rule.min_interval_minutes)
        if context.now < next_allowed:
            logger.info(f"Minimum interval not met for {rule.user_id}, next send at {next_allowed}")
            return True

    return False


def evaluate_variable_conditions(
    conditions: Mapping[str, VariableCondition], variables: Mapping[str, Any]
) -> bool:
    """AND-combine every variable check; a missing variable fails immediately."""
    for name, condition in conditions.items():
        value = variables.get(name)
        if value is None:
            return False

        text = stringify_value(value)
        if condition.equals is not None and text != condition.equals:
            return False
        if condition.not_equals is not None and text == condition.not_equals:
            return False
        if condition.contains is not None and condition.contains not in text:
            return False
        if condition.min_length is not None and len(text) < condition.min_length:
            return False
        if condition.max_length is not None and len(text) > condition.max_length:
            return False

    return True


def evaluate_content_based(rule: NotificationRule, context: EvaluationContext) -> bool:
    """
    Check the literal content and variables against the rule's conditions.

    A blocked keyword being present makes the rule NOT match; callers read
    that outcome through the rule's action type.
    """
    conditions = rule.conditions
    if conditions is None:
        return True

    content = context.content
    lowered = content.lower()

    if conditions.max_content_length is not None and len(content) > conditions.max_content_length:
        return False

    if conditions.blocked_keywords and any(k.lower() in lowered for k in conditions.blocked_keywords):
        return False

    if conditions.required_keywords and not any(k.lower() in lowered for k in conditions.required_keywords):
        return False

    if conditions.variable_conditions and not evaluate_variable_conditions(
        conditions.variable_conditions, context.variables
    ):
        return False

    return True


def evaluate_composite(rule: NotificationRule, context: EvaluationContext) -> bool:
    """
    Combine the families flagged in the rule's conditions.

    Unflagged families count as passing, so a composite rule without flags
    always matches.
    """
    conditions = rule.conditions
    if conditions is None:
        return True
    if not isinstance(conditions, CompositeConditions):
        raise RuleEvaluationError(rule.id, "composite rule without composite conditions")

    results = [
        evaluate_time_based(rule, context) if conditions.time_based else True,
        evaluate_frequency_based(rule, context) if conditions.frequency_based else True,
        evaluate_content_based(rule, context) if conditions.content_based else True,
    ]
    return all(results) if conditions.require_all else any(results)


EVALUATORS: dict[RuleType, Evaluator] = {
    RuleType.TIME_BASED: evaluate_time_based,
    RuleType.FREQUENCY_BASED: evaluate_frequency_based,
    RuleType.CONTENT_BASED: evaluate_content_based,
    RuleType.COMPOSITE: evaluate_composite,
}


def evaluate_rule(rule: NotificationRule, context: EvaluationContext) -> bool:
    """Run the evaluator selected by the rule's type."""
    evaluator = EVALUATORS.get(rule.rule_type)
    if evaluator is None:
        logger.warning(f"Unknown rule type {rule.rule_type} for rule {rule.id}")
        return False
    return evaluator(rule, context)

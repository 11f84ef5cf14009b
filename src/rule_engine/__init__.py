"""Notification rule engine package."""

from src.rule_engine.application import (
    ActionDispatcher,
    NotificationGate,
    RuleEvaluationService,
    create_service_from_db,
)
from src.rule_engine.domain import EvaluationResult, NotificationRequest, NotificationRule
from src.rule_engine.infrastructure import (
    InMemoryRuleStore,
    SqlAlchemyRuleStore,
    StatsTracker,
)

__all__ = [
    "ActionDispatcher",
    "NotificationGate",
    "RuleEvaluationService",
    "create_service_from_db",
    "EvaluationResult",
    "NotificationRequest",
    "NotificationRule",
    "InMemoryRuleStore",
    "SqlAlchemyRuleStore",
    "StatsTracker",
]

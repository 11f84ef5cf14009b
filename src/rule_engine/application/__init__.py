"""Application layer for the notification rule engine."""

from src.rule_engine.application.action_dispatcher import ActionDispatcher
from src.rule_engine.application.evaluators import (
    EVALUATORS,
    evaluate_composite,
    evaluate_content_based,
    evaluate_frequency_based,
    evaluate_rule,
    evaluate_time_based,
)
from src.rule_engine.application.notification_gate import NotificationGate
from src.rule_engine.application.rule_evaluator import RuleEvaluationService, create_service_from_db

__all__ = [
    "ActionDispatcher",
    "NotificationGate",
    "RuleEvaluationService",
    "create_service_from_db",
    "EVALUATORS",
    "evaluate_composite",
    "evaluate_content_based",
    "evaluate_frequency_based",
    "evaluate_rule",
    "evaluate_time_based",
]

"""Infrastructure layer for the notification rule engine."""

from src.rule_engine.infrastructure.channels import InMemoryChannelSender, LoggingChannelSender
from src.rule_engine.infrastructure.database import Database
from src.rule_engine.infrastructure.logging import LoggingContext, configure_structured_logging
from src.rule_engine.infrastructure.orm import Base, NotificationRuleRecord
from src.rule_engine.infrastructure.rule_store import (
    InMemoryRuleStore,
    NotificationRuleRepository,
    SqlAlchemyRuleStore,
    validate_rules,
)
from src.rule_engine.infrastructure.stats_tracker import StatsTracker
from src.rule_engine.infrastructure.templates import InMemoryTemplateRegistry, MessageTemplate

__all__ = [
    "InMemoryChannelSender",
    "LoggingChannelSender",
    "Database",
    "LoggingContext",
    "configure_structured_logging",
    "Base",
    "NotificationRuleRecord",
    "InMemoryRuleStore",
    "NotificationRuleRepository",
    "SqlAlchemyRuleStore",
    "validate_rules",
    "StatsTracker",
    "InMemoryTemplateRegistry",
    "MessageTemplate",
]

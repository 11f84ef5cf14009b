"""Rule evaluation service: decides whether a notification may leave the system."""

from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Callable, Mapping

from loguru import logger

from src.rule_engine.application.evaluators import evaluate_rule
from src.rule_engine.domain.exceptions import InvalidEvaluationRequestError
from src.rule_engine.domain.models import (
    ActionType,
    EvaluationContext,
    EvaluationResult,
    NotificationRule,
    UserNotificationStats,
    local_now,
)
from src.rule_engine.domain.protocols import RuleStore
from src.rule_engine.infrastructure.logging import LoggingContext
from src.rule_engine.infrastructure.stats_tracker import StatsTracker


class RuleEvaluationService:
    """
    Evaluates a recipient's active rules against one candidate notification.

    Rules are visited in the order the store returns them (descending
    priority). Every matching rule is recorded; the first matching BLOCK rule
    stops the walk. A rule that raises while being evaluated is logged and
    treated as not matching, and the remaining rules still run.

    Evaluation never touches the stats counters: callers invoke
    `update_stats` only once they actually send.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        stats_tracker: StatsTracker,
        clock: Callable[[], datetime] = local_now,
    ):
        """
        Initialize the service.

        Args:
            rule_store: Supplies active rules per recipient, highest priority first
            stats_tracker: Per-recipient delivery counters
            clock: Returns the current aware local time
        """
        self.rule_store = rule_store
        self.stats_tracker = stats_tracker
        self._clock = clock
        self._short_retention_warned: set[tuple[int | str, int]] = set()

    def evaluate(
        self, recipient_id: str, content: str, variables: Mapping[str, Any] | None = None
    ) -> EvaluationResult:
        """
        Evaluate all active rules of a recipient.

        Args:
            recipient_id: Recipient the rules are scoped to
            content: Message body (may be empty)
            variables: Contextual variables referenced by content conditions

        Returns:
            EvaluationResult with the matched rules in priority order
        """
        if not isinstance(recipient_id, str) or not recipient_id:
            raise InvalidEvaluationRequestError("recipient_id must be a non-empty string")
        if content is None:
            raise InvalidEvaluationRequestError(
                "content is required (use an empty string for no content)",
                details={"recipient_id": recipient_id},
            )

        with LoggingContext(recipient_id=recipient_id):
            logger.info(f"Evaluating rules for recipient {recipient_id}")

            rules = self.rule_store.list_active_rules_for_recipient(recipient_id)
            if not rules:
                logger.info(f"No active rules found for recipient {recipient_id}")
                return EvaluationResult.allow()

            context = EvaluationContext(
                recipient_id=recipient_id,
                content=content,
                now=self._clock(),
                variables=MappingProxyType(dict(variables or {})),
                stats=self.stats_tracker,
            )

            applied: list[NotificationRule] = []
            for rule in rules:
                self._warn_short_retention(rule)
                if not self._matches(rule, context):
                    continue

                applied.append(rule)
                if rule.action_type == ActionType.BLOCK.value:
                    reason = f"Rule '{rule.name}' blocked the notification"
                    logger.info(f"Notification for {recipient_id} blocked by rule {rule.id}")
                    return EvaluationResult(blocked=True, block_reason=reason, applied_rules=tuple(applied))

            logger.debug(f"{len(applied)} of {len(rules)} rules applied for {recipient_id}")
            return EvaluationResult(applied_rules=tuple(applied))

    def _matches(self, rule: NotificationRule, context: EvaluationContext) -> bool:
        """Evaluate one rule; a rule that fails to evaluate does not match."""
        with LoggingContext(rule_id=rule.id):
            try:
                matched = evaluate_rule(rule, context)
            except Exception as e:
                logger.warning(f"Skipping rule {rule.id} ({rule.name}) after evaluation error: {e}")
                return False

            if matched:
                logger.debug(f"Rule {rule.id} ({rule.name}) matched, action={rule.action_type}")
            return matched

    def _warn_short_retention(self, rule: NotificationRule) -> None:
        """Warn once per rule when idle expiry would forget sends before its interval elapses."""
        minutes = rule.min_interval_minutes
        if minutes is None or self.stats_tracker.retains(timedelta(minutes=minutes)):
            return
        key = (rule.id, minutes)
        if key in self._short_retention_warned:
            return
        self._short_retention_warned.add(key)
        logger.warning(
            f"Rule {rule.id} ({rule.name}) needs {minutes} min between sends but idle stats expire "
            f"after {self.stats_tracker.idle_ttl}; the interval is not enforced for recipients idle that long"
        )

    def update_stats(self, recipient_id: str) -> UserNotificationStats:
        """Count one accepted send for the recipient."""
        return self.stats_tracker.update_stats(recipient_id)


def create_service_from_db(config=None) -> RuleEvaluationService:
    """
    Convenience function to build a RuleEvaluationService backed by the database.

    Args:
        config: AppConfig (loaded from the environment when omitted)

    Returns:
        Initialized RuleEvaluationService
    """
    from src.rule_engine.infrastructure.container import get_container, init_container

    try:
        container = get_container()
    except RuntimeError:
        container = init_container(config)
    return container.rule_evaluation_service()

"""Rule stores: where the engine gets each recipient's active rules from."""

import threading
from typing import Any, Iterable, Sequence

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.rule_engine.domain.exceptions import RuleValidationError
from src.rule_engine.domain.models import NotificationRule
from src.rule_engine.domain.protocols import RuleStore
from src.rule_engine.infrastructure.database import Database
from src.rule_engine.infrastructure.orm import NotificationRuleRecord


def validate_rule(document: NotificationRule | dict[str, Any]) -> NotificationRule:
    """Turn a raw rule document into a NotificationRule or raise RuleValidationError."""
    if isinstance(document, NotificationRule):
        return document
    try:
        return NotificationRule.model_validate(document)
    except ValidationError as e:
        errors = [f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()]
        rule_id = document.get("id") if isinstance(document, dict) else None
        raise RuleValidationError(rule_id, errors) from e


def validate_rules(documents: Iterable[NotificationRule | dict[str, Any]]) -> list[NotificationRule]:
    """Validate documents in order, skipping (and logging) any that are malformed."""
    rules: list[NotificationRule] = []
    for document in documents:
        try:
            rules.append(validate_rule(document))
        except RuleValidationError as e:
            logger.warning(f"Skipping invalid rule record {e.details['rule_id']}: {e.message}")
    return rules


class NotificationRuleRepository:
    """Repository for NotificationRuleRecord entities."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, record: NotificationRuleRecord) -> NotificationRuleRecord:
        """Persist a new rule record."""
        self.session.add(record)
        self.session.flush()
        return record

    def get_by_id(self, rule_id: int) -> NotificationRuleRecord | None:
        """Get a rule record by ID."""
        return self.session.get(NotificationRuleRecord, rule_id)

    def list_active_by_user(self, user_id: str) -> list[NotificationRuleRecord]:
        """List active, non-deleted rules of a user, highest priority first."""
        result = self.session.execute(
            select(NotificationRuleRecord)
            .where(
                NotificationRuleRecord.user_id == user_id,
                NotificationRuleRecord.is_active.is_(True),
                NotificationRuleRecord.deleted_at.is_(None),
            )
            .order_by(NotificationRuleRecord.priority.desc(), NotificationRuleRecord.id.asc())
        )
        return list(result.scalars().all())


class SqlAlchemyRuleStore(RuleStore):
    """Load active rules from the database."""

    def __init__(self, database: Database):
        self.database = database

    def list_active_rules_for_recipient(self, recipient_id: str) -> list[NotificationRule]:
        with self.database.session_scope() as session:
            records = NotificationRuleRepository(session).list_active_by_user(recipient_id)
            documents = [record.to_document() for record in records]

        rules = validate_rules(documents)
        logger.debug(f"Loaded {len(rules)} active rules (out of {len(documents)} records) for {recipient_id}")
        return rules


class InMemoryRuleStore(RuleStore):
    """Simple store that holds pre-provided rules."""

    def __init__(self, rules: Iterable[NotificationRule | dict[str, Any]] = ()):
        """Initialize with rule models or raw rule documents."""
        self._documents: list[NotificationRule | dict[str, Any]] = list(rules)
        self._lock = threading.Lock()

    def add(self, rule: NotificationRule | dict[str, Any]) -> None:
        with self._lock:
            self._documents.append(rule)

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()

    def list_active_rules_for_recipient(self, recipient_id: str) -> Sequence[NotificationRule]:
        with self._lock:
            documents = list(self._documents)

        rules = [
            rule for rule in validate_rules(documents) if rule.user_id == recipient_id and rule.is_active
        ]
        # sorted() is stable, so equal priorities keep insertion order
        return sorted(rules, key=lambda rule: -rule.priority)

    def __len__(self) -> int:
        return len(self._documents)

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from src.config import DispatchConfig
from src.rule_engine.application.action_dispatcher import ActionDispatcher
from src.rule_engine.application.notification_gate import NotificationGate
from src.rule_engine.application.rule_evaluator import RuleEvaluationService
from src.rule_engine.domain.models import NotificationType
from src.rule_engine.infrastructure.channels import InMemoryChannelSender
from src.rule_engine.infrastructure.rule_store import InMemoryRuleStore
from src.rule_engine.infrastructure.stats_tracker import StatsTracker
from src.rule_engine.infrastructure.templates import InMemoryTemplateRegistry

# 2024-01-01 was a Monday
MONDAY_10AM = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment


@pytest.fixture
def clock():
    return FrozenClock(MONDAY_10AM)


@pytest.fixture
def tracker(clock):
    return StatsTracker(clock=clock)


@pytest.fixture
def store():
    return InMemoryRuleStore()


@pytest.fixture
def service(store, tracker, clock):
    return RuleEvaluationService(store, tracker, clock=clock)


@pytest.fixture
def make_rule():
    """Build camelCase rule documents with sensible defaults."""
    ids = itertools.count(1)

    def _make(**fields):
        document = {
            "id": next(ids),
            "name": "rule",
            "userId": "u1",
            "ruleType": "CONTENT_BASED",
            "notificationType": "EMAIL",
            "priority": 0,
            "actionType": "SEND_NOTIFICATION",
        }
        document.update(fields)
        return document

    return _make


@pytest.fixture
def senders():
    return {channel: InMemoryChannelSender(channel) for channel in NotificationType}


@pytest.fixture
def templates():
    return InMemoryTemplateRegistry()


@pytest.fixture
def dispatcher(senders, templates):
    return ActionDispatcher(senders, template_renderer=templates, config=DispatchConfig())


@pytest.fixture
def gate(service, dispatcher):
    return NotificationGate(service, dispatcher)

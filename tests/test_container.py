import pytest

from src.config import AppConfig, DatabaseConfig, DispatchConfig, StatsCacheConfig
from src.rule_engine.application.rule_evaluator import RuleEvaluationService, create_service_from_db
from src.rule_engine.domain.models import GateStatus, NotificationRequest, NotificationType, RuleType
from src.rule_engine.infrastructure import container as container_module
from src.rule_engine.infrastructure.orm import NotificationRuleRecord
from src.rule_engine.infrastructure.rule_store import NotificationRuleRepository, SqlAlchemyRuleStore


@pytest.fixture
def app_config():
    return AppConfig(
        database=DatabaseConfig(url="sqlite://"),
        stats_cache=StatsCacheConfig(max_entries=3, idle_ttl_seconds=None),
        dispatch=DispatchConfig(default_subject="From config"),
    )


@pytest.fixture
def container(app_config):
    container = container_module.init_container(app_config, create_tables=True)
    yield container
    container_module.reset_container()


def test_get_container_requires_init():
    container_module.reset_container()

    with pytest.raises(RuntimeError):
        container_module.get_container()


def test_container_wires_configured_components(container):
    tracker = container.stats_tracker()
    service = container.rule_evaluation_service()

    assert tracker.max_entries == 3
    assert tracker.idle_ttl is None
    assert isinstance(service, RuleEvaluationService)
    assert isinstance(service.rule_store, SqlAlchemyRuleStore)
    assert service.stats_tracker is tracker
    assert container.notification_gate().evaluation_service is service
    assert container.action_dispatcher().config.default_subject == "From config"
    assert set(container.action_dispatcher().senders) == set(NotificationType)


def test_create_service_from_db_reuses_container(container):
    assert create_service_from_db() is container.rule_evaluation_service()


def test_gate_end_to_end_over_database(container):
    with container.database().session_scope() as session:
        NotificationRuleRepository(session).add(
            NotificationRuleRecord(
                name="Only invoices",
                user_id="acme",
                rule_type=RuleType.CONTENT_BASED,
                notification_type=NotificationType.EMAIL,
                priority=5,
                action_type="BLOCK",
                conditions={"blockedKeywords": ["invoice"]},
            )
        )

    gate = container.notification_gate()

    sent = gate.submit(NotificationRequest(recipient_id="acme", channel=NotificationType.EMAIL, content="invoice"))
    blocked = gate.submit(NotificationRequest(recipient_id="acme", channel=NotificationType.EMAIL, content="hi"))

    assert sent.status == GateStatus.SENT
    assert blocked.status == GateStatus.BLOCKED
    assert container.stats_tracker().snapshot("acme").daily_count == 1

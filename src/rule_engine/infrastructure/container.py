"""Dependency injection container for the rule engine."""

from dependency_injector import containers, providers

from src.config import AppConfig, DispatchConfig
from src.rule_engine.application.action_dispatcher import ActionDispatcher
from src.rule_engine.application.notification_gate import NotificationGate
from src.rule_engine.application.rule_evaluator import RuleEvaluationService
from src.rule_engine.domain.models import NotificationType
from src.rule_engine.infrastructure.channels import LoggingChannelSender
from src.rule_engine.infrastructure.database import Database
from src.rule_engine.infrastructure.rule_store import SqlAlchemyRuleStore
from src.rule_engine.infrastructure.stats_tracker import StatsTracker
from src.rule_engine.infrastructure.templates import InMemoryTemplateRegistry


class RuleEngineContainer(containers.DeclarativeContainer):
    """Dependency injection container for the rule engine."""

    config = providers.Configuration()

    # Database
    database = providers.Singleton(
        Database,
        database_url=config.database.url,
        echo=config.database.echo,
    )

    rule_store = providers.Singleton(SqlAlchemyRuleStore, database=database)

    # One tracker per process; it is the only owner of the stats
    stats_tracker = providers.Singleton(
        StatsTracker,
        max_entries=config.stats_cache.max_entries,
        idle_ttl_seconds=config.stats_cache.idle_ttl_seconds,
    )

    rule_evaluation_service = providers.Singleton(
        RuleEvaluationService,
        rule_store=rule_store,
        stats_tracker=stats_tracker,
    )

    # Dispatch
    template_registry = providers.Singleton(InMemoryTemplateRegistry)

    senders = providers.Dict(
        {channel: providers.Singleton(LoggingChannelSender, channel=channel) for channel in NotificationType}
    )

    dispatch_config = providers.Singleton(
        DispatchConfig,
        default_subject=config.dispatch.default_subject,
        default_sender_name=config.dispatch.default_sender_name,
        default_network_id=config.dispatch.default_network_id,
    )

    action_dispatcher = providers.Singleton(
        ActionDispatcher,
        senders=senders,
        template_renderer=template_registry,
        config=dispatch_config,
    )

    notification_gate = providers.Singleton(
        NotificationGate,
        evaluation_service=rule_evaluation_service,
        dispatcher=action_dispatcher,
    )


# Global container instance
_container: RuleEngineContainer | None = None


def init_container(config: AppConfig | None = None, create_tables: bool = False) -> RuleEngineContainer:
    """
    Initialize the global container.

    Args:
        config: Application configuration (loaded from the environment when omitted)
        create_tables: Create the rule tables if they do not exist
    """
    global _container
    config = config or AppConfig()
    _container = RuleEngineContainer()
    _container.config.from_dict(config.model_dump())
    if create_tables:
        _container.database().create_all()
    return _container


def get_container() -> RuleEngineContainer:
    """Get the global container instance."""
    if _container is None:
        raise RuntimeError("Container not initialized. Call init_container() first.")
    return _container


def reset_container() -> None:
    """Shut down and forget the global container."""
    global _container
    if _container is not None:
        _container.database().close()
    _container = None

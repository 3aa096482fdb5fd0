from dependency_injector import containers, providers

from pointapi.config import Settings
from pointapi.database.connection import create_db_engine, create_session_factory
from pointapi.repositories.memory import InMemoryBalanceStore, InMemoryHistoryLog
from pointapi.repositories.points_repository import (
    PointHistoryRepository,
    UserPointRepository,
)
from pointapi.services.lock_registry import UserLockRegistry
from pointapi.services.point_service import PointService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.ThreadSafeSingleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Balance store / history log, selected by STORAGE_BACKEND."""

    config = providers.DependenciesContainer()

    storage_backend = config.config.provided.STORAGE_BACKEND

    db_engine = providers.ThreadSafeSingleton(create_db_engine, settings=config.config)
    session_factory = providers.ThreadSafeSingleton(create_session_factory, engine=db_engine)

    balance_store = providers.Selector(
        storage_backend,
        memory=providers.ThreadSafeSingleton(
            InMemoryBalanceStore,
            latency_ms=config.config.provided.MEMORY_STORE_LATENCY_MS,
            initial_balances=config.config.provided.MEMORY_SEED_USERS,
        ),
        database=providers.ThreadSafeSingleton(UserPointRepository, session_factory=session_factory),
    )
    history_log = providers.Selector(
        storage_backend,
        memory=providers.ThreadSafeSingleton(
            InMemoryHistoryLog,
            latency_ms=config.config.provided.MEMORY_STORE_LATENCY_MS,
        ),
        database=providers.ThreadSafeSingleton(PointHistoryRepository, session_factory=session_factory),
    )


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies.

    락 레지스트리와 포인트 서비스는 프로세스당 하나여야 하므로 ThreadSafeSingleton으로 둔다.
    라우트가 스레드풀에서 동시에 처음 resolve해도 인스턴스는 하나만 만들어진다.
    """

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    lock_registry = providers.ThreadSafeSingleton(UserLockRegistry)
    point_service = providers.ThreadSafeSingleton(
        PointService,
        balance_store=repositories.balance_store,
        history_log=repositories.history_log,
        lock_registry=lock_registry,
        max_point=config.config.provided.MAX_POINT,
        lock_queries=config.config.provided.POINT_QUERY_USE_LOCK,
        auto_create_user=config.config.provided.POINT_AUTO_CREATE_USER,
        lock_timeout=config.config.provided.POINT_LOCK_TIMEOUT_SECONDS,
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "pointapi.routers.point_router",
            "pointapi.routers.health_router",
        ],
    )

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule, config=config)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )

"""
profit_services.container -- Wiring of the profit sharing services.

Responsibility:
    Builds every service once from a store, an audit sink, a configuration
    and a clock, and wires them together.  No service constructs another
    service's collaborators on its own.

Architecture position:
    Services -- top of the service layer.  This is the only module that
    touches profit_config bridges, the adapters and the services at once.

Usage:
    with session_scope() as session:
        services = build_sql_services(session, get_active_config())
        services.profit_sharing.process_quarterly_distribution("quarter", "2025-Q2")

    store = InMemoryStore()
    services = build_memory_services(store, InMemoryAuditSink(clock), clock=clock)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from profit_config import get_active_config
from profit_config.bridges import (
    ConfigTierPolicySource,
    build_distribution_bounds,
    build_profit_rates,
)
from profit_config.schema import ProfitSharingConfig
from profit_kernel.adapters.memory import InMemoryStore
from profit_kernel.adapters.sqlalchemy_store import SqlAlchemyStore
from profit_kernel.domain.clock import Clock, SystemClock
from profit_kernel.domain.ports import (
    AuditSink,
    LedgerReader,
    PersistencePort,
    ShareholderRegistry,
    TierPolicySource,
)
from profit_kernel.logging_config import get_logger
from profit_kernel.services.auditor_service import AuditorService
from profit_services.commission_service import CommissionService
from profit_services.profit_sharing_service import ProfitSharingService
from profit_services.share_award_service import ShareAwardService

logger = get_logger("services.container")


class ServiceContainer:
    """
    Single construction point for the service layer.

    Contract:
        Receives the ports, the configuration and a clock; constructs each
        service exactly once and exposes it as a public attribute.

    Guarantees:
        - All services share the same ports, audit sink and clock.

    Non-goals:
        - Does NOT manage transaction boundaries or the session lifecycle.
    """

    def __init__(
        self,
        ledger: LedgerReader,
        registry: ShareholderRegistry,
        persistence: PersistencePort,
        audit: AuditSink,
        config: ProfitSharingConfig,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.clock = clock or SystemClock()
        self.audit = audit
        self.policies: TierPolicySource = ConfigTierPolicySource(config)

        self.profit_sharing = ProfitSharingService(
            ledger=ledger,
            registry=registry,
            persistence=persistence,
            policies=self.policies,
            audit=audit,
            clock=self.clock,
            rates=build_profit_rates(config),
            bounds=build_distribution_bounds(config),
            treasury_account_id=config.distribution.treasury_account_id,
        )
        self.commissions = CommissionService(persistence, audit, self.clock)
        self.share_awards = ShareAwardService(
            registry, self.policies, audit, share_unit=config.shares.share_unit
        )

        gaps = self.profit_sharing.policy_gaps()
        logger.debug(
            "services_wired",
            extra={
                "config_id": config.config_id,
                "config_version": config.version,
                "policy_gap_tiers": list(gaps.tiers),
            },
        )


def build_memory_services(
    store: InMemoryStore,
    audit: AuditSink,
    config: ProfitSharingConfig | None = None,
    clock: Clock | None = None,
) -> ServiceContainer:
    """Services over the in-memory store."""
    return ServiceContainer(
        store, store, store, audit, config or get_active_config(), clock
    )


def build_sql_services(
    session: Session,
    config: ProfitSharingConfig | None = None,
    clock: Clock | None = None,
) -> ServiceContainer:
    """Services over one SQLAlchemy session.  The caller commits."""
    clock = clock or SystemClock()
    store = SqlAlchemyStore(session)
    return ServiceContainer(
        store,
        store,
        store,
        AuditorService(session, clock),
        config or get_active_config(),
        clock,
    )

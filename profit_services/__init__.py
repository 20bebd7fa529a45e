"""
profit_services -- Package init and public API.

Responsibility:
    Stateful orchestration services that compose the pure calculation
    engines (profit_engines/) with the kernel ports, adapters and audit
    trail.  This is the only layer that mutates periods, distributions,
    balances and commissions.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        profit_services/ -> profit_engines/  (allowed)
        profit_services/ -> profit_kernel/   (allowed)
        profit_services/ -> profit_config/   (allowed, container only)
        profit_engines/  -> profit_services/ (FORBIDDEN)
        profit_kernel/   -> profit_services/ (FORBIDDEN)

Invariants enforced:
    - Layer isolation: profit_kernel and profit_engines never import from
      this package.
    - DI transparency: service wiring is centralised in ServiceContainer;
      no service self-constructs its ports.

Failure modes:
    - ImportError at startup if a service's dependency graph is broken.

Audit relevance:
    - This package is the import surface for external callers.  Changes to
      __all__ must be reviewed for backwards-compatibility.
"""

from profit_kernel.logging_config import get_logger

logger = get_logger("services")

from profit_services.commission_service import (
    CommissionBatchResult,
    CommissionFailure,
    CommissionService,
)
from profit_services.container import (
    ServiceContainer,
    build_memory_services,
    build_sql_services,
)
from profit_services.profit_sharing_service import (
    PaymentBatchResult,
    PaymentFailure,
    ProcessingResult,
    ProfitSharingService,
)
from profit_services.reconciliation_service import ReconciliationService
from profit_services.share_award_service import ShareAwardService

__all__ = [
    "CommissionBatchResult",
    "CommissionFailure",
    "CommissionService",
    "PaymentBatchResult",
    "PaymentFailure",
    "ProcessingResult",
    "ProfitSharingService",
    "ReconciliationService",
    "ServiceContainer",
    "ShareAwardService",
    "build_memory_services",
    "build_sql_services",
]

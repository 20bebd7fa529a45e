"""ORM models for the profit kernel."""

from profit_kernel.models.audit_event import AuditEvent
from profit_kernel.models.commission import CommissionModel
from profit_kernel.models.ledger_entry import LedgerEntryModel
from profit_kernel.models.profit_sharing import DistributionModel, ProfitSharingPeriodModel
from profit_kernel.models.shareholder import ShareholderAccountModel
from profit_kernel.services.sequence_service import SequenceCounter

__all__ = [
    "AuditEvent",
    "CommissionModel",
    "DistributionModel",
    "LedgerEntryModel",
    "ProfitSharingPeriodModel",
    "SequenceCounter",
    "ShareholderAccountModel",
]

"""
Module: profit_kernel.models.audit_event
Responsibility: ORM persistence for the tamper-evident audit hash chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - seq is unique and monotonically increasing, allocated by SequenceService.
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash),
      computed by AuditorService.
    - Rows are append-only.  Nothing in this package updates or deletes them.
"""

from datetime import datetime

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from profit_kernel.db.base import Base
from profit_kernel.domain.dtos import AuditAction


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Non-goals:
        - This model does NOT enforce hash correctness at INSERT time;
          that is the responsibility of AuditorService.
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
    )

    seq: Mapped[int] = mapped_column(nullable=False, unique=True)

    # e.g. "ProfitSharingPeriod", "Distribution", "Commission"
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)

    action: Mapped[AuditAction] = mapped_column(String(60), nullable=False)

    # Actor from LogContext, "system" when unset
    actor_id: Mapped[str] = mapped_column(String(36), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    # Null only for the genesis event
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None

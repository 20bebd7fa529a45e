"""
AuditorService -- tamper-evident SQL audit trail.

Responsibility:
    Implements the ``AuditSink`` port on top of the ``audit_events`` table.
    Every recorded event carries a SHA-256 link to its predecessor, so any
    retroactive edit is detectable by ``validate_chain()``.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the profit sharing,
    reconciliation, commission and share award services.

Invariants enforced:
    - Sequence numbers come from SequenceService, never max+1.
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash).
    - Append-only: rows are inserted and never modified.

Failure modes:
    - AuditChainBrokenError from ``validate_chain()`` on a hash mismatch.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from profit_kernel.db.base import as_utc
from profit_kernel.domain.clock import Clock, SystemClock
from profit_kernel.domain.dtos import AuditAction, AuditRecord
from profit_kernel.domain.ports import AuditSink
from profit_kernel.exceptions import AuditChainBrokenError
from profit_kernel.logging_config import LogContext, get_logger
from profit_kernel.models.audit_event import AuditEvent
from profit_kernel.services.base import BaseService
from profit_kernel.services.sequence_service import SequenceService
from profit_kernel.utils.hashing import hash_audit_event, hash_payload

logger = get_logger("services.auditor")

SYSTEM_ACTOR = "system"


class AuditorService(BaseService, AuditSink):
    """
    Session-backed, hash-chained audit sink.

    Contract:
        ``record`` flushes one ``AuditEvent`` row inside the caller's
        transaction.  The actor is taken from ``LogContext`` when bound.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT interpret or act on audit events.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_event = self.session.execute(
            select(AuditEvent).order_by(AuditEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()
        return last_event.hash if last_event else None

    def record(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: str,
        payload: dict[str, Any] | None = None,
    ) -> AuditRecord:
        seq = self._sequence_service.next_value(SequenceService.AUDIT_EVENT)
        prev_hash = self._get_last_hash()

        payload_data = dict(payload or {})
        computed_payload_hash = hash_payload(payload_data)
        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        event = AuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            actor_id=LogContext.get_all().get("actor_id", SYSTEM_ACTOR),
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self.session.add(event)
        self.session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action.value,
                "seq": seq,
            },
        )
        return _to_record(event)

    def list_records(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ) -> list[AuditRecord]:
        query = select(AuditEvent).order_by(AuditEvent.seq)
        if entity_type is not None:
            query = query.where(AuditEvent.entity_type == entity_type)
        if entity_id is not None:
            query = query.where(AuditEvent.entity_id == entity_id)
        return [_to_record(e) for e in self.session.execute(query).scalars()]

    def validate_chain(self) -> bool:
        try:
            return super().validate_chain()
        except AuditChainBrokenError:
            logger.critical("audit_chain_broken", exc_info=True)
            raise


def _to_record(event: AuditEvent) -> AuditRecord:
    return AuditRecord(
        seq=event.seq,
        action=AuditAction(event.action),
        entity_type=event.entity_type,
        entity_id=event.entity_id,
        payload=dict(event.payload or {}),
        occurred_at=as_utc(event.occurred_at),
        hash=event.hash,
        prev_hash=event.prev_hash,
    )

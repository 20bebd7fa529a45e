"""
BaseService -- abstract base for session-backed kernel services.

Responsibility:
    Common constructor and session-handling contract for every service that
    writes through a SQLAlchemy ``Session``.  Subclasses use
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  The caller (``session_scope``,
    the CLI, or a test fixture) owns commit/rollback, which is what makes a
    quarterly run atomic.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for session-backed services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session):
        self.session = session

"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    write-side service.  All concrete services receive a SQLAlchemy
    ``Session`` that they use via ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's transaction
      and never commit or roll back themselves.  The caller (usually
      ``session_scope()``) owns commit/rollback, so each operation's rows
      land together or not at all.

Failure modes:
    - If a subclass calls ``session.commit()``, a failure later in the same
      caller-level operation could leave partial rows behind.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from erp_kernel.db.base import Base
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.exceptions import NotFoundError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT retry anything; retry policy belongs to the caller.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Initialize the service.

        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source; defaults to the system clock.
        """
        self.session = session
        self.clock = clock or SystemClock()

    def _load_live(
        self,
        model: type[ModelType],
        entity_id: UUID,
        *,
        for_update: bool = False,
    ) -> ModelType:
        """
        Load a row that has not been soft-deleted.

        Raises:
            NotFoundError: If the row does not exist or has deleted_at set.
        """
        stmt = select(model).where(model.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        obj = self.session.execute(stmt).scalar_one_or_none()
        if obj is None or getattr(obj, "deleted_at", None) is not None:
            raise NotFoundError(model.__name__, str(entity_id))
        return obj

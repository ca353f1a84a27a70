"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every mutating service.  Services use ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell around the pure engines in
    ``stitch_engines``.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back themselves.  The caller
      (``session_scope()``, a request handler or a test) owns both.
    - All-or-nothing: every check runs before the first write, and a
      failure raised after a write is rolled back by the caller's scope.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stitch_kernel.db.base import Base
from stitch_kernel.domain.clock import Clock, SystemClock
from stitch_kernel.exceptions import InactiveReferenceError, NotFoundError

ModelType = TypeVar("ModelType", bound=Base)
T = TypeVar("T", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source.  Defaults to SystemClock.
        """
        self.session = session
        self.clock = clock or SystemClock()

    def _load(
        self,
        model: type[T],
        entity_id: UUID,
        not_found: type[NotFoundError],
        lock: bool = False,
    ) -> T:
        """Fetch a row by id, optionally under SELECT ... FOR UPDATE."""
        if lock:
            row = self.session.execute(
                select(model)
                .where(model.id == entity_id)
                .with_for_update()  # Row-level lock
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
        else:
            row = self.session.get(model, entity_id)
        if row is None:
            raise not_found(str(entity_id))
        return row

    def _load_active(
        self,
        model: type[T],
        entity_id: UUID,
        not_found: type[NotFoundError],
        lock: bool = False,
    ) -> T:
        row = self._load(model, entity_id, not_found, lock=lock)
        if not row.is_active:
            raise InactiveReferenceError(not_found.entity, str(entity_id))
        return row

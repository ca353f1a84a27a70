"""
Module: stitch_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the read side: they turn persisted counters into progress
    and schedule values through the pure engines.
Architecture position: Kernel > Selectors.  May import from db/, models/,
    domain/ and stitch_engines.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit() or session.flush().
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stitch_kernel.db.base import Base
from stitch_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Guarantees:
        - No commit, flush, add, or delete operations are performed.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

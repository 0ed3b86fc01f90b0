"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session contract for every writing service.
    Services receive a SQLAlchemy ``Session`` and persist with
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Transaction boundaries belong to the caller (PostingOrchestrator or a
      test harness).  A service that commits would break the atomicity of
      preview and confirm.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from lekka_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Contract:
        Uses ``session.flush()`` within the caller's transaction.

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT host read-only queries; those live in ``selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session

"""
BaseService -- abstract base for session-bound kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    services that read and write through a caller-owned SQLAlchemy
    ``Session``.  They persist via ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Extended by the
    entity repository; workflow services in ``credit_modules`` own the
    transaction around it.

Failure modes:
    - If a subclass calls ``session.commit()`` the atomicity of multi-step
      operations such as disbursement is broken.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for flush-only services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()`` -- the caller controls transaction
          boundaries, enabling atomic multi-step operations.
    """

    def __init__(self, session: Session):
        self.session = session

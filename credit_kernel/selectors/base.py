"""
Module: credit_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors (the
    reporting side of the engine: portfolio summaries, dashboards).
Architecture position: Kernel > Selectors.  Selectors NEVER create, modify,
    or delete data.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit(), or session.flush().
    - DTO return convention: selectors return frozen dataclasses or computed
      results, not ORM instances.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Accepts a Session from the caller, performs read-only queries,
        and returns DTOs or computed results.
    """

    def __init__(self, session: Session):
        self.session = session

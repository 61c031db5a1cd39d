"""
Shared transaction handling for module workflow services.

Used by credit_modules/*/service.py so that every public write operation
follows the same unit-of-work contract:

* commit on success, rollback on any error;
* a stale optimistic version (``StaleDataError``) rolls the whole
  transaction back and re-runs the operation against fresh state, up to
  ``EngineConfig.conflict_max_attempts`` times;
* storage failures surface as ``TransientError``;
* change events are published only after the commit;
* records logged during an operation carry the operation and entity,
  plus the document numbers and owner once the service has loaded it.

Architecture: Modules layer. Imports only from credit_kernel and credit_config.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from credit_config import EngineConfig
from credit_kernel.domain.clock import Clock, SystemClock
from credit_kernel.exceptions import ConflictError, TransientError
from credit_kernel.logging_config import LogContext, document_context, get_logger
from credit_kernel.services.change_feed import ChangeEvent, ChangeFeed
from credit_modules.repository import EntityRepository

logger = get_logger("modules.unit_of_work")

T = TypeVar("T")

# A unit of work returns its result plus the change events to publish
# once the transaction has committed.
Work = Callable[[], tuple[T, list[ChangeEvent]]]


class TransactionalService:
    """
    Base for services that own their transaction boundary.

    Contract
    --------
    * ``auto_commit=True`` (default): ``_run_atomic`` commits, retries on
      version conflicts, and publishes change events after commit.
    * ``auto_commit=False``: the service joins the caller's transaction.
      ``_run_atomic`` only flushes; events are held until the owning
      service collects them with ``take_deferred_events()``.
    """

    def __init__(
        self,
        session: Session,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
        change_feed: ChangeFeed | None = None,
        actor_id: str = "system",
        auto_commit: bool = True,
    ):
        self._session = session
        self._config = config or EngineConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._change_feed = change_feed
        self._actor_id = actor_id
        self._auto_commit = auto_commit
        self._repository = EntityRepository(session)
        self._deferred_events: list[ChangeEvent] = []

    @property
    def config(self) -> EngineConfig:
        return self._config

    def take_deferred_events(self) -> list[ChangeEvent]:
        """Hand over events held while running inside a caller's transaction."""
        events, self._deferred_events = self._deferred_events, []
        return events

    def _annotate(self, document: object) -> None:
        """Add the document's loan/order/invoice numbers and owner to the log context."""
        LogContext.set(**document_context(document))

    def _run_atomic(
        self,
        operation: str,
        entity_type: str,
        entity_id: object,
        work: Work[T],
    ) -> T:
        """
        Run ``work`` as one unit of work.

        Raises:
            ConflictError: If every attempt hit a stale version.
            TransientError: On storage failure.
            Anything ``work`` raises, after rollback.
        """
        with LogContext.bind(
            operation=operation,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            actor_id=self._actor_id,
        ):
            if not self._auto_commit:
                result, events = work()
                self._session.flush()
                self._deferred_events.extend(events)
                return result

            max_attempts = self._config.conflict_max_attempts
            attempt = 0
            while True:
                attempt += 1
                try:
                    result, events = work()
                    self._session.commit()
                except StaleDataError:
                    self._session.rollback()
                    logger.warning(
                        "optimistic_conflict_detected",
                        extra={"attempt": attempt, "max_attempts": max_attempts},
                    )
                    if attempt >= max_attempts:
                        raise ConflictError(
                            entity_type=entity_type,
                            entity_id=str(entity_id),
                            attempts=attempt,
                        ) from None
                    continue
                except OperationalError as exc:
                    self._session.rollback()
                    logger.error("transient_storage_failure", exc_info=True)
                    raise TransientError(operation, str(exc.orig or exc)) from exc
                except DBAPIError as exc:
                    self._session.rollback()
                    if exc.connection_invalidated:
                        logger.error("storage_connection_lost", exc_info=True)
                        raise TransientError(operation, "connection invalidated") from exc
                    raise
                except Exception:
                    self._session.rollback()
                    logger.info("transaction_rolled_back")
                    raise

                logger.debug("transaction_committed", extra={"attempt": attempt})
                self._publish(events)
                return result

    def _publish(self, events: list[ChangeEvent]) -> None:
        if self._change_feed is None:
            return
        for event in events:
            self._change_feed.publish(event)

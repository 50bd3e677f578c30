"""
Audit Logger

Every balance mutation in the ledger is logged. This provides:
1. Traceability of each balance change
2. Debugging capability when a balance looks wrong
3. A history the host application can show

The audit logger:
- Keeps an append-only in-memory trail of events
- Optionally persists the trail to key-value storage
- Gracefully handles failures (a failed audit write never fails a ledger operation)
- Supports correlation IDs to trace the events of one service call
"""

import json
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID, uuid4

import structlog

from ledger.models.events import LedgerEvent, LedgerEventSeverity
from ledger.storage.interface import KeyValueStorageInterface, StorageError


AUDIT_KEY = "audit_log"


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog on top of stdlib logging.

    Called once by the application wiring. Tests run with structlog's
    defaults.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory trail, mirrored to storage when one is configured
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorageInterface] = None,
        key: str = AUDIT_KEY,
        max_events: Optional[int] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            key: Storage key holding the persisted trail.
            max_events: Keep only the newest entries in the persisted
                    trail. None keeps everything.
        """
        self._storage = storage
        self._key = key
        self._max_events = max_events
        self._events: list[LedgerEvent] = []
        self._correlation_id: Optional[UUID] = None
        self._logger = structlog.get_logger("ledger.audit")

    @property
    def events(self) -> list[LedgerEvent]:
        """Recorded events, oldest first."""
        return list(self._events)

    @contextmanager
    def correlate(self, correlation_id: UUID) -> Iterator[UUID]:
        """Tag every event logged inside the block with `correlation_id`."""
        previous = self._correlation_id
        self._correlation_id = correlation_id
        try:
            yield correlation_id
        finally:
            self._correlation_id = previous

    def log(
        self,
        event: LedgerEvent,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        A stored trail that is not a JSON list is replaced by a fresh one
        and reported as a failure.
        """
        correlation_id = correlation_id or self._correlation_id
        if correlation_id and event.correlation_id is None:
            event = event.model_copy(update={"correlation_id": correlation_id})

        self._events.append(event)
        log_dict = event.to_log_dict()

        if event.severity is LedgerEventSeverity.ERROR:
            self._logger.error("ledger_event", **log_dict)
        elif event.severity is LedgerEventSeverity.WARNING:
            self._logger.warning("ledger_event", **log_dict)
        elif event.severity is LedgerEventSeverity.DEBUG:
            self._logger.debug("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)

        if self._storage is None:
            return True

        try:
            raw = self._storage.get(self._key)
            trail = json.loads(raw) if raw else []
            intact = isinstance(trail, list)
            if not intact:
                self._logger.error(
                    "audit_trail_corrupt",
                    key=self._key,
                    found=type(trail).__name__,
                )
                trail = []
            trail.append(event.model_dump(mode="json"))
            if self._max_events is not None:
                trail = trail[-self._max_events:]
            self._storage.set(self._key, json.dumps(trail, ensure_ascii=False))
            return intact
        except (StorageError, ValueError) as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    def log_many(
        self,
        events: list[LedgerEvent],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        for event in events:
            self.log(event, correlation_id=correlation_id)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a service call and pass it to every
    event the call emits.
    """
    return uuid4()

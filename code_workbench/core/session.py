from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from code_workbench.core.model import OperationKind, OperationStatus, Payload, SessionView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallTicket:
    """Identifies one issued remote call: which snapshot it read and which call it was."""

    kind: OperationKind
    source_version: int
    sequence: int


class OperationSession:
    """Lifecycle of one operation kind.

    idle -> pending -> succeeded | failed, and succeeded | failed -> pending
    on re-trigger. A completion is only accepted for the session's current
    ticket, so a call that was superseded (e.g. timed out and re-issued)
    can never overwrite the newer state.
    """

    def __init__(self, kind: OperationKind) -> None:
        self.kind = kind
        self.status: OperationStatus = "idle"
        self.source_version: Optional[int] = None
        self.result: Optional[Payload] = None
        self.error: Optional[str] = None
        self._sequence = 0
        self._current: Optional[CallTicket] = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    def trigger(self, source_version: int) -> Optional[CallTicket]:
        """Start a new call against `source_version`. Returns None while pending."""
        if self.is_pending:
            logger.debug("Ignoring re-trigger while pending", extra={"kind": self.kind})
            return None

        self._sequence += 1
        ticket = CallTicket(kind=self.kind, source_version=source_version, sequence=self._sequence)
        self._current = ticket
        self.status = "pending"
        self.source_version = source_version
        self.result = None
        self.error = None
        return ticket

    def on_success(self, ticket: CallTicket, payload: Payload) -> bool:
        if not self._accepts(ticket):
            return False
        self.status = "succeeded"
        self.result = payload
        self.error = None
        self._current = None
        return True

    def on_failure(self, ticket: CallTicket, message: str) -> bool:
        if not self._accepts(ticket):
            return False
        self.status = "failed"
        self.result = None
        self.error = message
        self._current = None
        return True

    def reset(self) -> None:
        """Back to idle; an outstanding call (if any) will be discarded when it lands."""
        self.status = "idle"
        self.source_version = None
        self.result = None
        self.error = None
        self._current = None

    def is_stale(self, current_version: int) -> bool:
        return self.source_version is not None and self.source_version != current_version

    def view(self, current_version: int) -> SessionView:
        return SessionView(
            kind=self.kind,
            status=self.status,
            source_version=self.source_version,
            stale=self.is_stale(current_version),
            result=self.result,
            error=self.error,
        )

    def _accepts(self, ticket: CallTicket) -> bool:
        current = self._current
        if (
            current is None
            or not self.is_pending
            or ticket.sequence != current.sequence
            or ticket.source_version != self.source_version
        ):
            logger.debug(
                "Discarding superseded completion",
                extra={
                    "kind": self.kind,
                    "ticket_version": ticket.source_version,
                    "ticket_sequence": ticket.sequence,
                    "status": self.status,
                },
            )
            return False
        return True

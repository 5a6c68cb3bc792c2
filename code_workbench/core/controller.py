from __future__ import annotations

import asyncio
import functools
import logging
from typing import Callable, Optional

from code_workbench.core.buffer import CodeBuffer
from code_workbench.core.config import WorkbenchConfig
from code_workbench.core.errors import WorkbenchError
from code_workbench.core.gate import (
    PanelVisibility,
    TriggerAvailability,
    panel_visibility,
    trigger_availability,
)
from code_workbench.core.io.load_source import SourceFile, load_source
from code_workbench.core.model import (
    OPERATION_KINDS,
    PANEL_FOR_KIND,
    OperationKind,
    Panel,
    Payload,
    SessionView,
)
from code_workbench.core.remote.client import RemoteOperationClient
from code_workbench.core.session import CallTicket, OperationSession

logger = logging.getLogger(__name__)


class WorkbenchController:
    """One code buffer plus one session per operation kind.

    Triggers must be called from a running event loop: each issues its remote
    call in a background task and returns that task (or None when nothing was
    issued). Without a loop they raise RuntimeError and leave the session
    untouched. Callers observe session state; remote failures never raise here.
    """

    def __init__(
        self,
        client: RemoteOperationClient,
        *,
        config: WorkbenchConfig | None = None,
        buffer: CodeBuffer | None = None,
    ) -> None:
        self.client = client
        self.config = config or WorkbenchConfig()
        self.buffer = buffer or CodeBuffer()
        self.language = self.config.language
        self._sessions: dict[OperationKind, OperationSession] = {}
        self._dismissed: set[Panel] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    # Buffer ----------------------------------------------------------------

    def edit(self, text: str) -> int:
        return self.buffer.edit(text)

    def load_file(self, path: str) -> SourceFile:
        """Replace the buffer with a file's text (raises SourceLoadError)."""
        source = load_source(path)
        self.buffer.edit(source.text)
        if source.language != "text":
            self.language = source.language
        return source

    # Sessions --------------------------------------------------------------

    def session(self, kind: OperationKind) -> OperationSession:
        s = self._sessions.get(kind)
        if s is None:
            s = OperationSession(kind)
            self._sessions[kind] = s
        return s

    def view(self, kind: OperationKind) -> SessionView:
        s = self._sessions.get(kind)
        if s is None:
            return SessionView(kind=kind, status="idle", source_version=None, stale=False)
        return s.view(self.buffer.version)

    def views(self) -> dict[OperationKind, SessionView]:
        return {k: self.view(k) for k in OPERATION_KINDS}

    # Triggers --------------------------------------------------------------

    def trigger_run(self) -> Optional[asyncio.Task[None]]:
        call = functools.partial(self.client.run, code=self.buffer.content)
        return self._issue("run", call)

    def trigger_optimize(self) -> Optional[asyncio.Task[None]]:
        call = functools.partial(
            self.client.optimize, code=self.buffer.content, language=self.language
        )
        return self._issue("optimize", call)

    def trigger_generate_tests(self) -> Optional[asyncio.Task[None]]:
        call = functools.partial(
            self.client.generate_tests,
            code=self.buffer.content,
            language=self.language,
            difficulty=self.config.difficulty,
        )
        return self._issue("generate-tests", call)

    def trigger_run_tests(self) -> Optional[asyncio.Task[None]]:
        gen = self._sessions.get("generate-tests")
        if gen is None or gen.status != "succeeded" or gen.is_stale(self.buffer.version):
            logger.debug(
                "run-tests not issued: generated tests missing or stale",
                extra={"buffer_version": self.buffer.version},
            )
            return None
        assert isinstance(gen.result, str)

        call = functools.partial(
            self.client.run_tests, code=self.buffer.content, test_code=gen.result
        )
        return self._issue("run-tests", call)

    async def settle(self) -> None:
        """Wait until every issued call has resolved (or been discarded)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Results ---------------------------------------------------------------

    def apply_optimized_result(self) -> bool:
        """User-confirmed apply. Returns False (and changes nothing) unless a fresh result exists."""
        s = self._sessions.get("optimize")
        if s is None or s.status != "succeeded" or s.is_stale(self.buffer.version):
            return False
        assert isinstance(s.result, str)

        version = self.buffer.apply_result(s.result)
        s.reset()
        self._dismissed.discard("optimize-result")
        logger.info("Applied optimized code", extra={"buffer_version": version})
        return True

    def discard_optimized_result(self) -> bool:
        """Close the optimize panel without touching the buffer."""
        s = self._sessions.get("optimize")
        if s is None or s.status not in ("succeeded", "failed"):
            return False
        s.reset()
        self._dismissed.discard("optimize-result")
        return True

    # Presentation ----------------------------------------------------------

    def dismiss(self, panel: Panel) -> None:
        self._dismissed.add(panel)

    def reopen(self, panel: Panel) -> None:
        self._dismissed.discard(panel)

    def visibility(self) -> PanelVisibility:
        return panel_visibility(self.views(), frozenset(self._dismissed))

    def triggers(self) -> TriggerAvailability:
        return trigger_availability(self.views())

    # Internal helpers ------------------------------------------------------

    def _issue(
        self, kind: OperationKind, call: Callable[[], Payload]
    ) -> Optional[asyncio.Task[None]]:
        loop = asyncio.get_running_loop()
        ticket = self.session(kind).trigger(self.buffer.version)
        if ticket is None:
            return None

        panel = PANEL_FOR_KIND.get(kind)
        if panel is not None:
            self._dismissed.discard(panel)

        logger.debug(
            "Issuing remote call",
            extra={"kind": kind, "buffer_version": ticket.source_version},
        )
        task = loop.create_task(self._complete(ticket, call))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _complete(self, ticket: CallTicket, call: Callable[[], Payload]) -> None:
        session = self.session(ticket.kind)
        timeout = self.config.timeout_s
        try:
            payload = await asyncio.wait_for(asyncio.to_thread(call), timeout=timeout)
        except asyncio.CancelledError:
            session.on_failure(ticket, f"{ticket.kind} was cancelled")
            raise
        except asyncio.TimeoutError:
            self._fail(session, ticket, f"{ticket.kind} timed out after {timeout:g}s")
            return
        except WorkbenchError as e:
            self._fail(session, ticket, e.message)
            return
        except Exception as e:  # noqa: BLE001
            logger.exception("Unexpected client failure", extra={"kind": ticket.kind})
            self._fail(session, ticket, f"{ticket.kind} failed: {e}")
            return

        session.on_success(ticket, payload)

    def _fail(self, session: OperationSession, ticket: CallTicket, message: str) -> None:
        if session.on_failure(ticket, message):
            logger.warning(
                "Remote call failed",
                extra={"kind": ticket.kind, "buffer_version": ticket.source_version, "error": message},
            )

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import requests
from requests import Response, Session

from code_workbench.core.config import WorkbenchConfig
from code_workbench.core.errors import MalformedResponseError, ServiceError, TransportError
from code_workbench.core.model import ModelSummary, OperationKind, RunTestsReport
from code_workbench.core.remote.contracts import (
    parse_models,
    parse_optimized_code,
    parse_run_output,
    parse_test_code,
    parse_test_results,
)

logger = logging.getLogger(__name__)

_HEADERS = {"Accept": "application/json"}


class RemoteOperationClient(Protocol):
    def run(self, *, code: str) -> str: ...

    def optimize(self, *, code: str, language: str) -> str: ...

    def generate_tests(self, *, code: str, language: str, difficulty: str) -> str: ...

    def run_tests(self, *, code: str, test_code: str) -> RunTestsReport: ...


class HttpOperationClient:
    """Blocking JSON-over-HTTP client for the code services.

    Each method issues exactly one POST and either returns the parsed payload
    or raises TransportError / ServiceError / MalformedResponseError.
    """

    def __init__(self, config: WorkbenchConfig, *, session: Session | None = None) -> None:
        self.config = config
        self._session: Session = session or requests.Session()

    # Public API ------------------------------------------------------------

    def run(self, *, code: str) -> str:
        response = self._post("run", {"code": code})
        self._ensure_ok("run", response)
        try:
            body = response.json()
        except ValueError:
            # Execution output is opaque; a plain-text body is the output itself.
            return response.text
        return parse_run_output(body)

    def optimize(self, *, code: str, language: str) -> str:
        body = {"code": code, "language": language}
        return parse_optimized_code(self._post_json("optimize", body))

    def generate_tests(self, *, code: str, language: str, difficulty: str) -> str:
        body = {"code": code, "language": language, "difficulty": difficulty}
        return parse_test_code(self._post_json("generate-tests", body))

    def run_tests(self, *, code: str, test_code: str) -> RunTestsReport:
        body = {"code": code, "test_code": test_code}
        return parse_test_results(self._post_json("run-tests", body))

    def list_models(self) -> list[ModelSummary]:
        url = self.config.url(self.config.models_path)
        try:
            response = self._session.get(url, headers=_HEADERS, timeout=self.config.timeout_s)
        except requests.RequestException as exc:
            raise _transport_error(None, url, exc) from exc
        return parse_models(self._parse_json(None, response))

    # Internal helpers ------------------------------------------------------

    def _post(self, kind: OperationKind, body: dict[str, Any]) -> Response:
        url = self.config.endpoint(kind)
        logger.debug("POST %s", url, extra={"kind": kind})
        try:
            response = self._session.post(
                url, json=body, headers=_HEADERS, timeout=self.config.timeout_s
            )
        except requests.RequestException as exc:
            raise _transport_error(kind, url, exc) from exc
        return response

    def _post_json(self, kind: OperationKind, body: dict[str, Any]) -> Any:
        return self._parse_json(kind, self._post(kind, body))

    def _parse_json(self, kind: Optional[OperationKind], response: Response) -> Any:
        self._ensure_ok(kind, response)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                code="E_MALFORMED_RESPONSE",
                message=f"invalid JSON response from {response.url}",
                kind=kind,
            ) from exc

    def _ensure_ok(self, kind: Optional[OperationKind], response: Response) -> None:
        if 200 <= response.status_code < 300:
            return
        detail: Any
        try:
            payload = response.json()
            detail = (payload.get("detail") or payload) if isinstance(payload, dict) else payload
        except ValueError:
            detail = response.text
        raise ServiceError(
            code="E_SERVICE_STATUS",
            message=f"request to {response.url} failed with status {response.status_code}: {detail!r}",
            status=response.status_code,
            kind=kind,
        )


def _transport_error(
    kind: Optional[OperationKind], url: str, exc: requests.RequestException
) -> TransportError:
    if isinstance(exc, requests.Timeout):
        return TransportError(code="E_TIMEOUT", message=f"request to {url} timed out", kind=kind)
    return TransportError(code="E_TRANSPORT", message=f"request to {url} failed: {exc}", kind=kind)

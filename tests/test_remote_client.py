from __future__ import annotations

import json

import requests
from requests import Response

from code_workbench.core.config import WorkbenchConfig
from code_workbench.core.errors import MalformedResponseError, ServiceError, TransportError
from code_workbench.core.remote.client import HttpOperationClient


def _response(url: str, status: int, body) -> Response:
    response = Response()
    response.status_code = status
    if isinstance(body, (bytes, str)):
        response._content = body.encode("utf-8") if isinstance(body, str) else body
    else:
        response._content = json.dumps(body).encode("utf-8")
    response.url = url
    return response


class _DummySession:
    def __init__(self, *, status: int = 200, body=None, exc: Exception | None = None):
        self.headers: dict[str, str] = {}
        self.post_calls: list[tuple[str, dict]] = []
        self.get_calls: list[tuple[str, dict]] = []
        self._status = status
        self._body = body if body is not None else {}
        self._exc = exc

    def post(self, url, **kwargs):  # type: ignore[override]
        self.post_calls.append((url, kwargs))
        if self._exc is not None:
            raise self._exc
        return _response(url, self._status, self._body)

    def get(self, url, **kwargs):  # type: ignore[override]
        self.get_calls.append((url, kwargs))
        if self._exc is not None:
            raise self._exc
        return _response(url, self._status, self._body)


def _client(session: _DummySession) -> HttpOperationClient:
    config = WorkbenchConfig(base_url="http://svc.local/", timeout_s=7)
    return HttpOperationClient(config, session=session)  # type: ignore[arg-type]


def test_optimize_posts_code_and_language():
    session = _DummySession(body={"optimized_code": "X"})
    assert _client(session).optimize(code="c", language="python") == "X"

    url, kwargs = session.post_calls[0]
    assert url == "http://svc.local/code/generate-optimized"
    assert kwargs["json"] == {"code": "c", "language": "python"}
    assert kwargs["timeout"] == 7


def test_generate_and_run_tests_requests():
    session = _DummySession(body={"test_code": "T"})
    assert _client(session).generate_tests(code="c", language="python", difficulty="hard") == "T"
    url, kwargs = session.post_calls[0]
    assert url.endswith("/code/generate-tests")
    assert kwargs["json"]["difficulty"] == "hard"

    session = _DummySession(body={"test_results": [{"test_name": "t1", "passed": True}]})
    report = _client(session).run_tests(code="c", test_code="T")
    assert report.summary() == "1 of 1 passed"
    assert session.post_calls[0][1]["json"] == {"code": "c", "test_code": "T"}


def test_non_2xx_maps_to_service_error():
    session = _DummySession(status=503, body={"detail": "optimizer down"})
    try:
        _client(session).optimize(code="c", language="python")
        assert False, "expected ServiceError"
    except ServiceError as e:
        assert e.code == "E_SERVICE_STATUS"
        assert e.status == 503
        assert "optimizer down" in e.message
        assert e.kind == "optimize"


def test_connection_failure_maps_to_transport_error():
    session = _DummySession(exc=requests.ConnectionError("refused"))
    try:
        _client(session).run(code="c")
        assert False, "expected TransportError"
    except TransportError as e:
        assert e.code == "E_TRANSPORT"
        assert e.kind == "run"


def test_request_timeout_maps_to_transport_timeout():
    session = _DummySession(exc=requests.Timeout("slow"))
    try:
        _client(session).run_tests(code="c", test_code="t")
        assert False, "expected TransportError"
    except TransportError as e:
        assert e.code == "E_TIMEOUT"


def test_invalid_json_is_malformed():
    session = _DummySession(body="<html>oops</html>")
    try:
        _client(session).generate_tests(code="c", language="python", difficulty="medium")
        assert False, "expected MalformedResponseError"
    except MalformedResponseError as e:
        assert e.kind == "generate-tests"


def test_list_models_uses_get():
    body = [{"id": "m", "name": "n", "provider": "p", "type": "chat", "status": "active"}]
    session = _DummySession(body=body)
    models = _client(session).list_models()
    assert [m.id for m in models] == ["m"]
    assert session.get_calls[0][0] == "http://svc.local/api/models"


def test_run_accepts_plain_text_output():
    session = _DummySession(body=b"hello world\n")
    assert _client(session).run(code="print('hello world')") == "hello world\n"


def test_run_plain_text_error_status_is_still_service_error():
    session = _DummySession(status=500, body=b"sandbox crashed")
    try:
        _client(session).run(code="c")
        assert False, "expected ServiceError"
    except ServiceError as e:
        assert e.status == 500
        assert "sandbox crashed" in e.message


def test_accept_header_sent_per_request_without_touching_session():
    session = _DummySession(body={"output": "ok"})
    client = _client(session)
    assert client.run(code="c") == "ok"
    assert session.post_calls[0][1]["headers"] == {"Accept": "application/json"}
    assert session.headers == {}

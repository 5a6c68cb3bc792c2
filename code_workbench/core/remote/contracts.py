from __future__ import annotations

import json
from typing import Any

from code_workbench.core.errors import MalformedResponseError
from code_workbench.core.model import CaseResult, ModelSummary, OperationKind, RunTestsReport


def _malformed(kind: OperationKind | None, message: str) -> MalformedResponseError:
    return MalformedResponseError(code="E_MALFORMED_RESPONSE", message=message, kind=kind)


def _require_object(obj: Any, kind: OperationKind) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise _malformed(kind, "response body must be a JSON object")
    return obj


def parse_run_output(obj: Any) -> str:
    """Execution output is opaque: prefer `output`, otherwise render the body."""
    if isinstance(obj, dict) and isinstance(obj.get("output"), str):
        return obj["output"]
    if isinstance(obj, str):
        return obj
    return json.dumps(obj, indent=2, sort_keys=True)


def parse_optimized_code(obj: Any) -> str:
    data = _require_object(obj, "optimize")
    code = data.get("optimized_code")
    if not isinstance(code, str):
        raise _malformed("optimize", "optimized_code must be a string")
    return code


def parse_test_code(obj: Any) -> str:
    data = _require_object(obj, "generate-tests")
    code = data.get("test_code")
    if not isinstance(code, str):
        raise _malformed("generate-tests", "test_code must be a string")
    return code


def parse_test_results(obj: Any) -> RunTestsReport:
    data = _require_object(obj, "run-tests")
    raw = data.get("test_results")
    if not isinstance(raw, list):
        raise _malformed("run-tests", "test_results must be a list")

    results: list[CaseResult] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise _malformed("run-tests", f"test_results[{i}] must be an object")
        passed = item.get("passed")
        if not isinstance(passed, bool):
            raise _malformed("run-tests", f"test_results[{i}].passed must be a boolean")

        name = item.get("test_name")
        if name is None:
            name = item.get("name")
        output = item.get("output")
        error = item.get("error")
        if output is not None and not isinstance(output, str):
            raise _malformed("run-tests", f"test_results[{i}].output must be a string")
        if error is not None and not isinstance(error, str):
            raise _malformed("run-tests", f"test_results[{i}].error must be a string")

        results.append(
            CaseResult(
                # Unnamed records keep their position so the report stays ordered and readable.
                name=str(name) if name is not None else f"test_{i + 1}",
                passed=passed,
                output=output,
                error=error,
            )
        )
    return RunTestsReport(results=results)


def parse_models(obj: Any) -> list[ModelSummary]:
    if not isinstance(obj, list):
        raise _malformed(None, "models listing must be a JSON array")

    out: list[ModelSummary] = []
    for i, item in enumerate(obj):
        if not isinstance(item, dict):
            raise _malformed(None, f"models[{i}] must be an object")
        missing = [k for k in ("id", "name", "provider", "type", "status") if k not in item]
        if missing:
            raise _malformed(None, f"models[{i}] missing fields: {', '.join(missing)}")
        out.append(
            ModelSummary(
                id=str(item["id"]),
                name=str(item["name"]),
                provider=str(item["provider"]),
                type=str(item["type"]),
                status=str(item["status"]),
                description=item.get("description"),
                avg_response_time=_opt_float(item.get("avg_response_time")),
                total_requests=_opt_int(item.get("total_requests")),
                success_rate=_opt_float(item.get("success_rate")),
                raw=item,
            )
        )
    return out


def _opt_float(v: Any) -> float | None:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)


def _opt_int(v: Any) -> int | None:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return int(v)

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Mapping, Optional

from code_workbench.core.model import (
    OPERATION_KINDS,
    PANEL_FOR_KIND,
    OperationKind,
    Panel,
    SessionView,
)


@dataclass(frozen=True)
class PanelVisibility:
    optimize_result: bool
    generated_tests: bool
    test_results: bool
    # Kinds whose error should be shown in place of a result.
    failed: tuple[OperationKind, ...]

    def is_visible(self, panel: Panel) -> bool:
        return {
            "optimize-result": self.optimize_result,
            "generated-tests": self.generated_tests,
            "test-results": self.test_results,
        }[panel]


@dataclass(frozen=True)
class TriggerAvailability:
    run: bool
    optimize: bool
    generate_tests: bool
    run_tests: bool

    def is_enabled(self, kind: OperationKind) -> bool:
        return {
            "run": self.run,
            "optimize": self.optimize,
            "generate-tests": self.generate_tests,
            "run-tests": self.run_tests,
        }[kind]


def _fresh_success(view: Optional[SessionView]) -> bool:
    return view is not None and view.status == "succeeded" and not view.stale


def panel_visibility(
    views: Mapping[OperationKind, SessionView],
    dismissed: AbstractSet[Panel] = frozenset(),
) -> PanelVisibility:
    """Which result panels may be shown.

    A panel is eligible while its session succeeded against the current buffer
    version and the user has not dismissed it. Missing sessions count as idle.
    """

    def eligible(kind: OperationKind) -> bool:
        return _fresh_success(views.get(kind)) and PANEL_FOR_KIND[kind] not in dismissed

    failed: list[OperationKind] = []
    for k in OPERATION_KINDS:
        v = views.get(k)
        if v is not None and v.status == "failed":
            failed.append(k)

    return PanelVisibility(
        optimize_result=eligible("optimize"),
        generated_tests=eligible("generate-tests"),
        test_results=eligible("run-tests"),
        failed=tuple(failed),
    )


def trigger_availability(views: Mapping[OperationKind, SessionView]) -> TriggerAvailability:
    def idle_enough(kind: OperationKind) -> bool:
        v = views.get(kind)
        return v is None or v.status != "pending"

    return TriggerAvailability(
        run=idle_enough("run"),
        optimize=idle_enough("optimize"),
        generate_tests=idle_enough("generate-tests"),
        run_tests=idle_enough("run-tests") and _fresh_success(views.get("generate-tests")),
    )

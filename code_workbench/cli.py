from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from code_workbench.core.config import WorkbenchConfig, resolve_config
from code_workbench.core.controller import WorkbenchController
from code_workbench.core.errors import SourceLoadError, TransportError, WorkbenchError
from code_workbench.core.model import RunTestsReport, SessionView
from code_workbench.core.remote.client import HttpOperationClient

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log remote calls to stderr"),
) -> None:
    """workbench: drive the code services (run, optimize, generate/run tests) from a file."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            force=True,
        )


ConfigFileOpt = typer.Option(None, "--config", help="Optional YAML config file")
BaseUrlOpt = typer.Option(None, "--base-url", help="Service base URL")
TimeoutOpt = typer.Option(None, "--timeout", help="Per-call timeout in seconds")
FormatOpt = typer.Option("text", "--format", help="Output format: text|json")
LanguageOpt = typer.Option(None, "--language", help="Override language hint")


@app.command("run")
def run_cmd(
    path: str = typer.Argument(..., help="Source file (.py/.js/.ts/.txt)"),
    config_file: Optional[str] = ConfigFileOpt,
    base_url: Optional[str] = BaseUrlOpt,
    timeout: Optional[float] = TimeoutOpt,
    format: str = FormatOpt,
) -> None:
    """Execute the file in the remote sandbox and print its output."""
    _check_format(format)
    wb = _workbench(path, config_file, base_url=base_url, timeout_s=timeout)

    async def drive() -> SessionView:
        wb.trigger_run()
        await wb.settle()
        return wb.view("run")

    view = asyncio.run(drive())
    _exit_if_failed(view)

    if format == "json":
        _emit_json("run", ok=True, payload={"output": view.result})
        return
    typer.echo(view.result)


@app.command("optimize")
def optimize_cmd(
    path: str = typer.Argument(..., help="Source file (.py/.js/.ts/.txt)"),
    apply: bool = typer.Option(
        False, "--apply/--no-apply", help="Apply the optimized code to the buffer"
    ),
    out: Optional[str] = typer.Option(
        None, "--out", help="Write the applied buffer here (implies --apply)"
    ),
    language: Optional[str] = LanguageOpt,
    config_file: Optional[str] = ConfigFileOpt,
    base_url: Optional[str] = BaseUrlOpt,
    timeout: Optional[float] = TimeoutOpt,
    format: str = FormatOpt,
) -> None:
    """Request an optimized version of the file; apply it with --apply or --out."""
    _check_format(format)
    wb = _workbench(path, config_file, base_url=base_url, timeout_s=timeout)
    if language:
        wb.language = language

    async def drive() -> SessionView:
        wb.trigger_optimize()
        await wb.settle()
        return wb.view("optimize")

    view = asyncio.run(drive())
    _exit_if_failed(view)
    optimized = view.result
    assert isinstance(optimized, str)

    applied = False
    if apply or out is not None:
        applied = wb.apply_optimized_result()
        if applied and out is not None:
            _write_text(out, wb.buffer.content)

    if format == "json":
        _emit_json(
            "optimize",
            ok=True,
            payload={
                "optimized_code": optimized,
                "applied": applied,
                "out": out,
                "buffer_version": wb.buffer.version,
            },
        )
        return

    typer.echo(optimized)
    if applied:
        target = f" to {out}" if out is not None else ""
        typer.echo(f"OK: applied optimized code{target} (version={wb.buffer.version})", err=True)


@app.command("generate-tests")
def generate_tests_cmd(
    path: str = typer.Argument(..., help="Source file (.py/.js/.ts/.txt)"),
    out: Optional[str] = typer.Option(None, "--out", help="Write generated tests here"),
    difficulty: Optional[str] = typer.Option(None, "--difficulty", help="easy|medium|hard"),
    language: Optional[str] = LanguageOpt,
    config_file: Optional[str] = ConfigFileOpt,
    base_url: Optional[str] = BaseUrlOpt,
    timeout: Optional[float] = TimeoutOpt,
    format: str = FormatOpt,
) -> None:
    """Generate tests for the file."""
    _check_format(format)
    wb = _workbench(
        path, config_file, base_url=base_url, timeout_s=timeout, difficulty=difficulty
    )
    if language:
        wb.language = language

    async def drive() -> SessionView:
        wb.trigger_generate_tests()
        await wb.settle()
        return wb.view("generate-tests")

    view = asyncio.run(drive())
    _exit_if_failed(view)
    assert isinstance(view.result, str)

    if out is not None:
        _write_text(out, view.result)

    if format == "json":
        _emit_json(
            "generate-tests",
            ok=True,
            payload={
                "test_code": view.result,
                "language": wb.language,
                "difficulty": wb.config.difficulty,
                "out": out,
            },
        )
        return

    if out is not None:
        typer.echo(f"OK: wrote generated tests to {out}")
        return
    typer.echo(view.result)


@app.command("run-tests")
def run_tests_cmd(
    path: str = typer.Argument(..., help="Source file (.py/.js/.ts/.txt)"),
    difficulty: Optional[str] = typer.Option(None, "--difficulty", help="easy|medium|hard"),
    language: Optional[str] = LanguageOpt,
    config_file: Optional[str] = ConfigFileOpt,
    base_url: Optional[str] = BaseUrlOpt,
    timeout: Optional[float] = TimeoutOpt,
    format: str = FormatOpt,
) -> None:
    """Generate tests for the file, then run them against it."""
    _check_format(format)
    wb = _workbench(
        path, config_file, base_url=base_url, timeout_s=timeout, difficulty=difficulty
    )
    if language:
        wb.language = language

    async def drive() -> tuple[SessionView, SessionView]:
        wb.trigger_generate_tests()
        await wb.settle()
        wb.trigger_run_tests()
        await wb.settle()
        return wb.view("generate-tests"), wb.view("run-tests")

    gen_view, run_view = asyncio.run(drive())
    _exit_if_failed(gen_view)
    _exit_if_failed(run_view)
    report = run_view.result
    assert isinstance(report, RunTestsReport)

    ok = report.failed_count == 0
    if format == "json":
        _emit_json(
            "run-tests",
            ok=ok,
            exit_code=0 if ok else 2,
            payload={
                "summary": report.summary(),
                "passed": report.passed_count,
                "total": report.total,
                "results": [
                    {"name": r.name, "passed": r.passed, "output": r.output, "error": r.error}
                    for r in report.results
                ],
            },
        )
        return

    table = Table(title="workbench run-tests")
    table.add_column("Test")
    table.add_column("Passed")
    table.add_column("Detail")
    for r in report.results:
        detail = r.error or r.output or ""
        table.add_row(escape(r.name), "yes" if r.passed else "no", escape(detail))
    console.print(table)
    console.print(f"\n{report.summary()}")
    if not ok:
        raise typer.Exit(code=2)


@app.command("models")
def models_cmd(
    config_file: Optional[str] = ConfigFileOpt,
    base_url: Optional[str] = BaseUrlOpt,
    timeout: Optional[float] = TimeoutOpt,
    format: str = FormatOpt,
) -> None:
    """List models known to the service."""
    _check_format(format)
    config = _config(config_file, base_url=base_url, timeout_s=timeout)
    try:
        models = HttpOperationClient(config).list_models()
    except TransportError as e:
        _print_errors([e])
        raise typer.Exit(code=1)
    except WorkbenchError as e:
        _print_errors([e])
        raise typer.Exit(code=2)

    if format == "json":
        _emit_json("models", ok=True, payload={"models": [m.raw for m in models]})
        return

    table = Table(title=f"models ({len(models)})")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Success")
    for m in models:
        rate = f"{m.success_rate:.0f}%" if m.success_rate is not None else "-"
        table.add_row(m.id, m.name, m.provider, m.type, m.status, rate)
    console.print(table)


@app.command("config")
def config_cmd(
    config_file: Optional[str] = ConfigFileOpt,
    base_url: Optional[str] = BaseUrlOpt,
    timeout: Optional[float] = TimeoutOpt,
) -> None:
    """Print the effective configuration (file, env and options merged)."""
    config = _config(config_file, base_url=base_url, timeout_s=timeout)
    typer.echo(yaml.safe_dump(config.to_dict(), sort_keys=True).rstrip())


def _config(config_file: Optional[str], **overrides: Any) -> WorkbenchConfig:
    try:
        return resolve_config(config_file, overrides)
    except WorkbenchError as e:
        _print_errors([e])
        raise typer.Exit(code=2)


def _workbench(path: str, config_file: Optional[str], **overrides: Any) -> WorkbenchController:
    config = _config(config_file, **overrides)
    wb = WorkbenchController(HttpOperationClient(config), config=config)
    try:
        wb.load_file(path)
    except SourceLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)
    return wb


def _exit_if_failed(view: SessionView) -> None:
    if view.status == "failed":
        typer.echo(f"{view.kind}: E_OPERATION_FAILED: {view.error}", err=True)
        raise typer.Exit(code=2)
    if view.status != "succeeded":
        typer.echo(f"{view.kind}: E_OPERATION_NOT_RUN: status={view.status}", err=True)
        raise typer.Exit(code=2)


def _check_format(format: str) -> None:
    if format not in ("text", "json"):
        typer.echo(
            f"format: E_UNKNOWN_FORMAT: unknown format: {format} (choose one of: text, json)",
            err=True,
        )
        raise typer.Exit(code=2)


def _emit_json(command: str, *, ok: bool, payload: dict[str, Any], exit_code: int = 0) -> None:
    body = {"tool": "workbench", "command": command, "ok": ok, **payload}
    typer.echo(json.dumps(body, indent=2, sort_keys=True))
    if exit_code:
        raise typer.Exit(code=exit_code)


def _write_text(path: str, text: str) -> None:
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")


def _print_errors(errors: list[WorkbenchError]) -> None:
    for e in sorted(errors, key=lambda e: (e.kind or "", e.detail or "", e.code)):
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="workbench")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()

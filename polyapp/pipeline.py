"""polyapp scaffolding pipeline.

Ties the pieces together in a fixed order:

1. CHECK    -- feature graph and predicate references (nothing touched yet).
2. COLLECT  -- answers from a prompter, or resolved from a supplied mapping.
3. EXECUTE  -- features in dependency order via ``StageExecutor``.
4. REPORT   -- ``RunResult`` persisted as JSON and printed as a table.

Usage::

    polyapp                                  # interactive
    polyapp --answers preset.json -o ./work  # non-interactive
    polyapp --answers preset.json --plan     # dry run
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from rich.table import Table

from polyapp.answers import AnswerMap
from polyapp.config import Config
from polyapp.engine.executor import (
    FeatureStatus,
    PlannedFeature,
    RunMode,
    RunResult,
    StageExecutor,
    StageStatus,
)
from polyapp.engine.runtime import FileSystem, LocalFileSystem, ProcessRunner, SubprocessRunner
from polyapp.errors import CollectionCancelled, PolyAppError
from polyapp.features.builtin import default_registry
from polyapp.features.registry import FeatureRegistry
from polyapp.features.resolver import resolve_order
from polyapp.forms.definitions import base_form, build_form
from polyapp.forms.engine import FormEngine
from polyapp.forms.models import Form
from polyapp.forms.presets import Preset, PresetStore
from polyapp.forms.prompter import Prompter, RichPrompter
from polyapp.utils import (
    console,
    format_duration,
    load_json,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
    setup_logging,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130

_STATUS_STYLE = {
    FeatureStatus.COMPLETED: "green",
    FeatureStatus.SKIPPED: "dim",
    FeatureStatus.FAILED: "bold red",
    FeatureStatus.PENDING: "yellow",
    FeatureStatus.RUNNING: "yellow",
}


# ---------------------------------------------------------------------------
# Scaffolder
# ---------------------------------------------------------------------------


class Scaffolder:
    """Top-level orchestrator for one scaffolding run.

    Attributes:
        config: Run configuration.
        registry: Feature declarations.
        form: Base questions plus every feature's option group.
        fs: File-system port used for all writes, including the report.
        runner: Process runner for scripts.
    """

    def __init__(
        self,
        config: Config,
        registry: FeatureRegistry | None = None,
        base: Form | None = None,
        fs: FileSystem | None = None,
        runner: ProcessRunner | None = None,
    ) -> None:
        self.config = config
        self.registry = registry or default_registry()
        self.form = build_form(base or base_form(), self.registry)
        self.fs = fs or LocalFileSystem()
        self.runner = runner or SubprocessRunner()

    # ------------------------------------------------------------------
    # Pre-execution
    # ------------------------------------------------------------------

    def check(self) -> list[str]:
        """Validate the feature graph and every predicate; return the order.

        Raises:
            GraphError: Dangling ``depends_on`` or a dependency cycle.
            PredicateError: A predicate reads an option nobody declares.
        """
        self.registry.check_dependencies()
        order = resolve_order(self.registry)
        self.registry.check_predicates(self.form)
        return order

    @property
    def presets(self) -> PresetStore:
        return PresetStore(self.config.presets_file)

    def preset_answers(self, name: str) -> dict[str, Any]:
        """Answers saved under *name* for this form.

        Raises:
            PresetError: No such preset, or the preset file is unreadable.
        """
        return dict(self.presets.load(name, self.form.id).answers)

    def save_preset(self, name: str, answers: Mapping[str, Any]) -> Preset:
        return self.presets.save(name, self.form.id, answers)

    async def collect(self, prompter: Prompter) -> AnswerMap:
        return await FormEngine(self.form).collect(prompter)

    def resolve_answers(self, supplied: Mapping[str, Any]) -> AnswerMap:
        return FormEngine(self.form).resolve(supplied)

    def executor_for(self, answers: Mapping[str, Any]) -> StageExecutor:
        config = self.config.with_project_name(str(answers.get("projectName", "")))
        return StageExecutor(
            self.registry,
            self.fs,
            self.runner,
            config.project_dir,
            run_mode=config.run_mode,
            script_timeout=config.script_timeout,
            install_command=config.install_command,
            template_root=config.template_root,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def plan(self, answers: Mapping[str, Any]) -> list[PlannedFeature]:
        """Dry run: what would execute for *answers*, touching nothing."""
        order = self.check()
        return self.executor_for(answers).plan(answers, order)

    async def run(
        self,
        supplied: Mapping[str, Any] | None = None,
        prompter: Prompter | None = None,
    ) -> RunResult:
        """Check, collect (or resolve *supplied*), execute and report.

        Every pre-execution error is raised before the first stage runs.
        """
        order = self.check()
        if supplied is None:
            answers = await self.collect(prompter or RichPrompter())
        else:
            answers = self.resolve_answers(supplied)

        executor = self.executor_for(answers)
        logger.info("Scaffolding into %s", executor.project_dir)
        result = await executor.run(answers, order)

        if self.config.write_report:
            self.write_report(result, self.config.with_project_name(str(answers.get("projectName", ""))))
        return result

    def write_report(self, result: RunResult, config: Config) -> Path:
        path = config.report_path
        self.fs.write_text(path, json.dumps(result.to_dict(), indent=2) + "\n")
        logger.info("Run report written to %s", path)
        return path


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


def print_run_result(result: RunResult) -> None:
    table = Table(title="Features", show_header=True, header_style="bold cyan")
    table.add_column("Feature", no_wrap=True)
    table.add_column("Status")
    table.add_column("Detail")

    for feature_id in result.order:
        feature = result.features[feature_id]
        style = _STATUS_STYLE[feature.status]
        detail = ""
        if feature.error is not None:
            detail = str(feature.error).splitlines()[0]
            if feature.pending_stages:
                detail += f" (not attempted: {', '.join(feature.pending_stages)})"
        elif feature.status is FeatureStatus.COMPLETED:
            ran = [s.name for s in feature.stages if s.status is StageStatus.COMPLETED]
            detail = ", ".join(ran)
        table.add_row(feature_id, f"[{style}]{feature.status.value}[/{style}]", detail)

    console.print(table)
    print_summary_table(
        {
            "Run mode": result.run_mode.value,
            "Files written": str(len(result.written_paths)),
            "Duration": format_duration(result.duration_seconds),
        },
        title="Summary",
    )
    if result.success:
        print_success("Project scaffolded successfully.")
    else:
        print_error("Scaffolding failed. Files written before the failure were kept.")


def print_plan(planned: list[PlannedFeature]) -> None:
    table = Table(title="Plan", show_header=True, header_style="bold cyan")
    table.add_column("Feature", no_wrap=True)
    table.add_column("Active")
    table.add_column("Stages")
    for item in planned:
        if not item.active:
            active = "[dim]no[/dim]"
        elif item.pulled_in:
            active = "[yellow]yes (dependency)[/yellow]"
        else:
            active = "[green]yes[/green]"
        table.add_row(item.feature_id, active, ", ".join(item.stages))
    console.print(table)


def print_presets(presets: list[Preset]) -> None:
    if not presets:
        print_warning("No saved presets.")
        return
    table = Table(title="Presets", show_header=True, header_style="bold cyan")
    table.add_column("Name", no_wrap=True)
    table.add_column("Answers", justify="right")
    table.add_column("Updated")
    table.add_column("Description")
    for preset in presets:
        table.add_row(
            preset.name,
            str(preset.answer_count),
            preset.updated_at.strftime("%Y-%m-%d %H:%M"),
            preset.description,
        )
    console.print(table)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


async def _run_cli(
    scaffolder: Scaffolder,
    supplied: dict[str, Any] | None,
    plan_only: bool,
    save_preset: str | None = None,
) -> int:
    if plan_only:
        scaffolder.check()
        if supplied is None:
            answers = await scaffolder.collect(RichPrompter())
        else:
            answers = scaffolder.resolve_answers(supplied)
        if save_preset:
            _save_preset(scaffolder, save_preset, answers)
        print_plan(scaffolder.plan(answers))
        return EXIT_OK

    result = await scaffolder.run(supplied)
    if save_preset:
        _save_preset(scaffolder, save_preset, result.answers)
    print_run_result(result)
    return EXIT_OK if result.success else EXIT_FAILED


def _save_preset(scaffolder: Scaffolder, name: str, answers: Mapping[str, Any]) -> None:
    preset = scaffolder.save_preset(name, answers)
    print_success(f"Saved preset '{preset.name}' to {scaffolder.presets.path}")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``polyapp`` console script."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="polyapp",
        description="polyapp -- scaffold a polyglot project from selected features",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  polyapp\n"
            "  polyapp --answers answers.json -o ./work\n"
            "  polyapp --answers answers.json --plan\n"
            "  polyapp --save-preset web-only\n"
            "  polyapp --preset web-only --project-name other-app\n"
        ),
    )
    parser.add_argument("--answers", "-a", default=None, help="JSON file of answers (skips prompting)")
    parser.add_argument("--preset", default=None, help="Replay the answers saved under this preset name")
    parser.add_argument("--save-preset", default=None, help="Save this run's answers under a preset name")
    parser.add_argument("--list-presets", action="store_true", help="List saved presets and exit")
    parser.add_argument("--presets-file", default=None, help="Preset file (default: ~/.polyapp/presets.json)")
    parser.add_argument("--output", "-o", default=None, help="Parent directory of the project (default: .)")
    parser.add_argument("--project-name", default=None, help="Override the project directory name")
    parser.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Keep running independent features after one fails",
    )
    parser.add_argument("--plan", action="store_true", help="Show what would run and exit")
    parser.add_argument("--timeout", type=int, default=None, help="Per-script timeout in seconds")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    try:
        config = Config.from_env()
    except ValueError as exc:  # pydantic.ValidationError is a ValueError
        console.print(f"[bold red]Error:[/bold red] Invalid POLYAPP_* environment setting: {exc}")
        sys.exit(EXIT_FAILED)
    updates: dict[str, Any] = {}
    if args.output:
        updates["output_dir"] = Path(args.output)
    if args.project_name:
        updates["project_name"] = args.project_name
    if args.continue_on_error:
        updates["run_mode"] = RunMode.CONTINUE
    if args.timeout is not None:
        if args.timeout < 1:
            console.print(f"[bold red]Error:[/bold red] Invalid timeout: {args.timeout}")
            sys.exit(EXIT_FAILED)
        updates["script_timeout"] = args.timeout
    if args.log_file:
        updates["log_file"] = Path(args.log_file)
    if args.presets_file:
        updates["presets_file"] = Path(args.presets_file)
    if args.verbose:
        updates["log_level"] = "DEBUG"
    config = config.model_copy(update=updates)

    setup_logging(config.log_level, config.log_file)

    supplied: dict[str, Any] | None = None
    if args.answers:
        answers_path = Path(args.answers)
        if not answers_path.exists():
            console.print(f"[bold red]Error:[/bold red] Answers file not found: {answers_path}")
            sys.exit(EXIT_FAILED)
        try:
            supplied = load_json(answers_path)
        except json.JSONDecodeError as exc:
            console.print(f"[bold red]Error:[/bold red] Invalid answers file {answers_path}: {exc}")
            sys.exit(EXIT_FAILED)

    print_header("polyapp")
    scaffolder = Scaffolder(config)
    try:
        if args.list_presets:
            print_presets(scaffolder.presets.for_form(scaffolder.form.id))
            return
        if args.preset:
            # Answers from --answers override the preset key by key.
            supplied = {**scaffolder.preset_answers(args.preset), **(supplied or {})}
        code = asyncio.run(_run_cli(scaffolder, supplied, args.plan, args.save_preset))
    except CollectionCancelled:
        print_warning("Cancelled. Nothing was written.")
        sys.exit(EXIT_CANCELLED)
    except PolyAppError as exc:
        print_error(f"{type(exc).__name__}: {exc}")
        sys.exit(EXIT_FAILED)

    if code != EXIT_OK:
        sys.exit(code)


if __name__ == "__main__":
    main()

"""Stage executor: runs resolved features against the project directory.

Features run one at a time in resolver order, and so do the stages of a
feature. Within an active stage the four step kinds always run in the same
order, because each later step may rely on what the earlier ones wrote:

1. dependency merge into workspace manifests
2. scripts
3. template instantiation
4. CodeMods

Per-feature state machine::

    PENDING -> SKIPPED
    PENDING -> RUNNING -> COMPLETED | FAILED

Nothing is rolled back. Files written before a failure stay on disk, and
``RunResult.written_paths`` lists them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from polyapp.answers import AnswerMap
from polyapp.codemods.manifest import render_value
from polyapp.engine.manifest import DependencyMerger
from polyapp.engine.runtime import FileSystem, ProcessRunner
from polyapp.engine.templates import TemplateRenderer, build_context
from polyapp.errors import (
    DependencyFailedError,
    MutationError,
    PolyAppError,
    ScriptError,
    TemplateError,
)
from polyapp.features.models import Feature, ScriptSpec, Stage
from polyapp.features.registry import FeatureRegistry
from polyapp.features.resolver import active_features, resolve_order
from polyapp.predicates import evaluate

logger = logging.getLogger(__name__)

EXECUTION_ERRORS = (ScriptError, MutationError, TemplateError)


# ---------------------------------------------------------------------------
# Status enums
# ---------------------------------------------------------------------------

class FeatureStatus(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StageStatus(str, Enum):
    SKIPPED = "skipped"
    COMPLETED = "completed"
    FAILED = "failed"


class RunMode(str, Enum):
    """What happens to the remaining features after one fails."""
    FAIL_FAST = "fail-fast"
    CONTINUE = "continue"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

def _error_dict(error: PolyAppError | None) -> dict[str, Any] | None:
    if error is None:
        return None
    return {
        "type": type(error).__name__,
        "message": error.message,
        "feature": error.feature_id,
        "stage": error.stage,
        "step": error.step,
    }


@dataclass
class StageResult:
    name: str
    status: StageStatus
    error: PolyAppError | None = None
    written: list[Path] = field(default_factory=list)


@dataclass
class FeatureResult:
    """Outcome of one feature.

    ``pending_stages`` names the stages never attempted because an earlier
    stage of the same feature failed.
    """

    feature_id: str
    status: FeatureStatus = FeatureStatus.PENDING
    stages: list[StageResult] = field(default_factory=list)
    error: PolyAppError | None = None
    pending_stages: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (FeatureStatus.SKIPPED, FeatureStatus.COMPLETED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.feature_id,
            "status": self.status.value,
            "stages": [
                {"name": s.name, "status": s.status.value, "error": _error_dict(s.error)}
                for s in self.stages
            ],
            "error": _error_dict(self.error),
            "pending_stages": list(self.pending_stages),
        }


@dataclass
class RunResult:
    """Everything a caller learns about a run."""

    answers: AnswerMap
    order: list[str]
    features: dict[str, FeatureResult]
    run_mode: RunMode = RunMode.FAIL_FAST
    written_paths: list[Path] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return all(r.status is not FeatureStatus.FAILED for r in self.features.values())

    @property
    def failed(self) -> list[FeatureResult]:
        return [r for r in self.features.values() if r.status is FeatureStatus.FAILED]

    def status_of(self, feature_id: str) -> FeatureStatus:
        return self.features[feature_id].status

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "run_mode": self.run_mode.value,
            "order": list(self.order),
            "answers": self.answers.to_dict(),
            "features": [self.features[fid].to_dict() for fid in self.order],
            "written_paths": [str(p) for p in self.written_paths],
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass(frozen=True)
class PlannedFeature:
    """Dry-run decision for one feature."""

    feature_id: str
    active: bool
    pulled_in: bool = False
    stages: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# StageExecutor
# ---------------------------------------------------------------------------

class StageExecutor:
    """Executes features from a registry against one project directory.

    Args:
        registry: The feature declarations.
        fs: File-system port; every write goes through it.
        runner: Process runner for scripts and the optional install command.
        project_dir: Root of the generated project.
        run_mode: Whether a failed feature stops the run.
        script_timeout: Default per-script timeout in seconds.
        install_command: Optional command run after a dependency merge that
            changed a manifest. Its failure is logged, never fatal.
        template_root: Base directory for relative template sources.
    """

    def __init__(
        self,
        registry: FeatureRegistry,
        fs: FileSystem,
        runner: ProcessRunner,
        project_dir: Path,
        run_mode: RunMode = RunMode.FAIL_FAST,
        script_timeout: int = 600,
        install_command: str | None = None,
        template_root: str | Path | None = None,
    ) -> None:
        self.registry = registry
        self.fs = fs
        self.runner = runner
        self.project_dir = Path(project_dir)
        self.run_mode = run_mode
        self.script_timeout = script_timeout
        self.install_command = install_command
        self.merger = DependencyMerger(self.project_dir, fs)
        self.renderer = TemplateRenderer(fs, template_root)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, answers: Mapping[str, Any], order: list[str] | None = None) -> list[PlannedFeature]:
        """Activation decisions in execution order, without side effects."""
        order = order or resolve_order(self.registry)
        active = active_features(self.registry, answers)
        planned: list[PlannedFeature] = []
        for feature_id in order:
            feature = self.registry.get(feature_id)
            if feature_id not in active:
                planned.append(PlannedFeature(feature_id, active=False))
                continue
            planned.append(
                PlannedFeature(
                    feature_id,
                    active=True,
                    pulled_in=not evaluate(feature.activated_by, answers),
                    stages=tuple(s.name for s in feature.stages if evaluate(s.activated_by, answers)),
                )
            )
        return planned

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(self, answers: AnswerMap, order: list[str] | None = None) -> RunResult:
        """Run every feature in *order* (resolver order by default)."""
        start = time.monotonic()
        order = order or resolve_order(self.registry)
        active = active_features(self.registry, answers)
        enabled = [fid for fid in order if fid in active]

        result = RunResult(
            answers=answers,
            order=list(order),
            features={fid: FeatureResult(fid) for fid in order},
            run_mode=self.run_mode,
        )
        engine_args = {
            "projectName": answers.get("projectName", self.project_dir.name),
            "projectDir": str(self.project_dir),
            "enabledFeatures": enabled,
        }
        failed: set[str] = set()

        for feature_id in order:
            feature = self.registry.get(feature_id)
            feature_result = result.features[feature_id]

            if feature_id not in active:
                feature_result.status = FeatureStatus.SKIPPED
                logger.info("Skipping feature %s (not activated)", feature_id)
                continue

            failed_dependency = next((d for d in feature.depends_on if d in failed), None)
            if failed_dependency is not None:
                feature_result.status = FeatureStatus.FAILED
                feature_result.error = DependencyFailedError(feature_id, failed_dependency)
                feature_result.pending_stages = feature.stage_names()
                logger.error("%s", feature_result.error)
                failed.add(feature_id)
                continue

            await self._run_feature(feature, feature_result, answers, engine_args, result)

            if feature_result.status is FeatureStatus.FAILED:
                failed.add(feature_id)
                if self.run_mode is RunMode.FAIL_FAST:
                    logger.error("Stopping after failed feature %s", feature_id)
                    break

        result.duration_seconds = time.monotonic() - start
        return result

    async def _run_feature(
        self,
        feature: Feature,
        feature_result: FeatureResult,
        answers: AnswerMap,
        engine_args: Mapping[str, Any],
        result: RunResult,
    ) -> None:
        feature_result.status = FeatureStatus.RUNNING
        logger.info("Running feature %s", feature.id)

        for index, stage in enumerate(feature.stages):
            if not evaluate(stage.activated_by, answers):
                logger.info("Skipping stage %s/%s: %s is false", feature.id, stage.name, stage.activated_by)
                feature_result.stages.append(StageResult(stage.name, StageStatus.SKIPPED))
                continue

            stage_result = StageResult(stage.name, StageStatus.COMPLETED)
            feature_result.stages.append(stage_result)
            try:
                await self._run_stage(feature, stage, answers, engine_args, stage_result)
            except EXECUTION_ERRORS as exc:
                stage_result.status = StageStatus.FAILED
                stage_result.error = exc
                feature_result.status = FeatureStatus.FAILED
                feature_result.error = exc
                feature_result.pending_stages = [s.name for s in feature.stages[index + 1:]]
                logger.error("Feature %s failed: %s", feature.id, exc)
                return
            finally:
                result.written_paths.extend(stage_result.written)

        feature_result.status = FeatureStatus.COMPLETED
        logger.info("Completed feature %s", feature.id)

    async def _run_stage(
        self,
        feature: Feature,
        stage: Stage,
        answers: AnswerMap,
        engine_args: Mapping[str, Any],
        stage_result: StageResult,
    ) -> None:
        logger.info("Stage %s/%s", feature.id, stage.name)
        context = build_context({}, engine_args, answers)

        step = "dependencies"
        try:
            if stage.dependencies:
                await self._merge_dependencies(stage, answers, stage_result)

            for index, script in enumerate(stage.scripts):
                step = f"scripts[{index}]"
                await self._run_script(script, context)

            for index, template in enumerate(stage.templates):
                step = f"templates[{index}]"
                template_context = build_context(template.context, engine_args, answers)
                self.renderer.instantiate(template, self.project_dir, template_context, stage_result.written)

            for target, mods in stage.mods.items():
                step = f"mods[{target}]"
                rendered_target = render_value(target, context)
                if "{{" in rendered_target:
                    raise TemplateError(f"Unresolved placeholder in mod target: {target}")
                path = self.project_dir / rendered_target
                for mod in mods:
                    outcome = mod.apply(path, context, self.fs)
                    logger.info(
                        "%s on %s: %s", outcome.codemod, target, "changed" if outcome.changed else "unchanged"
                    )
                    if outcome.changed:
                        stage_result.written.append(outcome.path)
        except EXECUTION_ERRORS as exc:
            if exc.feature_id is None:
                exc.locate(feature.id, stage.name, step)
            raise

    async def _merge_dependencies(self, stage: Stage, answers: AnswerMap, stage_result: StageResult) -> None:
        outcomes = self.merger.merge(stage.dependencies, answers, stage_result.written)
        if not any(o.changed for o in outcomes) or not self.install_command:
            return
        process = await self.runner.run(self.install_command, self.project_dir, self.script_timeout)
        if not process.ok:
            logger.warning(
                "'%s' failed (exit %s), continuing: %s",
                self.install_command,
                process.returncode,
                process.stderr[:300],
            )

    async def _run_script(self, script: ScriptSpec, context: Mapping[str, Any]) -> None:
        command = self.renderer.render_string(script.command, context, origin="script command")
        working_dir = self.renderer.render_string(script.working_dir, context, origin="script directory")
        cwd = self.project_dir / working_dir
        try:
            self.fs.make_dirs(cwd)
        except OSError as exc:
            raise ScriptError(command, -1, f"Cannot create working directory {cwd}: {exc}") from exc

        logger.info("$ %s (in %s)", command, cwd)
        timeout = script.timeout or self.script_timeout
        process = await self.runner.run(command, cwd, timeout)
        if process.stdout:
            logger.debug("stdout: %s", process.stdout)
        if process.ok:
            return

        error = ScriptError(command, process.returncode, process.stderr, timed_out=process.timed_out)
        if script.best_effort:
            logger.warning("Best-effort script failed, continuing: %s", error)
            return
        raise error

"""polyapp engine -- runs resolved features against a project directory.

Quick usage::

    from polyapp.answers import AnswerMap
    from polyapp.engine import LocalFileSystem, StageExecutor, SubprocessRunner
    from polyapp.features import default_registry

    executor = StageExecutor(
        default_registry(), LocalFileSystem(), SubprocessRunner(), Path("my-app")
    )
    result = await executor.run(AnswerMap({"projectName": "my-app", ...}))
    result.success
"""

from polyapp.engine.executor import (
    FeatureResult,
    FeatureStatus,
    PlannedFeature,
    RunMode,
    RunResult,
    StageExecutor,
    StageResult,
    StageStatus,
)
from polyapp.engine.manifest import DependencyMerger
from polyapp.engine.runtime import (
    FileSystem,
    LocalFileSystem,
    MemoryFileSystem,
    ProcessResult,
    ProcessRunner,
    SubprocessRunner,
)
from polyapp.engine.templates import TemplateRenderer, build_context

__all__ = [
    "DependencyMerger",
    "FeatureResult",
    "FeatureStatus",
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
    "PlannedFeature",
    "ProcessResult",
    "ProcessRunner",
    "RunMode",
    "RunResult",
    "StageExecutor",
    "StageResult",
    "StageStatus",
    "SubprocessRunner",
    "TemplateRenderer",
    "build_context",
]

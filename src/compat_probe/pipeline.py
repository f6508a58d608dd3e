"""
The compatibility experiment pipeline.

resolve -> unpack -> promote descriptor -> mutate descriptor -> build -> extract.
Each stage runs to completion before the next one starts and any failure
aborts the remaining stages.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .archive import extract_archive
from .build_runner import BuildRunner
from .cli_config import ProbeConfig, get_config
from .coordinate import ArtifactCoordinate
from .diagnostics import CompilationDiagnostic, DiagnosticExtractor
from .error_handling import CompatProbeError, category_for, get_error_handler
from .locator import promote_descriptor
from .mutator import DescriptorMutator
from .resolver import ArtifactResolver
from .structured_logging import (
    clear_run_context,
    get_pipeline_logger,
    log_experiment_start,
    log_stage_complete,
)


@dataclass
class ExperimentResult:
    """Outcome of one experiment run."""

    diagnostics: List[CompilationDiagnostic] = field(default_factory=list)
    exit_status: Optional[int] = None
    descriptor_path: Optional[Path] = None
    workdir: Optional[Path] = None

    @property
    def build_succeeded(self) -> bool:
        return self.exit_status == 0

    def to_dict(self) -> dict:
        return {
            "workdir": str(self.workdir) if self.workdir else None,
            "descriptor_path": str(self.descriptor_path) if self.descriptor_path else None,
            "exit_status": self.exit_status,
            "build_succeeded": self.build_succeeded,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


class CompatibilityExperiment:
    """Compiles a client artifact against a new version of one of its dependencies."""

    def __init__(
        self,
        config: Optional[ProbeConfig] = None,
        resolver: Optional[ArtifactResolver] = None,
        runner: Optional[BuildRunner] = None,
        mutator: Optional[DescriptorMutator] = None,
    ):
        self.config = config or get_config()
        self.resolver = resolver or ArtifactResolver(self.config.resolver)
        self.runner = runner or BuildRunner(self.config.build)
        self.mutator = mutator or DescriptorMutator(self.config.mutation)

    def run_from_archive(
        self,
        client_archive: Path,
        group: str,
        artifact: str,
        old_version: str,
        new_version: str,
        workdir: Optional[Path] = None,
    ) -> ExperimentResult:
        """
        Run the experiment on a local client archive.

        Args:
            client_archive: The client JAR
            group: groupId of the library being upgraded
            artifact: artifactId of the library being upgraded
            old_version: Version the client was built against
            new_version: Version to compile against
            workdir: Extraction directory, defaults to the archive's name
                without extension in the current directory

        Raises:
            CompatProbeError: If any stage fails; reported once before re-raising
        """
        client_archive = Path(client_archive)
        workdir = Path(workdir) if workdir else Path(client_archive.stem)
        run_id = f"run_{int(time.time())}"
        log_experiment_start(
            run_id, str(client_archive), f"{group}:{artifact}", old_version, new_version
        )

        result = ExperimentResult(workdir=workdir)
        stage = "extract"
        try:
            extract_archive(client_archive, workdir)
            log_stage_complete(stage, source=str(client_archive), dest=str(workdir))

            stage = "promote"
            descriptor_name = self.config.build.descriptor_name
            result.descriptor_path = promote_descriptor(workdir, descriptor_name)
            log_stage_complete(stage, descriptor=str(result.descriptor_path))

            stage = "mutate"
            self.mutator.mutate_file(result.descriptor_path, group, artifact, new_version)
            log_stage_complete(stage, descriptor=str(result.descriptor_path))

            stage = "build"
            extractor = DiagnosticExtractor()
            with self.runner.start(result.descriptor_path) as build:
                result.diagnostics = extractor.extract(build.lines())
                result.exit_status = build.wait()
            log_stage_complete(
                stage,
                exit_status=result.exit_status,
                diagnostics=len(result.diagnostics),
            )
        except CompatProbeError as e:
            self._report_failure(stage, e)
            raise
        finally:
            clear_run_context()

        return result

    def run_from_coordinate(
        self,
        client: ArtifactCoordinate,
        group: str,
        artifact: str,
        old_version: str,
        new_version: str,
        workdir: Optional[Path] = None,
    ) -> ExperimentResult:
        """Resolve the client from the remote repository, then run on the local copy."""
        try:
            local = self.resolver.resolve(client)
        except CompatProbeError as e:
            self._report_failure("resolve", e)
            raise
        log_stage_complete("resolve", coordinate=str(client), path=str(local))
        return self.run_from_archive(
            local, group, artifact, old_version, new_version, workdir
        )

    def _report_failure(self, stage: str, error: CompatProbeError) -> None:
        get_pipeline_logger().error("stage_failed", stage=stage, error=str(error))
        get_error_handler().error(
            category_for(error),
            f"Experiment aborted during {stage}: {error}",
            "pipeline",
            stage,
            exception=error,
        )

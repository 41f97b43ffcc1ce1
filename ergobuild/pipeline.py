from collections.abc import Callable
import logging
from pathlib import Path
import shutil

from ergobuild.classifier import FailurePredicate, generation_succeeded, output_has_failure
from ergobuild.config import Settings
from ergobuild.conversion import ConversionPipeline
from ergobuild.process_runner import ProcessError, Runner, run_command, stream_command
from ergobuild.schemas import BuildResult, PipelineOutcome
from ergobuild.step_logic import backup_output_dir, build_report_payload, write_json


logger = logging.getLogger(__name__)


class BuildError(RuntimeError):
    stage = "build"


class SetupError(BuildError):
    stage = "setup"


class GenerationError(BuildError):
    stage = "generate"


def _tool_available(command: str) -> bool:
    if shutil.which(command):
        return True
    return Path(command).is_file()


class BuildRunner:
    def __init__(
        self,
        settings: Settings,
        *,
        runner: Runner = run_command,
        streamer: Runner = stream_command,
        is_failure: FailurePredicate = output_has_failure,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.streamer = streamer
        self.is_failure = is_failure
        self.echo = echo

    @property
    def output_dir(self) -> Path:
        return Path(self.settings.output_dir).resolve()

    def run(self, project_dir: Path) -> BuildResult:
        project_dir = project_dir.resolve()
        self.check_environment(project_dir)

        backup_path = None
        if self.settings.backup_dir:
            backup_path = backup_output_dir(self.output_dir, Path(self.settings.backup_dir))
            if backup_path:
                logger.info("previous output archived", extra={"backup_path": str(backup_path)})

        generation_output = self._generate(project_dir)
        if not generation_succeeded(generation_output):
            # Conversion must not run on a partial or failed generation.
            logger.error("generation did not report completion", extra={"project_dir": str(project_dir)})
            return self._finish("generation_failed", project_dir, generation_output, None, backup_path)

        outcome = ConversionPipeline(self.settings, runner=self.runner, is_failure=self.is_failure).run()
        status = "succeeded" if outcome.succeeded else "conversion_failed"
        logger.info(
            "conversion completed",
            extra={"total": outcome.total, "failed": len(outcome.failed_names), "status": status},
        )
        return self._finish(status, project_dir, generation_output, outcome, backup_path)

    def check_environment(self, project_dir: Path) -> None:
        if not project_dir.is_dir():
            raise SetupError(f"project directory not found: {project_dir}")
        if not _tool_available(self.settings.generator_command):
            raise SetupError(f"generator not found: {self.settings.generator_command}")
        entry_point = self.settings.generator_entry_point
        if entry_point and not Path(entry_point).is_file():
            raise SetupError(f"generator entry point not found: {entry_point}")
        if not _tool_available(self.settings.converter_command):
            raise SetupError(f"converter not found: {self.settings.converter_command}")
        if self.settings.backup_dir:
            backup_dir = Path(self.settings.backup_dir).resolve()
            if backup_dir == self.output_dir or self.output_dir in backup_dir.parents:
                raise SetupError(f"backup directory must be outside the output directory: {backup_dir}")

    def generator_args(self, project_dir: Path) -> list[str]:
        args: list[str] = []
        if self.settings.generator_entry_point:
            args.append(self.settings.generator_entry_point)
        args.extend(["-o", str(self.output_dir)])
        if self.settings.debug:
            args.append("--debug")
        if self.settings.clean:
            args.append("--clean")
        args.append(str(project_dir))
        return args

    def _generate(self, project_dir: Path) -> tuple[str, ...]:
        logger.info("running generator", extra={"project_dir": str(project_dir), "output_dir": str(self.output_dir)})
        try:
            output = self.streamer(
                self.settings.generator_command,
                self.generator_args(project_dir),
                on_line=self.echo,
            )
        except ProcessError as exc:
            raise GenerationError(str(exc)) from exc
        return output.lines

    def _finish(
        self,
        status: str,
        project_dir: Path,
        generation_output: tuple[str, ...],
        outcome: PipelineOutcome | None,
        backup_path: Path | None,
    ) -> BuildResult:
        report_path = self.output_dir / self.settings.report_name if self.settings.report_name else None
        result = BuildResult(
            status=status,
            project_dir=project_dir,
            output_dir=self.output_dir,
            generation_output=generation_output,
            outcome=outcome,
            report_path=report_path,
            backup_path=backup_path,
        )
        if report_path:
            write_json(report_path, build_report_payload(result))
        return result

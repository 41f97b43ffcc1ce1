from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
from pathlib import Path

from ergobuild.classifier import FailurePredicate, output_has_failure
from ergobuild.config import Settings
from ergobuild.process_runner import ProcessError, ProcessTimeoutError, Runner, run_command
from ergobuild.schemas import ConversionJob, JobResult, PipelineOutcome


logger = logging.getLogger(__name__)


def discover_artifacts(cases_dir: Path, artifact_ext: str) -> list[Path]:
    if not cases_dir.is_dir():
        return []
    suffix = f".{artifact_ext.lstrip('.')}"
    return sorted(path for path in cases_dir.iterdir() if path.is_file() and path.suffix == suffix)


def build_jobs(artifacts: list[Path], output_dir: Path, target_ext: str) -> list[ConversionJob]:
    extension = target_ext.lstrip(".")
    return [
        ConversionJob(
            input_path=artifact.resolve(),
            output_path=(output_dir / f"{artifact.stem}.{extension}").resolve(),
            display_name=artifact.name,
        )
        for artifact in artifacts
    ]


class ConversionPipeline:
    """Converts every generated case file into a mesh, one converter process per file.

    Jobs share nothing but the output directory, and each writes its own file, so
    they are dispatched together and joined once.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        runner: Runner = run_command,
        is_failure: FailurePredicate = output_has_failure,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.is_failure = is_failure

    @property
    def cases_dir(self) -> Path:
        return Path(self.settings.output_dir) / "cases"

    @property
    def target_dir(self) -> Path:
        return self.cases_dir / self.settings.target_subdir

    def run(self) -> PipelineOutcome:
        artifacts = discover_artifacts(self.cases_dir, self.settings.artifact_ext)
        if not artifacts:
            logger.info("no case files to convert", extra={"cases_dir": str(self.cases_dir)})
            return PipelineOutcome(total=0, failed_names=(), results=())

        self.target_dir.mkdir(parents=True, exist_ok=True)
        jobs = build_jobs(artifacts, self.target_dir, self.settings.target_ext)
        logger.info("dispatching conversion jobs", extra={"jobs": len(jobs), "target_dir": str(self.target_dir)})

        results: list[JobResult] = []
        with ThreadPoolExecutor(max_workers=len(jobs), thread_name_prefix="convert") as executor:
            futures = [executor.submit(self._execute, job) for job in jobs]
            for future in as_completed(futures):
                results.append(future.result())

        failed_names = tuple(result.display_name for result in results if result.failed)
        return PipelineOutcome(total=len(jobs), failed_names=failed_names, results=tuple(results))

    def converter_args(self, job: ConversionJob) -> list[str]:
        return [str(job.input_path), "-o", str(job.output_path), "-of", self.settings.target_format]

    def _execute(self, job: ConversionJob) -> JobResult:
        try:
            output = self.runner(
                self.settings.converter_command,
                self.converter_args(job),
                timeout=self.settings.convert_timeout_seconds,
            )
            failed = self.is_failure(output.lines)
        except ProcessTimeoutError as exc:
            logger.error("conversion timed out", extra={"artifact": job.display_name, "timeout": exc.timeout})
            return JobResult(
                display_name=job.display_name,
                raw_output=(*exc.lines, str(exc)),
                failed=True,
                output_path=job.output_path,
            )
        except ProcessError as exc:
            logger.error("conversion failed to launch", extra={"artifact": job.display_name, "error": str(exc)})
            return JobResult(
                display_name=job.display_name,
                raw_output=(str(exc),),
                failed=True,
                output_path=job.output_path,
            )
        except Exception as exc:
            logger.exception("conversion job crashed", extra={"artifact": job.display_name})
            return JobResult(
                display_name=job.display_name,
                raw_output=(f"{type(exc).__name__}: {exc}",),
                failed=True,
                output_path=job.output_path,
            )

        if failed:
            logger.warning("conversion reported failure", extra={"artifact": job.display_name})
        else:
            logger.info("conversion finished", extra={"artifact": job.display_name})
        return JobResult(
            display_name=job.display_name,
            raw_output=output.lines,
            failed=failed,
            output_path=job.output_path,
            returncode=output.returncode,
        )

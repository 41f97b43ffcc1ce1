from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ProcessOutput:
    lines: tuple[str, ...]
    returncode: int


@dataclass(frozen=True)
class ConversionJob:
    input_path: Path
    output_path: Path
    display_name: str


@dataclass(frozen=True)
class JobResult:
    display_name: str
    raw_output: tuple[str, ...]
    failed: bool
    output_path: Path | None = None
    returncode: int | None = None


@dataclass(frozen=True)
class PipelineOutcome:
    total: int
    failed_names: tuple[str, ...]
    results: tuple[JobResult, ...]

    @property
    def succeeded(self) -> bool:
        return not self.failed_names

    @property
    def failed_results(self) -> tuple[JobResult, ...]:
        return tuple(result for result in self.results if result.failed)


@dataclass(frozen=True)
class BuildResult:
    status: str
    project_dir: Path
    output_dir: Path
    generation_output: tuple[str, ...]
    outcome: PipelineOutcome | None
    report_path: Path | None
    backup_path: Path | None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

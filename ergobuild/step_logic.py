from datetime import UTC, datetime
import json
from pathlib import Path
import shutil

from ergobuild.schemas import BuildResult, PipelineOutcome


def backup_output_dir(output_dir: Path, backup_dir: Path, *, now: datetime | None = None) -> Path | None:
    if not output_dir.is_dir():
        return None

    stamp = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%SZ")
    backup_dir.mkdir(parents=True, exist_ok=True)
    base_name = backup_dir / f"{output_dir.resolve().name}-{stamp}"
    archive = shutil.make_archive(str(base_name), "zip", root_dir=output_dir)
    return Path(archive)


def build_report_payload(result: BuildResult) -> dict[str, object]:
    outcome = result.outcome
    return {
        "status": result.status,
        "project_dir": str(result.project_dir),
        "output_dir": str(result.output_dir),
        "backup_path": str(result.backup_path) if result.backup_path else None,
        "generation_output_tail": list(result.generation_output[-20:]),
        "conversion": None
        if outcome is None
        else {
            "total": outcome.total,
            "failed_names": list(outcome.failed_names),
            "jobs": [
                {
                    "name": job.display_name,
                    "failed": job.failed,
                    "output_path": str(job.output_path) if job.output_path else None,
                    "returncode": job.returncode,
                    "output": list(job.raw_output),
                }
                for job in outcome.results
            ],
        },
    }


def write_json(path: Path, payload: dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as outfile:
        json.dump(payload, outfile, indent=2, sort_keys=True)
        outfile.write("\n")


def format_generation_failure(lines: tuple[str, ...], tail: int = 10) -> str:
    shown = [line for line in lines if line.strip()][-tail:]
    if not shown:
        return "generation failed: generator produced no output"
    return "generation failed, last output:\n" + "\n".join(f"  {line}" for line in shown)


def format_failure_report(outcome: PipelineOutcome) -> str:
    blocks: list[str] = []
    for job in outcome.failed_results:
        body = "\n".join(f"  {line}" for line in job.raw_output) or "  (no output)"
        blocks.append(f"conversion failed: {job.display_name}\n{body}")
    blocks.append("failed conversions: " + ", ".join(outcome.failed_names))
    return "\n\n".join(blocks)

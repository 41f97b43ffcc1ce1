import argparse
import dataclasses
import logging
from pathlib import Path

from ergobuild.config import Settings, get_settings
from ergobuild.pipeline import BuildError, BuildRunner
from ergobuild.step_logic import format_failure_report, format_generation_failure


logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a keyboard layout and convert its cases to meshes")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="run the generator, then convert every case file")
    build_parser.add_argument("project_dir", help="directory holding the layout project")
    build_parser.add_argument("-o", "--output-dir", help="generator output directory")
    build_parser.add_argument("--debug", action="store_true", default=None, help="pass --debug to the generator")
    build_parser.add_argument("--clean", action="store_true", default=None, help="pass --clean to the generator")
    build_parser.add_argument("--timeout", type=float, help="kill a conversion after this many seconds")
    build_parser.add_argument("--backup-dir", help="archive the previous output directory here first")
    build_parser.add_argument("--no-report", action="store_true", help="do not write the JSON build report")

    return parser.parse_args()


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.output_dir:
        overrides["output_dir"] = args.output_dir
    if args.debug is not None:
        overrides["debug"] = args.debug
    if args.clean is not None:
        overrides["clean"] = args.clean
    if args.timeout is not None:
        overrides["convert_timeout_seconds"] = args.timeout
    if args.backup_dir:
        overrides["backup_dir"] = args.backup_dir
    if args.no_report:
        overrides["report_name"] = ""
    return dataclasses.replace(settings, **overrides)


def main() -> None:
    args = parse_args()
    settings = apply_overrides(get_settings(), args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    runner = BuildRunner(settings, echo=print)
    try:
        result = runner.run(Path(args.project_dir))
    except BuildError as exc:
        logger.error("build aborted", extra={"stage": exc.stage})
        print(f"status=aborted stage={exc.stage} error={exc}")
        raise SystemExit(1)

    if result.status == "generation_failed":
        print(format_generation_failure(result.generation_output))
    elif result.outcome and not result.outcome.succeeded:
        print(format_failure_report(result.outcome))

    outcome = result.outcome
    print(
        "status={status} total={total} failed={failed} report={report}".format(
            status=result.status,
            total=outcome.total if outcome else 0,
            failed=",".join(outcome.failed_names) if outcome else "",
            report=result.report_path,
        )
    )
    if not result.succeeded:
        raise SystemExit(1)


if __name__ == "__main__":
    main()

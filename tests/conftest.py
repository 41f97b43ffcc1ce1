from collections.abc import Callable
from pathlib import Path
import stat
import sys
import textwrap

import pytest

from ergobuild.config import Settings
from ergobuild.pipeline import BuildRunner


FAKE_GENERATOR = """
import shutil
import sys
from pathlib import Path

args = sys.argv[1:]
out = Path(args[args.index("-o") + 1])
project = Path(args[-1])
print("fake generator " + " ".join(args), flush=True)
cases = out / "cases"
cases.mkdir(parents=True, exist_ok=True)
for src in sorted(project.glob("*.jscad")):
    shutil.copy(src, cases / src.name)
    print("Writing " + src.name, flush=True)
trailer = project / "trailer.txt"
if trailer.exists():
    print(trailer.read_text(encoding="utf-8"), flush=True)
else:
    print("Done.", flush=True)
"""

FAKE_CONVERTER = """
import sys
from pathlib import Path

args = sys.argv[1:]
src = Path(args[0])
out = Path(args[args.index("-o") + 1])
fmt = args[args.index("-of") + 1]
text = src.read_text(encoding="utf-8")
print("Converting " + src.name + " to " + fmt, flush=True)
if "BROKEN" in text:
    print("Error: self intersecting geometry", file=sys.stderr, flush=True)
    sys.exit(0)
out.write_text("solid fake\\nendsolid fake\\n", encoding="utf-8")
print("Wrote " + out.name, flush=True)
"""


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body).lstrip(), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture()
def make_script() -> Callable[[Path, str], Path]:
    return write_script


@pytest.fixture()
def temp_workspace(tmp_path: Path) -> Path:
    (tmp_path / "project").mkdir(parents=True, exist_ok=True)
    (tmp_path / "output").mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture()
def fake_generator(temp_workspace: Path) -> Path:
    return write_script(temp_workspace / "bin" / "fake-ergogen", FAKE_GENERATOR)


@pytest.fixture()
def fake_converter(temp_workspace: Path) -> Path:
    return write_script(temp_workspace / "bin" / "fake-openjscad", FAKE_CONVERTER)


@pytest.fixture()
def test_settings(temp_workspace: Path, fake_generator: Path, fake_converter: Path) -> Settings:
    return Settings(
        app_name="ergobuild",
        log_level="INFO",
        generator_command=str(fake_generator),
        generator_entry_point=None,
        converter_command=str(fake_converter),
        output_dir=str(temp_workspace / "output"),
        artifact_ext="jscad",
        target_ext="stl",
        target_format="stla",
        target_subdir="stl",
        debug=False,
        clean=False,
        convert_timeout_seconds=None,
        backup_dir=None,
        report_name="build-report.json",
    )


@pytest.fixture()
def write_cases(test_settings: Settings) -> Callable[..., Path]:
    """Place case files where the generator would have written them."""

    def _write(contents: dict[str, str]) -> Path:
        cases_dir = Path(test_settings.output_dir) / "cases"
        cases_dir.mkdir(parents=True, exist_ok=True)
        for name, text in contents.items():
            (cases_dir / name).write_text(text, encoding="utf-8")
        return cases_dir

    return _write


@pytest.fixture()
def runner(test_settings: Settings) -> BuildRunner:
    return BuildRunner(test_settings)

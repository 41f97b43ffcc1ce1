from collections.abc import Callable, Sequence
import logging
from pathlib import Path
import subprocess

from ergobuild.schemas import ProcessOutput


logger = logging.getLogger(__name__)

Runner = Callable[..., ProcessOutput]


class ProcessError(RuntimeError):
    pass


class ProcessLaunchError(ProcessError):
    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"failed to launch {command}: {reason}")
        self.command = command
        self.reason = reason


class ProcessTimeoutError(ProcessError):
    def __init__(self, command: str, timeout: float, lines: tuple[str, ...]) -> None:
        super().__init__(f"{command} did not exit within {timeout:g}s and was killed")
        self.command = command
        self.timeout = timeout
        self.lines = lines


def _decode(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def run_command(
    command: str,
    args: Sequence[str],
    *,
    timeout: float | None = None,
    cwd: Path | None = None,
) -> ProcessOutput:
    """Run one child process to completion and capture stdout and stderr as one stream."""
    cmd = [command, *args]
    try:
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except OSError as exc:
        raise ProcessLaunchError(command, exc.strerror or str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        lines = tuple(_decode(exc.output).splitlines())
        raise ProcessTimeoutError(command, timeout or 0, lines) from exc

    return ProcessOutput(lines=tuple(proc.stdout.splitlines()), returncode=proc.returncode)


def stream_command(
    command: str,
    args: Sequence[str],
    *,
    on_line: Callable[[str], None] | None = None,
    cwd: Path | None = None,
) -> ProcessOutput:
    """Run one child process, handing each output line to ``on_line`` as it arrives."""
    cmd = [command, *args]
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except OSError as exc:
        raise ProcessLaunchError(command, exc.strerror or str(exc)) from exc

    lines: list[str] = []
    with proc:
        for raw_line in proc.stdout or ():
            line = raw_line.rstrip("\r\n")
            lines.append(line)
            if on_line:
                on_line(line)
        returncode = proc.wait()

    logger.debug("streamed process exited", extra={"command": command, "returncode": returncode})
    return ProcessOutput(lines=tuple(lines), returncode=returncode)

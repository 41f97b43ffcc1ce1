from collections.abc import Callable, Sequence


FAILURE_INDICATORS = ("Error", "Exception", "Failed", "self intersecting")
GENERATION_DONE_PREFIX = "Done."

FailurePredicate = Callable[[Sequence[str]], bool]


def output_has_failure(lines: Sequence[str]) -> bool:
    # The converter can exit 0 after printing an error, so only the text is trusted.
    return any(indicator in line for line in lines for indicator in FAILURE_INDICATORS)


def last_non_blank_line(lines: Sequence[str]) -> str | None:
    for line in reversed(lines):
        if line.strip():
            return line.strip()
    return None


def generation_succeeded(lines: Sequence[str]) -> bool:
    last_line = last_non_blank_line(lines)
    if last_line is None:
        return False
    return last_line.startswith(GENERATION_DONE_PREFIX)

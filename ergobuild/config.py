from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_name: str
    log_level: str
    generator_command: str
    generator_entry_point: str | None
    converter_command: str
    output_dir: str
    artifact_ext: str
    target_ext: str
    target_format: str
    target_subdir: str
    debug: bool
    clean: bool
    convert_timeout_seconds: float | None
    backup_dir: str | None
    report_name: str


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def get_settings() -> Settings:
    timeout = _env_optional("CONVERT_TIMEOUT_SECONDS")
    return Settings(
        app_name=os.getenv("APP_NAME", "ergobuild"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        generator_command=os.getenv("GENERATOR_COMMAND", "ergogen"),
        generator_entry_point=_env_optional("GENERATOR_ENTRY_POINT"),
        converter_command=os.getenv("CONVERTER_COMMAND", "openjscad"),
        output_dir=os.getenv("OUTPUT_DIR", "./output"),
        artifact_ext=os.getenv("ARTIFACT_EXT", "jscad"),
        target_ext=os.getenv("TARGET_EXT", "stl"),
        target_format=os.getenv("TARGET_FORMAT", "stla"),
        target_subdir=os.getenv("TARGET_SUBDIR", "stl"),
        debug=_env_flag("GENERATOR_DEBUG"),
        clean=_env_flag("GENERATOR_CLEAN"),
        convert_timeout_seconds=float(timeout) if timeout else None,
        backup_dir=_env_optional("BACKUP_DIR"),
        report_name=os.getenv("REPORT_NAME", "build-report.json"),
    )

from __future__ import annotations

import datetime as dt
import shutil
import sys
from pathlib import Path

from .errors import ConfigError


def parse_bool(value: object, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return default


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def iso_date(value: dt.date) -> str:
    return f"{value.isoformat()}T00:00:00Z"


def warn(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


def check_replace_target(output_dir: Path, source_dir: Path) -> None:
    output_resolved = output_dir.resolve()
    source_resolved = source_dir.resolve()
    if output_resolved == source_resolved:
        raise ConfigError("refusing to replace the source directory", output_dir)
    if source_resolved.is_relative_to(output_resolved):
        raise ConfigError("refusing to replace a directory that contains the source", output_dir)


def remove_tree(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)

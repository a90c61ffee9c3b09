"""File utilities shared by the config layer and the file-backed stores.

- get_app_dir: where `sso-broker init` puts config.json
- set_secure_permissions: owner-only modes for secrets and session data
- write_json_atomic: temp file + os.replace, so readers never see partial JSON
- require_file_exists / load_validated_json: config loading with readable errors
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import BaseModel, ValidationError

from sso_broker.constants import APP_NAME

T = TypeVar("T", bound=BaseModel)

__all__ = [
    "get_app_dir",
    "load_validated_json",
    "require_file_exists",
    "set_secure_permissions",
    "write_json_atomic",
]


def get_app_dir() -> Path:
    """Per-user config directory (click.get_app_dir), e.g. ~/.config/sso-broker."""
    return Path(click.get_app_dir(APP_NAME))


def set_secure_permissions(path: Path, *, is_directory: bool = False) -> None:
    """Restrict a path to its owner: 0o700 for directories, 0o600 for files.

    No-op on Windows; chmod failures are ignored.
    """
    if sys.platform == "win32":
        return

    try:
        path.chmod(0o700 if is_directory else 0o600)
    except OSError:
        pass


def write_json_atomic(path: Path, data: Any, *, indent: int | None = None) -> None:
    """Write JSON to path via a temporary sibling file and os.replace().

    The file ends up owner-only. Concurrent writers are last-write-wins.

    Args:
        path: Destination file. Its directory must exist.
        data: JSON-serializable value.
        indent: Passed to json.dump.
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent)
        set_secure_permissions(Path(tmp_name))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def require_file_exists(file_path: Path, file_type: str = "file") -> None:
    """Raise FileNotFoundError pointing at `sso-broker init` if file_path is missing."""
    if file_path.exists():
        return

    raise FileNotFoundError(
        f"{file_type.capitalize()} file not found at {file_path}.\n"
        f"Run 'sso-broker init' to create a {file_type} file."
    )


def load_validated_json(
    file_path: Path,
    model_class: type[T],
    file_type: str = "file",
    recovery_hint: str | None = None,
) -> T:
    """Read a JSON file into a pydantic model.

    Validation errors are flattened to one "  - loc: msg" line each, followed
    by recovery_hint.

    Raises:
        ValueError: Unreadable file, invalid JSON or failed validation.
    """
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_type} file {file_path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Could not read {file_type} file {file_path}: {e}") from e

    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        problems = "\n".join(
            f"  - {'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        hint = f"\n\n{recovery_hint}" if recovery_hint else ""
        raise ValueError(f"Invalid {file_type} configuration in {file_path}:\n{problems}{hint}") from e

"""Validation of the project options collected from flags and prompts.

Every validator returns ``None`` when the value is acceptable and a short
message suitable for showing next to the prompt otherwise.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from license_expression import ExpressionError, get_spdx_licensing

DEFAULT_NAME = "starterkit-app"
DEFAULT_DESCRIPTION = "New starter kit project"
DEFAULT_LICENSE = "MIT"

NAME_PATTERN = re.compile(r"([a-z0-9]+[-_]?)*[a-z0-9]", re.IGNORECASE | re.ASCII)
MAX_NAME_LENGTH = 32
MAX_DESCRIPTION_LENGTH = 64


@dataclass(frozen=True)
class ProjectOptions:
    """Project metadata and install target, fixed before any download starts."""

    name: str
    description: str
    license: str
    path: Path


@lru_cache(maxsize=1)
def _spdx_licensing():
    return get_spdx_licensing()


def validate_name(value: str) -> str | None:
    if not 1 <= len(value) <= MAX_NAME_LENGTH or "\n" in value:
        return "Between 1-32 characters only"
    if not NAME_PATTERN.fullmatch(value):
        return "Alphanumeric only. No spaces. One hyphen/underscore between words allowed."
    return None


def validate_description(value: str) -> str | None:
    if len(value) > MAX_DESCRIPTION_LENGTH or "\n" in value:
        return "Maximum of 64 characters, please."
    return None


def is_spdx_expression(value: str) -> bool:
    """Return True when ``value`` is a known SPDX license expression."""
    if not value.strip():
        return False
    try:
        info = _spdx_licensing().validate(value)
    except (ExpressionError, AttributeError):
        # Truncated expressions such as "MIT AND" can fail inside validate().
        return False
    return not info.errors and not info.invalid_symbols


def validate_license(value: str) -> str | None:
    if value.strip().lower() == "none" or is_spdx_expression(value):
        return None
    return 'Invalid license. Enter "None" if none.'


def validate_path(value: str | Path) -> str | None:
    """Check the install target, creating it when it does not exist yet."""
    path = Path(value).expanduser()
    if path.exists():
        if not path.is_dir():
            return "Path must be a folder."
        if any(path.iterdir()):
            return "Path must be a new, empty folder."
        return None
    try:
        path.mkdir(parents=True)
    except OSError:
        return "Could not create directory. Enter another path."
    return None


def default_path(name: str, cwd: Path | None = None) -> Path:
    base = cwd or Path.cwd()
    return (base / name.lower()).resolve() if name else base.resolve()


def topmost_missing(path: Path) -> Path | None:
    """Return the highest ancestor of ``path`` (or ``path`` itself) that does not exist yet."""
    path = path.expanduser().absolute()
    if path.exists():
        return None
    missing = path
    for parent in path.parents:
        if parent.exists():
            break
        missing = parent
    return missing

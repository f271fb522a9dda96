"""Best-effort notice when a newer starterkit-cli release is published."""

import json
import os
import time
from pathlib import Path

import httpx
from platformdirs import user_cache_dir

DIST_NAME = "starterkit-cli"
INDEX_URL = f"https://pypi.org/pypi/{DIST_NAME}/json"
CACHE_FILENAME = "update-check.json"
CHECK_INTERVAL = 24 * 60 * 60
DISABLE_ENV = "STARTERKIT_NO_UPDATE_CHECK"


def _version_tuple(version: str) -> tuple[int, ...] | None:
    if not isinstance(version, str):
        return None
    parts = []
    for piece in version.strip().split("."):
        if not piece.isdigit():
            return None
        parts.append(int(piece))
    return tuple(parts)


def is_newer(candidate: str, current: str) -> bool:
    new, old = _version_tuple(candidate), _version_tuple(current)
    if new is None or old is None:
        return False
    return new > old


def default_cache_dir() -> Path:
    return Path(user_cache_dir(DIST_NAME))


def _read_cache(cache_file: Path, interval: float) -> str | None:
    try:
        data = json.loads(cache_file.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    checked_at, latest = data.get("checked_at"), data.get("latest")
    if isinstance(checked_at, bool) or not isinstance(checked_at, (int, float)) or not isinstance(latest, str):
        return None
    if time.time() - checked_at > interval:
        return None
    return latest


def _write_cache(cache_file: Path, latest: str):
    cache_file.parent.mkdir(parents=True, exist_ok=True)
    cache_file.write_text(json.dumps({"checked_at": time.time(), "latest": latest}), encoding="utf-8")


def latest_version(client: httpx.Client) -> str:
    response = client.get(INDEX_URL, timeout=5, follow_redirects=True)
    response.raise_for_status()
    data = response.json()
    info = data.get("info") if isinstance(data, dict) else None
    latest = info.get("version") if isinstance(info, dict) else None
    if not isinstance(latest, str):
        raise ValueError(f"Unexpected response from {INDEX_URL}")
    return latest


def check_for_update(
    current: str,
    *,
    client: httpx.Client,
    cache_dir: Path | None = None,
    interval: float = CHECK_INTERVAL,
) -> str | None:
    """Return the newer published version, or None when up to date.

    The index is queried at most once per ``interval``; the answer is cached
    under the user cache directory.
    """
    cache_file = (cache_dir or default_cache_dir()) / CACHE_FILENAME
    latest = _read_cache(cache_file, interval)
    if latest is None:
        latest = latest_version(client)
        try:
            _write_cache(cache_file, latest)
        except OSError:
            pass
    return latest if is_newer(latest, current) else None


def update_check_enabled(stream) -> bool:
    if os.getenv(DISABLE_ENV):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())

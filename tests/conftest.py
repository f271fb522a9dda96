from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest

KIT_MANIFEST = {
    "name": "kit",
    "version": "2.0.0",
    "description": "Starter kit",
    "scripts": {"start": "node server.js", "build": "webpack"},
    "license": "MIT",
    "dependencies": {"react": "^16.0.0"},
}


def build_zip(path: Path, entries: list[tuple[str, bytes | None]]) -> Path:
    """Write a zip with the given members; ``None`` payload means directory."""
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, payload in entries:
            if payload is None:
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, payload)
    return path


@pytest.fixture
def kit_entries() -> list[tuple[str, bytes | None]]:
    return [
        ("kit-master/", None),
        ("kit-master/README.md", b"# Starter kit\n"),
        ("kit-master/package.json", json.dumps(KIT_MANIFEST, indent=2).encode()),
        ("kit-master/src/", None),
        ("kit-master/src/index.js", b"console.log('hi');\n"),
    ]


@pytest.fixture
def kit_zip(tmp_path: Path, kit_entries) -> Path:
    return build_zip(tmp_path / "kit.zip", kit_entries)


@pytest.fixture(autouse=True)
def _no_update_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STARTERKIT_NO_UPDATE_CHECK", "1")

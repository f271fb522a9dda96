import json
from pathlib import Path

from .errors import ManifestError
from .validation import ProjectOptions

MANIFEST_FILENAME = "package.json"


def patch_manifest(root: Path, options: ProjectOptions) -> dict:
    """Write the project's name, description and license into package.json.

    All other keys are kept in their original order.
    """
    manifest_path = root / MANIFEST_FILENAME
    try:
        with manifest_path.open("r", encoding="utf-8") as fh:
            manifest = json.load(fh)
    except FileNotFoundError as e:
        raise ManifestError(f"{MANIFEST_FILENAME} not found in {root}") from e
    except (ValueError, OSError) as e:
        raise ManifestError(f"Couldn't read {manifest_path}: {e}") from e

    if not isinstance(manifest, dict):
        raise ManifestError(f"{manifest_path} does not contain a JSON object")

    manifest.update(
        {
            "name": options.name,
            "description": options.description,
            "license": options.license,
        }
    )
    try:
        with manifest_path.open("w", encoding="utf-8") as fh:
            json.dump(manifest, fh, indent=2, ensure_ascii=False)
            fh.write("\n")
    except OSError as e:
        raise ManifestError(f"Couldn't write {manifest_path}: {e}") from e
    return manifest

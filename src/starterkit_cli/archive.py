"""Download the starter kit archive and materialize it into the install root."""

import shutil
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

import httpx

from .errors import ArchiveError, FetchError

ARCHIVE_URL = "https://github.com/reactql/kit/archive/master.zip"
CHUNK_SIZE = 8192


@dataclass(frozen=True)
class DownloadResult:
    url: str
    path: Path
    size: int


@dataclass(frozen=True)
class MaterializeResult:
    directories: int
    files: int
    skipped: int


@dataclass
class ArchiveEntry:
    """A single zip member, with the archive's top-level folder removed."""

    raw_name: str
    relative: str
    is_directory: bool
    _zip: zipfile.ZipFile
    _info: zipfile.ZipInfo

    def open(self):
        return self._zip.open(self._info)


def download_archive(
    url: str,
    destination: Path,
    *,
    client: httpx.Client,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> DownloadResult:
    """Stream ``url`` into ``destination``. Raises FetchError on any failure."""
    downloaded = 0
    try:
        with client.stream("GET", url, timeout=60, follow_redirects=True) as response:
            if not response.is_success:
                raise FetchError(f"Download failed with {response.status_code} for {url}")
            total_size = int(response.headers.get("content-length", 0))
            with open(destination, "wb") as f:
                for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
                    downloaded += len(chunk)
                    if on_progress:
                        on_progress(downloaded, total_size)
    except FetchError:
        _discard(destination)
        raise
    except httpx.HTTPError as e:
        _discard(destination)
        raise FetchError(f"Couldn't download {url}: {e}") from e
    except OSError as e:
        _discard(destination)
        raise FetchError(f"Couldn't write archive to {destination}: {e}") from e
    return DownloadResult(url=url, path=destination, size=downloaded)


def _discard(path: Path):
    path.unlink(missing_ok=True)


def strip_root(raw_name: str) -> str:
    """Drop the leading folder that archive hosts wrap every member in."""
    return "/".join(raw_name.split("/")[1:])


def resolve_destination(root: Path, relative: str) -> Path:
    root = root.resolve()
    target = (root / relative).resolve()
    if target != root and not target.is_relative_to(root):
        raise ArchiveError(f"Refusing to extract unsafe path outside {root}: {relative}")
    return target


def iter_entries(zip_file: zipfile.ZipFile) -> Iterator[ArchiveEntry]:
    """Yield members one at a time; payloads are read only when opened."""
    for info in zip_file.infolist():
        yield ArchiveEntry(
            raw_name=info.filename,
            relative=strip_root(info.filename),
            is_directory=info.filename.endswith("/"),
            _zip=zip_file,
            _info=info,
        )


def materialize_archive(
    archive_path: Path,
    root: Path,
    *,
    on_entry: Optional[Callable[[ArchiveEntry], None]] = None,
) -> MaterializeResult:
    if not zipfile.is_zipfile(archive_path):
        raise ArchiveError(f"Downloaded file is not a zip archive: {archive_path}")

    directories = files = skipped = 0
    try:
        zip_file = zipfile.ZipFile(archive_path)
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveError(f"Couldn't read zip file: {e}") from e

    with zip_file:
        for entry in iter_entries(zip_file):
            if not entry.relative:
                skipped += 1
                continue
            target = resolve_destination(root, entry.relative)
            if entry.is_directory:
                try:
                    target.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise ArchiveError(f"Couldn't create folder {target}: {e}") from e
                directories += 1
            else:
                _write_entry(entry, target)
                files += 1
            if on_entry:
                on_entry(entry)
    return MaterializeResult(directories=directories, files=files, skipped=skipped)


def _write_entry(entry: ArchiveEntry, target: Path):
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with entry.open() as src, open(target, "wb") as dst:
            shutil.copyfileobj(src, dst, CHUNK_SIZE)
    except (zipfile.BadZipFile, zlib.error) as e:
        raise ArchiveError(f"Couldn't read {entry.raw_name} from archive: {e}") from e
    except OSError as e:
        raise ArchiveError(f"Couldn't write {target}: {e}") from e

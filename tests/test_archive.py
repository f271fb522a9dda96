from __future__ import annotations

import inspect
import zipfile
from pathlib import Path

import httpx
import pytest

from starterkit_cli.archive import (
    download_archive,
    iter_entries,
    materialize_archive,
    resolve_destination,
    strip_root,
)
from starterkit_cli.errors import ArchiveError, FetchError

from conftest import build_zip


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_strip_root_drops_first_segment() -> None:
    assert strip_root("kit-master/README.md") == "README.md"
    assert strip_root("kit-master/src/") == "src/"
    assert strip_root("kit-master/") == ""
    assert strip_root("README.md") == ""


def test_readme_lands_at_root(tmp_path: Path) -> None:
    archive = build_zip(tmp_path / "a.zip", [("kit-master/README.md", b"hello")])
    root = tmp_path / "out"
    root.mkdir()

    result = materialize_archive(archive, root)

    assert (root / "README.md").read_bytes() == b"hello"
    assert result.files == 1


def test_directory_created_before_nested_file(tmp_path: Path) -> None:
    archive = build_zip(
        tmp_path / "a.zip",
        [("kit-master/src/", None), ("kit-master/src/index.js", b"x")],
    )
    root = tmp_path / "out"
    root.mkdir()
    seen: list[tuple[str, bool]] = []

    materialize_archive(
        archive,
        root,
        on_entry=lambda entry: seen.append((entry.relative, (root / "src").is_dir())),
    )

    assert seen == [("src/", True), ("src/index.js", True)]
    assert (root / "src" / "index.js").read_bytes() == b"x"


def test_missing_directory_entries_are_created_for_files(tmp_path: Path) -> None:
    archive = build_zip(tmp_path / "a.zip", [("kit-master/a/b/c.txt", b"deep")])
    root = tmp_path / "out"
    root.mkdir()

    materialize_archive(archive, root)

    assert (root / "a" / "b" / "c.txt").read_bytes() == b"deep"


def test_entries_with_empty_relative_path_are_skipped(tmp_path: Path) -> None:
    archive = build_zip(tmp_path / "a.zip", [("kit-master/", None), ("stray", b"x")])
    root = tmp_path / "out"
    root.mkdir()

    result = materialize_archive(archive, root)

    assert result.skipped == 2
    assert list(root.iterdir()) == []


@pytest.mark.parametrize(
    "name",
    ["kit-master/../evil.txt", "kit-master/src/../../evil.txt", "kit-master//etc/evil.txt"],
)
def test_entries_escaping_the_root_are_rejected(tmp_path: Path, name: str) -> None:
    archive = build_zip(tmp_path / "a.zip", [(name, b"x")])
    root = tmp_path / "out"
    root.mkdir()

    with pytest.raises(ArchiveError, match="unsafe path"):
        materialize_archive(archive, root)

    assert not (tmp_path / "evil.txt").exists()


def test_resolve_destination_stays_under_root(tmp_path: Path) -> None:
    assert resolve_destination(tmp_path, "src/index.js") == (tmp_path / "src" / "index.js").resolve()
    assert resolve_destination(tmp_path, "a/../b") == (tmp_path / "b").resolve()
    with pytest.raises(ArchiveError):
        resolve_destination(tmp_path, "../outside")


def test_iter_entries_is_lazy(kit_zip: Path) -> None:
    with zipfile.ZipFile(kit_zip) as zf:
        entries = iter_entries(zf)
        assert inspect.isgenerator(entries)
        first = next(entries)
        assert first.raw_name == "kit-master/"
        assert first.is_directory
        second = next(entries)
        assert second.relative == "README.md"
        with second.open() as fh:
            assert fh.read() == b"# Starter kit\n"


def test_non_zip_file_is_rejected(tmp_path: Path) -> None:
    bogus = tmp_path / "page.zip"
    bogus.write_text("<html>Not Found</html>")

    with pytest.raises(ArchiveError, match="not a zip archive"):
        materialize_archive(bogus, tmp_path)


def test_file_write_failure_is_fatal(tmp_path: Path) -> None:
    archive = build_zip(tmp_path / "a.zip", [("kit-master/src", b"file"), ("kit-master/src/x.js", b"x")])
    root = tmp_path / "out"
    root.mkdir()

    with pytest.raises(ArchiveError):
        materialize_archive(archive, root)


def test_download_streams_body_to_destination(tmp_path: Path) -> None:
    payload = b"PK" + b"\x00" * 20000
    seen: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url == "https://example.test/kit.zip"
        return httpx.Response(200, content=payload)

    destination = tmp_path / "kit.zip"
    with _client(handler) as client:
        result = download_archive(
            "https://example.test/kit.zip",
            destination,
            client=client,
            on_progress=lambda done, total: seen.append(done),
        )

    assert destination.read_bytes() == payload
    assert result.size == len(payload)
    assert seen[-1] == len(payload)


def test_download_follows_redirects(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/archive/master.zip":
            return httpx.Response(302, headers={"Location": "https://codeload.example.test/kit.zip"})
        return httpx.Response(200, content=b"zip-bytes")

    destination = tmp_path / "kit.zip"
    with _client(handler) as client:
        download_archive("https://example.test/archive/master.zip", destination, client=client)

    assert destination.read_bytes() == b"zip-bytes"


def test_download_error_status_is_fatal_and_leaves_no_file(tmp_path: Path) -> None:
    destination = tmp_path / "kit.zip"
    destination.write_bytes(b"")

    with _client(lambda request: httpx.Response(404, content=b"missing")) as client:
        with pytest.raises(FetchError, match="404"):
            download_archive("https://example.test/kit.zip", destination, client=client)

    assert not destination.exists()


def test_download_transport_error_is_fatal(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    destination = tmp_path / "kit.zip"
    with _client(handler) as client:
        with pytest.raises(FetchError, match="connection refused"):
            download_archive("https://example.test/kit.zip", destination, client=client)

    assert not destination.exists()

"""Errors raised by the scaffolding pipeline stages."""


class ScaffoldError(RuntimeError):
    """Base class for fatal pipeline failures."""

    title = "Scaffold Error"


class FetchError(ScaffoldError):
    title = "Download Error"


class ArchiveError(ScaffoldError):
    title = "Extraction Error"


class ManifestError(ScaffoldError):
    title = "Manifest Error"


class InstallerError(ScaffoldError):
    title = "Install Error"

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode

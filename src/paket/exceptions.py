"""Exception types raised by paket operations."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any


class PaketError(Exception):
    """Base exception for paket."""

    context: dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = dict(context) if context is not None else {}

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class PaketFileNotFoundError(PaketError, FileNotFoundError):
    """A required file (on disk or inside an archive) does not exist."""

    def __init__(self, path: str | Path) -> None:
        PaketError.__init__(self, f"File not found: '{path}'", context={"path": str(path)})
        self.path = str(path)


class NotAFileError(PaketError, ValueError):
    """The path exists but is not a regular file."""

    def __init__(self, path: str | Path) -> None:
        PaketError.__init__(self, f"'{path}' is not a file.", context={"path": str(path)})
        self.path = str(path)


class NotATomlFileError(PaketError, ValueError):
    """The manifest path does not carry a .toml extension."""

    def __init__(self, path: str | Path) -> None:
        PaketError.__init__(self, f"'{path}' is not a .toml file.", context={"path": str(path)})
        self.path = str(path)


class ManifestFieldMissingError(PaketError, ValueError):
    """A field or section required by the manifest is absent."""

    def __init__(self, field: str, message: str | None = None) -> None:
        PaketError.__init__(
            self,
            message or f"Field not found in Paket.toml: {field}",
            context={"field": field},
        )
        self.field = field


class ManifestParseError(PaketError, ValueError):
    """The manifest could not be decoded or holds an invalid value."""

    def __init__(self, detail: str) -> None:
        PaketError.__init__(self, f"Paket.toml parse error: {detail}", context={"detail": detail})
        self.detail = detail


class PaketIOError(PaketError, OSError):
    """Reading or writing a file failed."""

    def __init__(self, detail: str) -> None:
        PaketError.__init__(self, f"IO error: {detail}", context={"detail": detail})
        self.detail = detail


class ChecksumMismatchError(PaketError):
    """The SHA256SUM member does not match the data.tar.gz payload."""

    def __init__(self, path: str | Path, expected: str, actual: str) -> None:
        super().__init__(
            f"Checksum mismatch in '{path}': expected {expected}, got {actual}",
            context={"path": str(path), "expected": expected, "actual": actual},
        )


class LockError(PaketError):
    """The installation root lock could not be acquired."""


class PackageNotInstalledError(PaketError, LookupError):
    """No installed record exists for the requested package."""

    def __init__(self, name: str) -> None:
        PaketError.__init__(self, f"Package is not installed: '{name}'", context={"name": name})
        self.name = name


class BatchResolveError(PaketError):
    """A candidate in a batch failed; the remaining candidates were not processed."""

    def __init__(self, index: int, path: str | Path, error: Exception) -> None:
        super().__init__(
            f"Failed on '{path}' (#{index + 1}): {error}",
            context={"index": index, "path": str(path)},
        )
        self.index = index
        self.path = Path(path)
        self.error = error


__all__ = [
    "BatchResolveError",
    "ChecksumMismatchError",
    "LockError",
    "ManifestFieldMissingError",
    "ManifestParseError",
    "NotAFileError",
    "NotATomlFileError",
    "PackageNotInstalledError",
    "PaketError",
    "PaketFileNotFoundError",
    "PaketIOError",
]

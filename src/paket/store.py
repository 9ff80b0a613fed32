"""Installed package records, one .paket file per package in a per-role partition."""

import logging
from collections.abc import Iterator
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from paket.archive import read_archive_manifest
from paket.config import PaketPaths
from paket.constants import ARCHIVE_SUFFIX
from paket.exceptions import PaketIOError
from paket.models import Manifest, PackageRole

logger = logging.getLogger(__name__)


class InstalledRecord(BaseModel):
    """An installed `<name>_<version>.paket` file."""

    model_config = ConfigDict(frozen=True)

    path: Path
    role: PackageRole
    name: str
    version: str

    @classmethod
    def from_path(cls, path: Path, role: PackageRole) -> "InstalledRecord | None":
        """Split a record file name into name and version, None if it is not a record."""
        if not path.name.endswith(ARCHIVE_SUFFIX):
            return None
        stem = path.name.removesuffix(ARCHIVE_SUFFIX)
        name, sep, version = stem.rpartition("_")
        if not sep or not name or not version:
            return None
        return cls(path=path, role=role, name=name, version=version)


class InstalledStore:
    """Queries over the installed package partitions.

    Nothing is cached, every query scans the partition directory again.
    """

    def __init__(self, paths: PaketPaths):
        self.paths = paths

    def partition(self, role: PackageRole) -> Path:
        return self.paths.partition(role)

    def records(self, role: PackageRole | None = None) -> Iterator[InstalledRecord]:
        """Yield installed records of `role`, or of every role, sorted by file name."""
        roles = [role] if role is not None else list(PackageRole)
        for r in roles:
            folder = self.partition(r)
            if not folder.is_dir():
                continue
            try:
                entries = sorted(folder.iterdir(), key=lambda p: p.name)
            except OSError as e:
                raise PaketIOError(f"{folder}: {e}") from e
            for entry in entries:
                if not entry.is_file():
                    continue
                if (record := InstalledRecord.from_path(entry, r)) is not None:
                    yield record

    def exact_record(self, manifest: Manifest) -> InstalledRecord | None:
        """The record for exactly this name and version, if installed."""
        path = self.partition(manifest.role) / manifest.archive_name
        if path.is_file():
            return InstalledRecord.from_path(path, manifest.role)
        return None

    def find_record(self, name: str, role: PackageRole) -> InstalledRecord | None:
        """First installed record of `name` in the `role` partition, whatever its version."""
        prefix = f"{name}_"
        for record in self.records(role):
            if record.path.name.startswith(prefix) and record.name == name:
                logger.debug(f"Found installed {name}: {record.path.name}")
                return record
        return None

    def find_any_role(self, name: str, roles: list[PackageRole]) -> InstalledRecord | None:
        for role in roles:
            if (record := self.find_record(name, role)) is not None:
                return record
        return None

    def read_manifest(self, record: InstalledRecord) -> Manifest:
        """Manifest embedded in an installed record."""
        return read_archive_manifest(record.path)

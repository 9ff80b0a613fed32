"""Filesystem locations used by the builder, resolver and installer."""

from os import getenv
from pathlib import Path

from pydantic import BaseModel, ConfigDict, computed_field

from paket.constants import DEFAULT_ROOT, DEFAULT_TARGET_ROOT, INSTALLED_DIRNAME, LOCK_FILENAME
from paket.exceptions import PaketIOError
from paket.models import PackageRole

# one storage partition per role, under <root>/installed/
PARTITION_NAMES: dict[PackageRole, str] = {
    PackageRole.APPLICATION: "application",
    PackageRole.SCRIPT: "script",
    PackageRole.LIBRARY: "library",
    PackageRole.DEVELOPMENT_LIBRARY: "development_library",
    PackageRole.CONFIGURATION: "configuration",
    PackageRole.APPLICATION_SOURCE_CODE: "application_source_code",
    PackageRole.LIBRARY_SOURCE_CODE: "library_source_code",
}


class PaketPaths(BaseModel):
    """Installation root layout.

    Args:
        root: Base directory holding installed package records and the lock file.
        target_root: Directory that package payloads are extracted into.
    """

    model_config = ConfigDict(frozen=True)

    root: Path = DEFAULT_ROOT
    target_root: Path = DEFAULT_TARGET_ROOT

    @classmethod
    def from_env(cls) -> "PaketPaths":
        return cls(
            root=Path(getenv("PAKET_ROOT", DEFAULT_ROOT)),
            target_root=Path(getenv("PAKET_TARGET_ROOT", DEFAULT_TARGET_ROOT)),
        )

    @computed_field
    @property
    def installed_dir(self) -> Path:
        return self.root / INSTALLED_DIRNAME

    @computed_field
    @property
    def lock_path(self) -> Path:
        return self.root / LOCK_FILENAME

    def partition(self, role: PackageRole) -> Path:
        """Directory holding installed records for `role`."""
        return self.installed_dir / PARTITION_NAMES[role]

    def ensure_layout(self) -> None:
        """Create the root and every role partition if missing."""
        for role in PackageRole:
            partition = self.partition(role)
            try:
                partition.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PaketIOError(f"{partition}: {e}") from e

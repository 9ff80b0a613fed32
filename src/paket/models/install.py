"""Install-state models."""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, computed_field

from paket.models.manifest import Manifest


class PaketExistence(StrEnum):
    """How a candidate relates to what is already installed."""

    NOT_EXISTS = "not_exists"
    LOWER_VERSION_INSTALLED = "lower_version_installed"
    HIGHER_VERSION_INSTALLED = "higher_version_installed"
    SAME_VERSION_INSTALLED = "same_version_installed"

    @property
    def allows_install(self) -> bool:
        return self in (PaketExistence.NOT_EXISTS, PaketExistence.LOWER_VERSION_INSTALLED)


class DependencyStatus(BaseModel):
    """Outcome of dependency validation: valid, or not valid with a reason."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    reason: str | None = None

    @classmethod
    def valid(cls) -> "DependencyStatus":
        return cls(is_valid=True)

    @classmethod
    def not_valid(cls, reason: str) -> "DependencyStatus":
        return cls(is_valid=False, reason=reason)

    def __str__(self) -> str:
        return "valid" if self.is_valid else f"not valid: {self.reason}"


class InstallDecision(BaseModel):
    """Result of evaluating one candidate archive."""

    model_config = ConfigDict(frozen=True)

    archive: Path
    manifest: Manifest
    existence: PaketExistence
    # None when validation was skipped because the classification already blocks installing
    dependency_status: DependencyStatus | None = None

    @computed_field
    @property
    def proceed(self) -> bool:
        return (
            self.existence.allows_install
            and self.dependency_status is not None
            and self.dependency_status.is_valid
        )

    @property
    def reason(self) -> str:
        if not self.existence.allows_install:
            return self.existence.value.replace("_", " ")
        if self.dependency_status is not None and not self.dependency_status.is_valid:
            return f"dependencies {self.dependency_status}"
        return "ready"

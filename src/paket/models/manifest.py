"""Paket.toml manifest model."""

from collections.abc import Iterator
from enum import StrEnum
from typing import Annotated, Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from paket.constants import ARCHIVE_SUFFIX
from paket.version import PaketVersion

OptionalStr: TypeAlias = str | None
OptionalStrList: TypeAlias = list[str] | None
DependencyMap: TypeAlias = dict[str, str]

ANY_VERSION = "*"


class PackageRole(StrEnum):
    """Package category, decides the payload layout and the storage partition.

    `[package] type = "..."` in Paket.toml.
    """

    # compiled application, e.g. vlc
    APPLICATION = "application"
    # application in script form (python, js...), e.g. pardus-image-writer
    SCRIPT = "script"
    # shared library applications depend on, e.g. libgtk-4
    LIBRARY = "library"
    # files needed to build against a library, e.g. libgtk-4-dev
    DEVELOPMENT_LIBRARY = "development_library"
    APPLICATION_SOURCE_CODE = "application_source_code"
    LIBRARY_SOURCE_CODE = "library_source_code"
    # themes, icon sets, wallpapers, grub configs...
    CONFIGURATION = "configuration"


class DependencyKind(StrEnum):
    APPLICATION = "application"
    LIBRARY = "library"
    DEVELOPMENT = "development"


class PackageInfo(BaseModel):
    """`[package]` table."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: Annotated[str, Field(min_length=1)]
    role: PackageRole = Field(alias="type")
    version: str
    maintainers: list[str]
    description: str
    license: str
    # debian architecture names, or ["any"]
    architectures: list[str]

    homepage: OptionalStr = None
    source_repository: OptionalStr = None
    keywords: OptionalStrList = None
    # freedesktop menu categories
    categories: OptionalStrList = None

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not PaketVersion.is_valid(value):
            raise ValueError(f"'{value}' is not a valid semantic version")
        return value.strip()

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if "/" in value or value != value.strip():
            raise ValueError(f"'{value}' is not a valid package name")
        return value


class Dependencies(BaseModel):
    """`[dependencies]` table.

    Each section is either a list of names or a `name = "requirement"` table.
    Lists are normalized to a mapping with the `*` requirement.
    """

    model_config = ConfigDict(frozen=True)

    application: DependencyMap | None = None
    library: DependencyMap | None = None
    # only meaningful for source code packages
    development: DependencyMap | None = None

    @field_validator("application", "library", "development", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return {str(name): ANY_VERSION for name in value}
        if isinstance(value, dict):
            # cargo style `name = { version = ">=1.0" }`
            return {
                name: req.get("version", ANY_VERSION) if isinstance(req, dict) else req
                for name, req in value.items()
            }
        return value

    def section(self, kind: DependencyKind) -> DependencyMap:
        return getattr(self, kind.value) or {}

    def iter_declared(self) -> Iterator[tuple[DependencyKind, str, str]]:
        """Yield `(kind, name, requirement)` for every declared dependency."""
        for kind in DependencyKind:
            for name, requirement in self.section(kind).items():
                yield kind, name, requirement

    @property
    def is_empty(self) -> bool:
        return not any(self.section(kind) for kind in DependencyKind)


class ApplicationInfo(BaseModel):
    """`[application]` table, required when `type = "application"`."""

    model_config = ConfigDict(frozen=True)

    executable: str
    # must be an .svg
    icon: OptionalStr = None
    # copied to /usr/share/<name>/assets
    assets_folder: OptionalStr = None
    # generated from the manifest when not given
    desktop_file: OptionalStr = None


class ScriptInfo(BaseModel):
    """`[script]` table, required when `type = "script"`."""

    model_config = ConfigDict(frozen=True)

    executable: str
    icon: OptionalStr = None
    # copied to /usr/share/<name>/src
    sources_folder: OptionalStr = None
    assets_folder: OptionalStr = None
    desktop_file: OptionalStr = None


class Manifest(BaseModel):
    """The whole Paket.toml file."""

    model_config = ConfigDict(frozen=True)

    package: PackageInfo
    dependencies: Dependencies | None = None
    application: ApplicationInfo | None = None
    script: ScriptInfo | None = None

    @model_validator(mode="after")
    def _check_role_section(self) -> "Manifest":
        match self.package.role:
            case PackageRole.APPLICATION if self.application is None:
                raise PydanticCustomError(
                    "missing_section",
                    'type="application" pakets must have an [application] section',
                    {"section": "application"},
                )
            case PackageRole.SCRIPT if self.script is None:
                raise PydanticCustomError(
                    "missing_section",
                    'type="script" pakets must have a [script] section',
                    {"section": "script"},
                )
        return self

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def role(self) -> PackageRole:
        return self.package.role

    @property
    def version(self) -> str:
        return self.package.version

    @property
    def parsed_version(self) -> PaketVersion:
        return PaketVersion.parse(self.package.version)

    @property
    def role_specific(self) -> ApplicationInfo | ScriptInfo | None:
        match self.package.role:
            case PackageRole.APPLICATION:
                return self.application
            case PackageRole.SCRIPT:
                return self.script
            case _:
                return None

    @property
    def archive_name(self) -> str:
        """File name of this package's archive, `<name>_<version>.paket`."""
        return f"{self.package.name}_{self.package.version}{ARCHIVE_SUFFIX}"

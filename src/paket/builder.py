"""Build .paket archives from a directory holding a Paket.toml."""

import gzip
import io
import logging
import os
import tarfile
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path

from paket.archive import append_bytes, checksum_text
from paket.constants import (
    APPLICATIONS_DIR,
    ARCHIVE_SUFFIX,
    BIN_DIR,
    CHECKSUM_FILENAME,
    DATA_FILENAME,
    ICONS_DIR,
    MANIFEST_FILENAME,
    SHARE_DIR,
)
from paket.desktop import desktop_entry
from paket.exceptions import ManifestParseError, PaketIOError
from paket.manifest import check_manifest_path, parse_manifest
from paket.models import ApplicationInfo, Manifest, PackageRole, ScriptInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayloadEntry:
    """A file or directory tree copied into data.tar.gz under `arcname`."""

    source: Path
    arcname: str


@dataclass
class PayloadPlan:
    """Where every source entry goes inside data.tar.gz."""

    entries: list[PayloadEntry] = field(default_factory=list)
    # files synthesized in memory, arcname -> content
    generated: dict[str, bytes] = field(default_factory=dict)

    def add(self, source: Path, arcname: str) -> None:
        logger.debug(f"{source.name} -> {arcname}")
        self.entries.append(PayloadEntry(source, arcname))

    @property
    def arcnames(self) -> list[str]:
        return [e.arcname for e in self.entries] + list(self.generated)


@dataclass(frozen=True)
class BuildResult:
    archive_name: str
    path: Path
    manifest: Manifest
    checksum: str


def list_source_entries(folder: Path, exclude: set[str] | None = None) -> tuple[list[Path], list[Path]]:
    """Split the immediate children of `folder` into directories and regular files.

    Both lists are sorted by name. Names in `exclude` are skipped.
    """
    exclude = exclude or set()
    directories: list[Path] = []
    files: list[Path] = []
    try:
        for entry in sorted(folder.iterdir(), key=lambda p: p.name):
            if entry.name in exclude:
                continue
            if entry.is_dir():
                directories.append(entry)
            elif entry.is_file():
                files.append(entry)
    except OSError as e:
        raise PaketIOError(f"{folder}: {e}") from e
    return directories, files


def check_icon(manifest: Manifest) -> None:
    """Icons are installed into the scalable hicolor theme, so they must be SVGs."""
    info = manifest.role_specific
    if info is not None and info.icon and not info.icon.endswith(".svg"):
        raise ManifestParseError(f"'{manifest.role}.icon' property must be a .svg file")


def _place_launcher_files(
    plan: PayloadPlan,
    info: ApplicationInfo | ScriptInfo,
    files: list[Path],
) -> None:
    for f in files:
        if f.name == info.executable:
            plan.add(f, f"{BIN_DIR}/{f.name}")
        elif info.desktop_file and f.name == info.desktop_file:
            plan.add(f, f"{APPLICATIONS_DIR}/{f.name}")
        elif info.icon and f.name == info.icon:
            plan.add(f, f"{ICONS_DIR}/{f.name}")
        else:
            plan.add(f, f.name)


def plan_payload(manifest: Manifest, directories: list[Path], files: list[Path]) -> PayloadPlan:
    """Decide the data.tar.gz path of every entry according to the package role."""
    plan = PayloadPlan()
    name = manifest.name

    match manifest.role:
        case PackageRole.APPLICATION:
            app = manifest.application
            for d in directories:
                if app.assets_folder and d.name == app.assets_folder:
                    plan.add(d, f"{SHARE_DIR}/{name}/assets")
                else:
                    plan.add(d, d.name)
            _place_launcher_files(plan, app, files)
            if not app.desktop_file:
                plan.generated[f"{APPLICATIONS_DIR}/{name}.desktop"] = desktop_entry(manifest).encode()

        case PackageRole.SCRIPT:
            script = manifest.script
            for d in directories:
                if script.sources_folder and d.name == script.sources_folder:
                    plan.add(d, f"{SHARE_DIR}/{name}/src")
                elif script.assets_folder and d.name == script.assets_folder:
                    plan.add(d, f"{SHARE_DIR}/{name}/assets")
                else:
                    plan.add(d, d.name)
            _place_launcher_files(plan, script, files)

        case (
            PackageRole.CONFIGURATION
            | PackageRole.LIBRARY
            | PackageRole.DEVELOPMENT_LIBRARY
            | PackageRole.APPLICATION_SOURCE_CODE
            | PackageRole.LIBRARY_SOURCE_CODE
        ):
            for d in directories:
                plan.add(d, d.name)

    return plan


def _normalize_owner(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = "root"
    return info


def write_payload(plan: PayloadPlan, mtime: int) -> bytes:
    """Render the plan into gzip-compressed tar bytes."""
    buffer = io.BytesIO()
    with gzip.GzipFile(fileobj=buffer, mode="wb", mtime=mtime) as gz:
        with tarfile.open(fileobj=gz, mode="w", format=tarfile.GNU_FORMAT) as tar:
            for entry in plan.entries:
                tar.add(entry.source, arcname=entry.arcname, recursive=True, filter=_normalize_owner)
            for arcname, content in plan.generated.items():
                append_bytes(tar, content, arcname, mtime)
    return buffer.getvalue()


class PaketBuilder:
    """Creates `<name>_<version>.paket` archives.

    Args:
        output_dir: Directory the archive is written to. Defaults to the current directory.
    """

    def __init__(self, output_dir: Path | None = None):
        self.output_dir = Path(output_dir) if output_dir is not None else Path.cwd()

    def build(self, manifest_dir: Path) -> BuildResult:
        """Build a .paket from `manifest_dir/Paket.toml` and the files beside it.

        Args:
            manifest_dir: Directory containing Paket.toml

        Returns:
            The archive name and where it was written
        """
        manifest_dir = Path(manifest_dir)
        toml_path = manifest_dir / MANIFEST_FILENAME
        check_manifest_path(toml_path)
        # the bytes that are validated are the bytes that get embedded
        try:
            manifest_bytes = toml_path.read_bytes()
        except OSError as e:
            raise PaketIOError(f"{toml_path}: {e}") from e
        manifest = parse_manifest(manifest_bytes)
        check_icon(manifest)
        logger.info(f"Building {manifest.name} {manifest.version} ({manifest.role})")

        # build outputs lying around in the source tree are never packed
        exclude = {MANIFEST_FILENAME}
        exclude.update(p.name for p in manifest_dir.glob(f"*{ARCHIVE_SUFFIX}"))
        directories, files = list_source_entries(manifest_dir, exclude)
        logger.debug(f"Directories: {[d.name for d in directories]}, files: {[f.name for f in files]}")

        mtime = int(time.time())
        plan = plan_payload(manifest, directories, files)
        try:
            payload = write_payload(plan, mtime)
        except OSError as e:
            raise PaketIOError(f"packing {manifest_dir}: {e}") from e

        checksum = checksum_text(payload)
        archive_path = self.output_dir / manifest.archive_name
        self._write_container(archive_path, manifest_bytes, checksum.encode(), payload, mtime)
        logger.info(f"Created {archive_path} ({len(payload)} bytes of payload)")
        return BuildResult(
            archive_name=manifest.archive_name,
            path=archive_path,
            manifest=manifest,
            checksum=checksum.strip(),
        )

    def _write_container(
        self,
        archive_path: Path,
        manifest_bytes: bytes,
        checksum: bytes,
        payload: bytes,
        mtime: int,
    ) -> None:
        """Write Paket.toml, SHA256SUM and data.tar.gz, in that order, via a temp file + rename."""
        tmp_path: Path | None = None
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=self.output_dir, prefix=f".{archive_path.name}.", delete=False
            ) as f:
                tmp_path = Path(f.name)
                with tarfile.open(fileobj=f, mode="w", format=tarfile.GNU_FORMAT) as tar:
                    append_bytes(tar, manifest_bytes, MANIFEST_FILENAME, mtime)
                    append_bytes(tar, checksum, CHECKSUM_FILENAME, mtime)
                    append_bytes(tar, payload, DATA_FILENAME, mtime)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, archive_path)
            tmp_path = None
        except OSError as e:
            raise PaketIOError(f"{archive_path}: {e}") from e
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)


def build(manifest_dir: Path, output_dir: Path | None = None) -> BuildResult:
    """Build a .paket archive, see `PaketBuilder.build`."""
    return PaketBuilder(output_dir).build(manifest_dir)


__all__ = [
    "BuildResult",
    "PaketBuilder",
    "PayloadEntry",
    "PayloadPlan",
    "build",
    "check_icon",
    "list_source_entries",
    "plan_payload",
    "write_payload",
]

"""Decide whether a .paket should be installed, and install it."""

import io
import logging
import os
import shutil
import tarfile
import tempfile
from collections.abc import Iterable
from pathlib import Path

from paket.archive import list_payload, read_archive_manifest, read_member, verify_checksum
from paket.checker import DependencyChecker, InstalledDependencyChecker
from paket.config import PaketPaths
from paket.constants import DATA_FILENAME
from paket.exceptions import BatchResolveError, PackageNotInstalledError, PaketError, PaketIOError
from paket.lock import PaketLock
from paket.models import DependencyStatus, InstallDecision, Manifest, PackageRole, PaketExistence
from paket.store import InstalledStore

logger = logging.getLogger(__name__)


class InstallResolver:
    """Classifies candidate archives against the installed packages.

    Args:
        store: Installed package records to compare against.
        checker: Dependency validation, defaults to checking installed records.
    """

    def __init__(self, store: InstalledStore, checker: DependencyChecker | None = None):
        self.store = store
        self.checker = checker if checker is not None else InstalledDependencyChecker(store)

    def classify(self, manifest: Manifest) -> PaketExistence:
        """Compare `manifest` with any installed package of the same name and role."""
        if self.store.exact_record(manifest) is not None:
            return PaketExistence.SAME_VERSION_INSTALLED

        record = self.store.find_record(manifest.name, manifest.role)
        if record is None:
            return PaketExistence.NOT_EXISTS

        installed = self.store.read_manifest(record).parsed_version
        candidate = manifest.parsed_version
        if installed < candidate:
            return PaketExistence.LOWER_VERSION_INSTALLED
        if installed > candidate:
            return PaketExistence.HIGHER_VERSION_INSTALLED
        return PaketExistence.SAME_VERSION_INSTALLED

    def resolve(self, archive_path: Path) -> PaketExistence:
        """Classify the .paket at `archive_path`."""
        return self.classify(read_archive_manifest(Path(archive_path)))

    def evaluate(self, archive_path: Path) -> InstallDecision:
        """Classify a candidate and, when it may be installed, validate its dependencies."""
        archive_path = Path(archive_path)
        manifest = read_archive_manifest(archive_path)
        existence = self.classify(manifest)
        status: DependencyStatus | None = None
        if existence.allows_install:
            status = self.checker.check(manifest)
        decision = InstallDecision(
            archive=archive_path,
            manifest=manifest,
            existence=existence,
            dependency_status=status,
        )
        logger.debug(f"{manifest.name} {manifest.version}: {existence}, dependencies {status}")
        return decision

    def resolve_batch(self, archive_paths: Iterable[Path]) -> list[InstallDecision]:
        """Evaluate candidates in order, stopping at the first one that fails.

        Raises:
            BatchResolveError: wrapping the failure, with the index and path of the candidate.
        """
        decisions: list[InstallDecision] = []
        for index, path in enumerate(archive_paths):
            try:
                decisions.append(self.evaluate(path))
            except PaketError as e:
                raise BatchResolveError(index, path, e) from e
        return decisions


class Installer:
    """Installs and removes packages under a `PaketPaths` root.

    Every operation holds the root lock from the first scan to the last write.
    """

    def __init__(
        self,
        paths: PaketPaths,
        checker: DependencyChecker | None = None,
        lock_timeout: float | None = None,
    ):
        self.paths = paths
        self.store = InstalledStore(paths)
        self.resolver = InstallResolver(self.store, checker)
        self.lock_timeout = lock_timeout

    def lock(self) -> PaketLock:
        if self.lock_timeout is None:
            return PaketLock(self.paths.lock_path)
        return PaketLock(self.paths.lock_path, timeout=self.lock_timeout)

    def install(self, archive_path: Path) -> InstallDecision:
        """Install one .paket if the resolver allows it."""
        return self.install_many([archive_path])[0]

    def install_many(self, archive_paths: Iterable[Path]) -> list[InstallDecision]:
        """Install candidates in order; the first failure aborts the rest.

        Candidates the resolver refuses are skipped and reported in the returned decisions.
        """
        paths = [Path(p) for p in archive_paths]
        decisions: list[InstallDecision] = []
        with self.lock():
            self.paths.ensure_layout()
            for index, path in enumerate(paths):
                try:
                    decision = self.resolver.evaluate(path)
                    if decision.proceed:
                        self._install(decision)
                    else:
                        logger.warning(
                            f"Skipping {decision.manifest.name} {decision.manifest.version}: "
                            f"{decision.reason}"
                        )
                except PaketError as e:
                    raise BatchResolveError(index, path, e) from e
                decisions.append(decision)
        return decisions

    def _install(self, decision: InstallDecision) -> None:
        manifest = decision.manifest
        payload = verify_checksum(decision.archive)
        target = self.paths.target_root
        logger.info(f"Installing {manifest.name} {manifest.version} into {target}")

        previous = self.store.find_record(manifest.name, manifest.role)
        replacing = previous is not None and previous.path.name != manifest.archive_name
        stale: list[str] = []
        if replacing:
            # files the new version no longer ships
            shipped = set(list_payload(payload))
            stale = [n for n in list_payload(read_member(previous.path, DATA_FILENAME)) if n not in shipped]

        try:
            target.mkdir(parents=True, exist_ok=True)
            with tarfile.open(fileobj=io.BytesIO(payload), mode="r:gz") as tar:
                tar.extractall(target, filter="data")
        except (tarfile.TarError, OSError) as e:
            raise PaketIOError(f"extracting {decision.archive}: {e}") from e

        partition = self.paths.partition(manifest.role)
        self._copy_atomic(decision.archive, partition / manifest.archive_name)
        if replacing:
            logger.info(f"Replacing {previous.name} {previous.version}")
            self._delete_payload(stale)
            previous.path.unlink(missing_ok=True)

    def _copy_atomic(self, source: Path, destination: Path) -> None:
        tmp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=destination.parent, prefix=f".{destination.name}.", delete=False
            ) as f:
                tmp_path = Path(f.name)
                with source.open("rb") as src:
                    shutil.copyfileobj(src, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, destination)
            tmp_path = None
        except OSError as e:
            raise PaketIOError(f"{destination}: {e}") from e
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

    def remove(self, name: str, role: PackageRole | None = None) -> Manifest:
        """Remove an installed package's files and its record.

        Directories are only removed when they are left empty.
        """
        with self.lock():
            roles = [role] if role is not None else list(PackageRole)
            record = self.store.find_any_role(name, roles)
            if record is None:
                raise PackageNotInstalledError(name)
            manifest = self.store.read_manifest(record)
            self._delete_payload(list_payload(read_member(record.path, DATA_FILENAME)))
            record.path.unlink(missing_ok=True)
            logger.info(f"Removed {manifest.name} {manifest.version}")
            return manifest

    def _delete_payload(self, names: Iterable[str]) -> None:
        """Delete payload members from the target root.

        Directories are only removed when they are left empty. Members that
        normalize outside the target root are ignored.
        """
        target = self.paths.target_root.resolve()
        directories: list[Path] = []
        for member in names:
            path = Path(os.path.normpath(target / member))
            if not path.is_relative_to(target) or path == target:
                continue
            try:
                if path.is_dir() and not path.is_symlink():
                    directories.append(path)
                elif path.exists() or path.is_symlink():
                    path.unlink()
            except OSError as e:
                raise PaketIOError(f"{path}: {e}") from e
        # deepest first so parents empty out
        for directory in sorted(directories, key=lambda p: len(p.parts), reverse=True):
            try:
                directory.rmdir()
            except OSError:
                logger.debug(f"Keeping non-empty {directory}")

    def installed(self, role: PackageRole | None = None) -> list[Manifest]:
        """Manifests of every installed package."""
        return [self.store.read_manifest(record) for record in self.store.records(role)]

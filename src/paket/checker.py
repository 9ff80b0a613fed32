"""Dependency validation against installed packages."""

import logging
import re
from typing import Protocol

from paket.dependency import DependencyNode
from paket.exceptions import PaketError
from paket.models import ANY_VERSION, DependencyKind, DependencyStatus, Manifest, PackageRole
from paket.store import InstalledRecord, InstalledStore
from paket.version import PaketVersion

logger = logging.getLogger(__name__)

# partitions searched for each kind of declared dependency
KIND_ROLES: dict[DependencyKind, list[PackageRole]] = {
    DependencyKind.APPLICATION: [PackageRole.APPLICATION, PackageRole.SCRIPT],
    DependencyKind.LIBRARY: [PackageRole.LIBRARY],
    DependencyKind.DEVELOPMENT: [PackageRole.DEVELOPMENT_LIBRARY],
}

SOURCE_CODE_ROLES = {PackageRole.APPLICATION_SOURCE_CODE, PackageRole.LIBRARY_SOURCE_CODE}

_CLAUSE_RE = re.compile(r"^(?P<op>==|=|>=|<=|!=|>|<)?\s*(?P<version>\S+)$")


class DependencyChecker(Protocol):
    def check(self, manifest: Manifest) -> DependencyStatus: ...


def requirement_satisfied(requirement: str, version: PaketVersion) -> bool:
    """Whether `version` meets a requirement like ">=1.0.0, <2.0.0".

    `*` or an empty string accepts anything, a bare version means `==`.

    Raises:
        ValueError: if the requirement cannot be parsed.
    """
    requirement = requirement.strip()
    if requirement in ("", ANY_VERSION):
        return True
    for clause in requirement.split(","):
        parsed = _CLAUSE_RE.match(clause.strip())
        if parsed is None:
            raise ValueError(f"invalid version requirement '{requirement}'")
        wanted = PaketVersion.parse(parsed["version"])
        match parsed["op"]:
            case None | "=" | "==":
                ok = version == wanted
            case ">=":
                ok = version >= wanted
            case "<=":
                ok = version <= wanted
            case ">":
                ok = version > wanted
            case "<":
                ok = version < wanted
            case "!=":
                ok = version != wanted
            case _:
                raise ValueError(f"unknown operator in '{requirement}'")
        if not ok:
            return False
    return True


class InstalledDependencyChecker:
    """Checks that declared dependencies are installed in acceptable versions.

    The candidate's dependency tree is assembled from installed records, each
    one contributing its own declared dependencies. A dependency is not valid
    when it is missing, when its installed version does not meet the declared
    requirement, or when the same name shows up with different versions.
    """

    def __init__(self, store: InstalledStore):
        self.store = store

    def _kinds_for(self, manifest: Manifest) -> list[DependencyKind]:
        kinds = [DependencyKind.APPLICATION, DependencyKind.LIBRARY]
        if manifest.role in SOURCE_CODE_ROLES:
            kinds.append(DependencyKind.DEVELOPMENT)
        return kinds

    def _subtree(
        self,
        record: InstalledRecord,
        manifest: Manifest,
        ancestors: set[str],
        problems: list[str],
    ) -> DependencyNode:
        node = DependencyNode.new(manifest.name, manifest.parsed_version)
        if manifest.dependencies is None:
            return node
        for kind in self._kinds_for(manifest):
            for name, requirement in manifest.dependencies.section(kind).items():
                if name in ancestors:
                    continue
                child_record = self.store.find_any_role(name, KIND_ROLES[kind])
                if child_record is None:
                    problems.append(f"'{name}' needed by '{record.name}' is not installed")
                    continue
                try:
                    child_manifest = self.store.read_manifest(child_record)
                except PaketError as e:
                    problems.append(f"installed '{name}' is unreadable: {e}")
                    continue
                try:
                    if not requirement_satisfied(requirement, child_manifest.parsed_version):
                        problems.append(
                            f"'{name}' {child_manifest.version} is installed but '{record.name}' "
                            f"requires '{requirement}'"
                        )
                except ValueError as e:
                    problems.append(f"'{name}' needed by '{record.name}': {e}")
                    continue
                node.add_dependency(
                    self._subtree(child_record, child_manifest, ancestors | {name}, problems)
                )
        return node

    def check(self, manifest: Manifest) -> DependencyStatus:
        deps = manifest.dependencies
        if deps is None or deps.is_empty:
            return DependencyStatus.valid()

        problems: list[str] = []
        root = DependencyNode.new(manifest.name, manifest.parsed_version)
        for kind in self._kinds_for(manifest):
            for name, requirement in deps.section(kind).items():
                logger.debug(f"Checking {kind} dependency {name} ({requirement})")
                record = self.store.find_any_role(name, KIND_ROLES[kind])
                if record is None:
                    problems.append(f"{kind} dependency '{name}' is not installed")
                    continue
                try:
                    installed = self.store.read_manifest(record)
                except PaketError as e:
                    problems.append(f"installed '{name}' is unreadable: {e}")
                    continue
                try:
                    if not requirement_satisfied(requirement, installed.parsed_version):
                        problems.append(
                            f"'{name}' {installed.version} is installed but '{requirement}' is required"
                        )
                except ValueError as e:
                    problems.append(f"'{name}': {e}")
                    continue
                root.add_dependency(self._subtree(record, installed, {manifest.name, name}, problems))

        # a name resolves to one record per partition list, so conflicts come from one
        # name being installed under roles that different dependency kinds look in
        for name, versions in sorted(root.version_conflicts().items()):
            problems.append(f"'{name}' is required in several versions: {', '.join(sorted(versions))}")

        logger.debug(f"{manifest.name} depends on {sorted(root.list_all_dependencies())}")
        if problems:
            return DependencyStatus.not_valid("; ".join(problems))
        return DependencyStatus.valid()

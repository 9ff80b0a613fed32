"""Dependency tree of named, versioned packages."""

from collections import defaultdict
from collections.abc import Iterator
from dataclasses import dataclass, field

from paket.version import PaketVersion


@dataclass(eq=False)
class DependencyNode:
    """A package and the packages it depends on.

    Nodes own their children; trees are assembled bottom-up with
    `add_dependency`. No cycle check is done, a node must never be added
    below one of its own descendants.
    """

    name: str
    version: PaketVersion
    children: list["DependencyNode"] = field(default_factory=list)

    @classmethod
    def new(cls, name: str, version: str | PaketVersion) -> "DependencyNode":
        if isinstance(version, str):
            version = PaketVersion.parse(version)
        return cls(name=name, version=version)

    def add_dependency(self, child: "DependencyNode") -> None:
        self.children.append(child)

    def walk(self) -> Iterator["DependencyNode"]:
        """Yield every descendant depth-first, excluding this node."""
        for child in self.children:
            yield child
            yield from child.walk()

    def list_all_dependencies(self) -> set[str]:
        """Names of every descendant.

        The node's own name is not included. The same name reached through
        several branches shows up once, whatever its versions.
        """
        names: set[str] = set()
        for child in self.children:
            names.add(child.name)
            names |= child.list_all_dependencies()
        return names

    def version_conflicts(self) -> dict[str, set[str]]:
        """Descendant names reached with more than one distinct version."""
        versions: dict[str, set[PaketVersion]] = defaultdict(set)
        for node in self.walk():
            versions[node.name].add(node.version)
        return {name: {str(v) for v in found} for name, found in versions.items() if len(found) > 1}

    def __repr__(self) -> str:
        return f"DependencyNode({self.name}_{self.version}, children={len(self.children)})"

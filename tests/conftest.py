import io
import tarfile
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from paket.builder import PaketBuilder
from paket.config import PaketPaths
from paket.constants import DATA_FILENAME
from paket.archive import read_member

BASIC_TOML = """
[package]
name = "hello-world"
type = "application"
version = "0.1.0"
maintainers = ["Emin Fedar <eminfedar@gmail.com>"]
description = "Simple hello world program"
license = "MIT"
architectures = ["amd64"]

[application]
executable = "hello-world"
icon = "hello-world.svg"
"""

APPLICATION_FULL_TOML = '''
[package]
name = "hello-world"
type = "application"
version = "0.1.0"
maintainers = ["Emin Fedar <eminfedar@gmail.com>"]
description = """
Multiline description of what this package is about.
"""
license = "MIT"
architectures = ["any"]
homepage = "https://pardus.org.tr"
source_repository = "https://github.com/repo-here/if-exists"
keywords = ["package", "tags", "here"]
categories = ["Game", "Education"]

[dependencies]
application = ["python3.11", "python3-gi"]
library = ["libgtk-3-0", "libglib2.0.0", "libpango-1.0-0"]

[application]
executable = "myapp"
icon = "myapp.svg"
'''


def package_toml(
    name: str,
    version: str = "1.0.0",
    role: str = "configuration",
    extra: str = "",
    description: str = "A test package",
) -> str:
    """Render a minimal Paket.toml, `extra` is appended verbatim."""
    header = textwrap.dedent(f"""
        [package]
        name = "{name}"
        type = "{role}"
        version = "{version}"
        maintainers = ["Test <test@example.org>"]
        description = "{description}"
        license = "MIT"
        architectures = ["any"]
    """)
    return header + textwrap.dedent(extra)


@pytest.fixture
def paths(tmp_path: Path) -> PaketPaths:
    paths = PaketPaths(root=tmp_path / "root", target_root=tmp_path / "target")
    paths.ensure_layout()
    return paths


@pytest.fixture
def make_source(tmp_path: Path) -> Callable[..., Path]:
    """Create a package source directory.

    `files` maps relative paths to text content; nested paths create folders.
    """
    counter = {"n": 0}

    def _make(toml: str, files: dict[str, str] | None = None) -> Path:
        counter["n"] += 1
        src = tmp_path / f"src{counter['n']}"
        src.mkdir()
        (src / "Paket.toml").write_text(toml)
        for rel, content in (files or {}).items():
            target = src / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return src

    return _make


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out


@pytest.fixture
def make_archive(make_source, out_dir: Path) -> Callable[..., Path]:
    """Build a .paket and return its path."""

    def _make(toml: str, files: dict[str, str] | None = None) -> Path:
        return PaketBuilder(out_dir).build(make_source(toml, files)).path

    return _make


@pytest.fixture
def record(paths: PaketPaths, make_archive) -> Callable[..., Path]:
    """Place a built archive straight into the matching installed partition."""

    def _record(name: str, version: str, role: str = "configuration", extra: str = "") -> Path:
        archive = make_archive(package_toml(name, version, role, extra), {"etc/x.conf": "x"})
        partition = paths.installed_dir / role
        partition.mkdir(parents=True, exist_ok=True)
        destination = partition / archive.name
        destination.write_bytes(archive.read_bytes())
        archive.unlink()
        return destination

    return _record


def payload_names(archive: Path) -> list[str]:
    with tarfile.open(fileobj=io.BytesIO(read_member(archive, DATA_FILENAME)), mode="r:gz") as tar:
        return tar.getnames()


def payload_file(archive: Path, name: str) -> bytes:
    with tarfile.open(fileobj=io.BytesIO(read_member(archive, DATA_FILENAME)), mode="r:gz") as tar:
        handle = tar.extractfile(name)
        assert handle is not None, f"{name} is not a regular file"
        return handle.read()

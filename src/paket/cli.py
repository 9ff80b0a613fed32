"""paket command line interface."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from paket.builder import PaketBuilder
from paket.config import PaketPaths
from paket.constants import ARCHIVE_SUFFIX, DEFAULT_ROOT, DEFAULT_TARGET_ROOT
from paket.exceptions import PaketError
from paket.install import Installer, InstallResolver
from paket.lock import PaketLock
from paket.models import InstallDecision, PackageRole
from paket.store import InstalledStore

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Build .paket packages from Paket.toml and install them.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

ROOT_OPTION = typer.Option(DEFAULT_ROOT, "--root", envvar="PAKET_ROOT", help="Installation root")
TARGET_OPTION = typer.Option(
    DEFAULT_TARGET_ROOT, "--target-root", envvar="PAKET_TARGET_ROOT", help="Where payloads are extracted"
)


def _fail(e: Exception) -> typer.Exit:
    err_console.print(f"[red bold]Error:[/] {escape(str(e))}")
    return typer.Exit(code=1)


def _archive_paths(packages: list[str]) -> list[Path]:
    paths = []
    for package in packages:
        path = Path(package)
        if not package.endswith(ARCHIVE_SUFFIX) and not path.exists():
            raise PaketError(f"Installing by package name is not supported, pass a .paket file: '{package}'")
        paths.append(path)
    return paths


def _decision_table(decisions: list[InstallDecision], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Package", style="bold")
    table.add_column("Version")
    table.add_column("Role")
    table.add_column("Status")
    for decision in decisions:
        manifest = decision.manifest
        status = "[green]ok[/]" if decision.proceed else f"[yellow]{escape(decision.reason)}[/]"
        table.add_row(manifest.name, manifest.version, manifest.role.value, status)
    return table


@app.command()
def build(
    path: Path = typer.Argument(Path("."), help="Directory containing Paket.toml"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Directory to write the .paket to"),
):
    """Create a .paket package from Paket.toml."""
    try:
        result = PaketBuilder(output).build(path)
    except PaketError as e:
        raise _fail(e) from e
    console.print(f"[green]✓[/] Created [bold]{escape(str(result.path))}[/]")
    console.print(f"  sha256 {result.checksum}")


@app.command()
def install(
    packages: list[str] = typer.Argument(..., help=".paket files to install"),
    root: Path = ROOT_OPTION,
    target_root: Path = TARGET_OPTION,
):
    """Install .paket files, skipping ones already installed in the same or a newer version."""
    installer = Installer(PaketPaths(root=root, target_root=target_root))
    try:
        decisions = installer.install_many(_archive_paths(packages))
    except PaketError as e:
        raise _fail(e) from e
    console.print(_decision_table(decisions, "Install"))


@app.command()
def check(
    packages: list[str] = typer.Argument(..., help=".paket files to check"),
    root: Path = ROOT_OPTION,
):
    """Report what installing the given .paket files would do, without installing."""
    paths = PaketPaths(root=root)
    resolver = InstallResolver(InstalledStore(paths))
    try:
        with PaketLock(paths.lock_path):
            decisions = resolver.resolve_batch(_archive_paths(packages))
    except PaketError as e:
        raise _fail(e) from e
    console.print(_decision_table(decisions, "Check"))
    if not all(d.proceed for d in decisions):
        raise typer.Exit(code=2)


@app.command()
def remove(
    names: list[str] = typer.Argument(..., help="Names of installed packages"),
    root: Path = ROOT_OPTION,
    target_root: Path = TARGET_OPTION,
):
    """Remove installed packages."""
    installer = Installer(PaketPaths(root=root, target_root=target_root))
    for name in names:
        try:
            manifest = installer.remove(name)
        except PaketError as e:
            raise _fail(e) from e
        console.print(f"[green]✓[/] Removed [bold]{manifest.name}[/] {manifest.version}")


@app.command("list")
def list_installed(
    role: PackageRole | None = typer.Option(None, "--role", help="Only show this package type"),
    root: Path = ROOT_OPTION,
):
    """List installed packages."""
    installer = Installer(PaketPaths(root=root))
    try:
        manifests = installer.installed(role)
    except PaketError as e:
        raise _fail(e) from e
    table = Table(title="Installed")
    table.add_column("Package", style="bold")
    table.add_column("Version")
    table.add_column("Role")
    table.add_column("Description")
    for manifest in manifests:
        table.add_row(manifest.name, manifest.version, manifest.role.value, escape(manifest.package.description))
    console.print(table)


def main() -> None:
    """Main entry point for the paket CLI."""
    app()


if __name__ == "__main__":
    main()

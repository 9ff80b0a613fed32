"""paket: build .paket archives and decide whether they should be installed."""

import logging
from os import getenv

import typer
from rich.logging import RichHandler

logging.basicConfig(
    level=getenv("PAKET_LOG_LEVEL", "INFO").upper(),
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            rich_tracebacks=True,
            tracebacks_suppress=[typer],
        )
    ],
)

from paket.builder import BuildResult, PaketBuilder, build  # noqa: E402
from paket.config import PaketPaths  # noqa: E402
from paket.dependency import DependencyNode  # noqa: E402
from paket.install import InstallResolver, Installer  # noqa: E402
from paket.models import DependencyStatus, InstallDecision, Manifest, PackageRole, PaketExistence  # noqa: E402

__all__ = [
    "BuildResult",
    "DependencyNode",
    "DependencyStatus",
    "InstallDecision",
    "InstallResolver",
    "Installer",
    "Manifest",
    "PackageRole",
    "PaketBuilder",
    "PaketExistence",
    "PaketPaths",
    "build",
]

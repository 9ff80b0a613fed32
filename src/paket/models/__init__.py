"""Expose manifest and install-state models."""

from .install import DependencyStatus, InstallDecision, PaketExistence
from .manifest import (
    ANY_VERSION,
    ApplicationInfo,
    Dependencies,
    DependencyKind,
    Manifest,
    PackageInfo,
    PackageRole,
    ScriptInfo,
)

__all__ = [
    "ANY_VERSION",
    "ApplicationInfo",
    "Dependencies",
    "DependencyKind",
    "DependencyStatus",
    "InstallDecision",
    "Manifest",
    "PackageInfo",
    "PackageRole",
    "PaketExistence",
    "ScriptInfo",
]

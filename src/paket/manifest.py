"""Reading Paket.toml into a `Manifest`."""

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from paket.exceptions import (
    ManifestFieldMissingError,
    ManifestParseError,
    NotAFileError,
    NotATomlFileError,
    PaketFileNotFoundError,
    PaketIOError,
)
from paket.models import Manifest

logger = logging.getLogger(__name__)

_MISSING_ERROR_TYPES = {"missing", "missing_section"}


def _format_loc(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


def manifest_from_dict(data: dict[str, Any]) -> Manifest:
    """Validate decoded TOML data into a `Manifest`.

    Raises:
        ManifestFieldMissingError: a required field or role section is absent.
        ManifestParseError: a field has the wrong type or an invalid value.
    """
    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        # missing fields win, they are the most actionable
        for error in errors:
            if error["type"] in _MISSING_ERROR_TYPES:
                ctx = error.get("ctx") or {}
                field = ctx.get("section") or _format_loc(error["loc"])
                message = None if error["type"] == "missing" else error["msg"]
                raise ManifestFieldMissingError(field, message) from e
        detail = "; ".join(f"{_format_loc(err['loc']) or 'manifest'}: {err['msg']}" for err in errors)
        raise ManifestParseError(detail) from e


def parse_manifest(content: str | bytes) -> Manifest:
    """Decode Paket.toml text into a `Manifest`."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ManifestParseError(f"not valid UTF-8: {e}") from e
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ManifestParseError(str(e)) from e
    return manifest_from_dict(data)


def check_manifest_path(toml_path: Path) -> None:
    """Make sure `toml_path` is an existing regular .toml file."""
    if not toml_path.exists():
        raise PaketFileNotFoundError(toml_path)
    if not toml_path.is_file():
        raise NotAFileError(toml_path)
    if toml_path.suffix != ".toml":
        raise NotATomlFileError(toml_path)


def read_manifest(toml_path: Path) -> Manifest:
    """Read and validate a Paket.toml file.

    Args:
        toml_path: Path to the manifest file

    Returns:
        The validated manifest
    """
    toml_path = Path(toml_path)
    check_manifest_path(toml_path)
    try:
        content = toml_path.read_bytes()
    except OSError as e:
        raise PaketIOError(f"{toml_path}: {e}") from e
    manifest = parse_manifest(content)
    logger.debug(f"Read manifest for {manifest.name} {manifest.version} ({manifest.role}) from {toml_path}")
    return manifest

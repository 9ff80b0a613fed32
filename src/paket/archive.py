"""Helpers for the .paket container (an uncompressed tar) and its members."""

import hashlib
import io
import logging
import tarfile
from pathlib import Path, PurePosixPath

from paket.constants import CHECKSUM_FILENAME, DATA_FILENAME, MANIFEST_FILENAME, MEMBER_MODE
from paket.exceptions import ChecksumMismatchError, PaketFileNotFoundError, PaketIOError
from paket.manifest import parse_manifest
from paket.models import Manifest

logger = logging.getLogger(__name__)


def sha256_hex(data: bytes) -> str:
    """Return the lowercase sha256 hex digest of `data`."""
    return hashlib.sha256(data).hexdigest()


def checksum_text(data: bytes) -> str:
    """Content of the SHA256SUM member for a payload."""
    return f"{sha256_hex(data)}\n"


def bytes_tarinfo(name: str, size: int, mtime: int) -> tarfile.TarInfo:
    """TarInfo for a regular file member synthesized from memory."""
    info = tarfile.TarInfo(name=name.lstrip("/"))
    info.size = size
    info.type = tarfile.REGTYPE
    info.mtime = mtime
    info.mode = MEMBER_MODE
    return info


def append_bytes(tar: tarfile.TarFile, data: bytes, name: str, mtime: int) -> None:
    tar.addfile(bytes_tarinfo(name, len(data), mtime), io.BytesIO(data))


def _open_container(archive_path: Path) -> tarfile.TarFile:
    if not archive_path.exists():
        raise PaketFileNotFoundError(archive_path)
    try:
        return tarfile.open(archive_path, mode="r:")
    except (tarfile.TarError, OSError) as e:
        raise PaketIOError(f"{archive_path}: {e}") from e


def read_member(archive_path: Path, member_name: str) -> bytes:
    """Read a member of a .paket container by its base name.

    Raises:
        PaketFileNotFoundError: no member called `member_name` exists.
    """
    archive_path = Path(archive_path)
    with _open_container(archive_path) as tar:
        try:
            for member in tar:
                if member.isfile() and PurePosixPath(member.name).name == member_name:
                    handle = tar.extractfile(member)
                    if handle is None:
                        break
                    return handle.read()
        except (tarfile.TarError, OSError) as e:
            raise PaketIOError(f"{archive_path}: {e}") from e
    raise PaketFileNotFoundError(member_name)


def read_archive_manifest(archive_path: Path) -> Manifest:
    """Decode the Paket.toml member of a .paket container."""
    return parse_manifest(read_member(archive_path, MANIFEST_FILENAME))


def verify_checksum(archive_path: Path) -> bytes:
    """Check SHA256SUM against data.tar.gz.

    Returns:
        The verified compressed payload
    """
    archive_path = Path(archive_path)
    payload = read_member(archive_path, DATA_FILENAME)
    expected = read_member(archive_path, CHECKSUM_FILENAME).decode("ascii", errors="replace").split()
    actual = sha256_hex(payload)
    if not expected or expected[0].lower() != actual:
        raise ChecksumMismatchError(archive_path, expected[0] if expected else "", actual)
    logger.debug(f"Checksum OK for {archive_path.name}: {actual}")
    return payload


def list_payload(payload: bytes) -> list[str]:
    """Member names of a data.tar.gz payload, in archive order."""
    try:
        with tarfile.open(fileobj=io.BytesIO(payload), mode="r:gz") as tar:
            return tar.getnames()
    except (tarfile.TarError, OSError) as e:
        raise PaketIOError(f"unreadable {DATA_FILENAME}: {e}") from e

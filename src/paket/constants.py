from os import getenv
from pathlib import Path

# default locations, overridable per process through the environment
DEFAULT_ROOT = Path(getenv("PAKET_ROOT", "/var/lib/paket"))
DEFAULT_TARGET_ROOT = Path(getenv("PAKET_TARGET_ROOT", "/"))

MANIFEST_FILENAME = "Paket.toml"
CHECKSUM_FILENAME = "SHA256SUM"
DATA_FILENAME = "data.tar.gz"
ARCHIVE_SUFFIX = ".paket"

INSTALLED_DIRNAME = "installed"
LOCK_FILENAME = "lock"
LOCK_TIMEOUT = float(getenv("PAKET_LOCK_TIMEOUT", "30"))

# container members, in the order they are written
CONTAINER_MEMBERS = [MANIFEST_FILENAME, CHECKSUM_FILENAME, DATA_FILENAME]

# mode bits of members synthesized from bytes
MEMBER_MODE = 0o755

# payload placement prefixes
BIN_DIR = "usr/bin"
SHARE_DIR = "usr/share"
APPLICATIONS_DIR = "usr/share/applications"
ICONS_DIR = "usr/share/icons/hicolor/scalable/apps"

"""Generate freedesktop .desktop entries for applications without one."""

from paket.models import Manifest


def display_name(name: str) -> str:
    """Turn a package name like "hello-world" into "Hello World"."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("-"))


def desktop_entry(manifest: Manifest) -> str:
    """Build the .desktop file content for an application or script manifest.

    Raises:
        ValueError: if the manifest has no `[application]` or `[script]` section.
    """
    info = manifest.role_specific
    if info is None:
        raise ValueError(f"{manifest.role} pakets have no executable to launch")

    package = manifest.package
    # desktop entry values are single-line
    comment = " ".join(package.description.split())
    lines = [
        "[Desktop Entry]",
        f"Name={display_name(package.name)}",
        f"Comment={comment}",
        f"Exec={info.executable}",
        "Type=Application",
    ]
    if info.icon:
        lines.append(f"Icon={info.icon}")
    if package.categories:
        lines.append(f"Categories={';'.join(package.categories)}")
    return "\n".join(lines) + "\n"

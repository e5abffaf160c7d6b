"""Filesystem helpers for the local attachment layout.

Files live under ``<upload_dir>/<tenant>/<entity type>/[image|additional]/``.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from tenantfiles.core.exceptions import BadArgumentError

IMAGE_SUBDIR = "image"
ADDITIONAL_SUBDIR = "additional"
IMAGE_EXTENSION = "png"
IMAGE_MEDIA_TYPE = "image/png"


def get_extension(filename: str | None) -> str:
    """Extract the lower-cased extension of a filename.

    Args:
        filename: Original filename

    Returns:
        Extension without the dot, or an empty string when there is none
    """
    if not filename:
        return ""
    name = PurePosixPath(filename).name
    if "." in name.strip("."):
        return name.rsplit(".", 1)[1].lower()
    return ""


def get_stem(filename: str | None) -> str:
    if not filename:
        return ""
    name = PurePosixPath(filename).name
    if "." in name.strip("."):
        return name.rsplit(".", 1)[0]
    return name


def build_entity_path(root: str | Path, tenant: str, entity_type: str, *sub: str) -> str:
    """Build the storage directory of an entity type for a tenant.

    Args:
        root: Upload root directory
        tenant: Tenant owning the files
        entity_type: Entity class name (stored lower-cased)
        *sub: Optional trailing segments such as ``image`` or ``additional``

    Returns:
        Directory path as a string

    Raises:
        BadArgumentError: If the segments lead outside ``root``
    """
    directory = Path(root, tenant, entity_type.lower(), *sub)
    if Path(root).resolve() not in directory.resolve().parents:
        raise BadArgumentError(f"Storage path for tenant {tenant!r} escapes the upload directory")
    return str(directory)


def image_file_name(original_file_name: str | None, code: str | None) -> str:
    """Name under which an entity image is stored: ``<stem>_<code>.png``."""
    stem = get_stem(original_file_name) or "image"
    if code:
        stem = f"{stem}_{code}"
    return f"{stem}.{IMAGE_EXTENSION}"


def save_bytes(directory: str | Path, file_name: str, data: bytes) -> Path:
    """Write bytes to ``directory/file_name`` creating directories as needed."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / file_name
    target.write_bytes(data)
    return target

"""Image storage on disk and the mapping from stored paths to web paths."""

from __future__ import annotations

import shutil
from pathlib import Path

DEFAULT_IMAGES_ROOT = "../databases/dbimages"
NOT_FOUND_IMAGE = "404.jpg"
WEB_PREFIX = "/images/"


def to_web_path(image_path, images_root) -> str | None:
    """Turn a stored image path under ``images_root`` into its ``/images/`` URL.

    Returns None when the path does not live under the image root.
    """
    prefix = str(images_root).rstrip("/") + "/"
    if not image_path.startswith(prefix):
        return None
    return WEB_PREFIX + image_path.replace(prefix, "")


def resolve_image(images_root, relative) -> Path:
    """Return the file to serve for ``relative``, or the 404 image if absent.

    Raises FileNotFoundError when neither exists.
    """
    root = Path(images_root)
    candidate = root / relative
    try:
        inside = candidate.resolve().is_relative_to(root.resolve())
    except OSError:
        inside = False
    if inside and candidate.is_file():
        return candidate
    fallback = root / NOT_FOUND_IMAGE
    if not fallback.is_file():
        raise FileNotFoundError(str(fallback))
    return fallback


def save_upload(stream, file_path) -> int:
    """Write an uploaded stream to ``file_path`` and return the bytes written.

    ``stream`` is a binary file object or an iterable of byte chunks.
    """
    target = Path(file_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("wb") as out:
        if hasattr(stream, "read"):
            shutil.copyfileobj(stream, out)
        else:
            for chunk in stream:
                out.write(chunk)
        return out.tell()
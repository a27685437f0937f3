"""Utilities for asset identifiers and blob-store relative paths."""

from __future__ import annotations

import base64
import binascii
import mimetypes
import uuid
from datetime import datetime
from pathlib import Path

# Extensions that ``mimetypes`` does not know about on every platform.
_EXTRA_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/heic": "heic",
    "image/heif": "heif",
    "video/quicktime": "mov",
    "text/xml": "xml",
}


def encode_identifier(relpath: str) -> str:
    """Return the asset identifier for the blob-store relative *relpath*.

    The path is encoded as-is; separators are not normalised.
    """

    return base64.b64encode(relpath.encode("utf-8")).decode("ascii")


def decode_identifier(key: str) -> str:
    """Return the blob-store relative path encoded in *key*."""

    try:
        return base64.b64decode(key.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as exc:
        raise ValueError(f"Invalid asset identifier: {key!r}") from exc


def extension_for(media_type: str) -> str:
    """Return the preferred filename extension (without dot) for *media_type*."""

    media_type = media_type.lower()
    if media_type in _EXTRA_EXTENSIONS:
        return _EXTRA_EXTENSIONS[media_type]
    guess = mimetypes.guess_extension(media_type)
    if guess is None:
        return "bin"
    return guess.lstrip(".")


def infer_media_type(filename: str) -> str:
    """Guess the media type from the extension of *filename*."""

    suffix = Path(filename).suffix.lower()
    if suffix == ".aae":
        return "text/xml"
    for media_type, ext in _EXTRA_EXTENSIONS.items():
        if suffix == f".{ext}":
            return media_type
    guess, _ = mimetypes.guess_type(f"file{suffix}")
    return guess or "application/octet-stream"


def new_asset_id(when: datetime, media_type: str) -> str:
    """Generate a fresh asset identifier for an asset imported at *when*.

    The relative path is ``YYYY/MM/DD/HHmm/<unique>.<ext>`` where the minutes
    are rounded down to the quarter hour so directories fill up evenly.
    """

    rounded = when.replace(minute=(when.minute // 15) * 15, second=0, microsecond=0)
    datepath = rounded.strftime("%Y/%m/%d/%H%M")
    name = f"{uuid.uuid4().hex}.{extension_for(media_type)}"
    relpath = f"{datepath}/{name}".lower()
    return encode_identifier(relpath)

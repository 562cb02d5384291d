"""Reference image decoding — data URLs, bare base64, or local files."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from pathlib import Path

from google.genai import types

from .errors import InvalidInput

SUPPORTED_IMAGE_EXTENSIONS: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}
DEFAULT_IMAGE_MIME = "image/png"

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[\w-]+)*;base64,(?P<data>.*)$", re.S)
_MAX_PATH_LENGTH = 1024


@dataclass(frozen=True)
class ReferenceImage:
    """Raw image bytes plus MIME type, ready for transmission."""

    data: bytes
    mime_type: str = DEFAULT_IMAGE_MIME

    def to_genai(self) -> types.Image:
        return types.Image(image_bytes=self.data, mime_type=self.mime_type)


def _looks_like_path(value: str) -> Path | None:
    if len(value) > _MAX_PATH_LENGTH or "\n" in value:
        return None
    try:
        p = Path(value).expanduser()
        return p if p.is_file() else None
    except OSError:
        return None


def _b64decode(payload: str) -> bytes:
    try:
        data = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInput(f"Reference image is not valid base64: {exc}") from exc
    if not data:
        raise InvalidInput("Reference image is empty")
    return data


def decode_image(value: str) -> ReferenceImage:
    """Decode a reference image supplied at the tool boundary.

    Accepts ``data:<mime>;base64,<payload>`` URLs, a path to an existing
    local image file, or bare base64 (assumed PNG).

    Raises:
        InvalidInput: If the payload is empty, not base64, or not an image type.
    """
    value = value.strip()
    if not value:
        raise InvalidInput("Reference image is empty")

    match = _DATA_URL_RE.match(value)
    if match:
        mime = match.group("mime") or DEFAULT_IMAGE_MIME
        if not mime.startswith("image/"):
            raise InvalidInput(f"Reference must be an image, got '{mime}'")
        return ReferenceImage(data=_b64decode(match.group("data")), mime_type=mime)

    path = _looks_like_path(value)
    if path is not None:
        mime = SUPPORTED_IMAGE_EXTENSIONS.get(path.suffix.lower())
        if not mime:
            allowed = ", ".join(sorted(SUPPORTED_IMAGE_EXTENSIONS))
            raise InvalidInput(f"Unsupported image extension '{path.suffix}'. Supported: {allowed}")
        return ReferenceImage(data=path.read_bytes(), mime_type=mime)

    return ReferenceImage(data=_b64decode(value))


def decode_optional_image(value: str | None) -> ReferenceImage | None:
    """``decode_image`` that maps None/blank to None."""
    if value is None or not value.strip():
        return None
    return decode_image(value)

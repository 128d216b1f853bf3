"""
Media normalization for barrier evidence
Validates selected files and converts HEIC/HEIF photos to JPEG
"""

import io
import logging
import mimetypes
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

import pillow_heif
from PIL import Image

from src.core.constants import (
    DEFAULT_JPEG_QUALITY,
    MAX_MEDIA_BYTES,
    MSG_FILE_TOO_LARGE,
    MSG_UNSUPPORTED_MEDIA,
    NORMALIZED_CONTENT_TYPE,
    NORMALIZED_EXTENSION,
    PROPRIETARY_CONTENT_TYPES,
    PROPRIETARY_EXTENSIONS,
)
from src.reports.models import MediaKind, MediaReference

logger = logging.getLogger(__name__)

_PROPRIETARY_SUFFIX = re.compile(r"\.(heic|heif)$", re.IGNORECASE)

# Converter signature: (content, target content type, quality 0-1) -> bytes or a collection of bytes
Converter = Callable[[bytes, str, float], Union[bytes, Iterable[bytes]]]


class MediaValidationError(ValueError):
    """Selected file is not acceptable evidence (kind or size)."""


class NormalizationError(Exception):
    """Conversion to a renderable format failed."""


@dataclass(frozen=True)
class MediaFile:
    """A selected or converted media file."""
    name: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "MediaFile":
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            content_type=content_type or guessed or "",
            content=path.read_bytes(),
        )


def is_proprietary_format(file: MediaFile) -> bool:
    """
    Check whether a file is HEIC/HEIF.

    Content type is unreliable for this family, so the extension is checked
    independently; either signal is enough.
    """
    name = file.name.lower()
    content_type = (file.content_type or "").lower()
    return name.endswith(PROPRIETARY_EXTENSIONS) or content_type in PROPRIETARY_CONTENT_TYPES


def media_kind_of(file: MediaFile) -> Optional[MediaKind]:
    """Renderable kind of a file, or None for unsupported files."""
    content_type = (file.content_type or "").lower()
    if content_type.startswith("image/") or is_proprietary_format(file):
        return MediaKind.IMAGE
    if content_type.startswith("video/"):
        return MediaKind.VIDEO
    return None


def validate_media(file: MediaFile, max_bytes: int = MAX_MEDIA_BYTES) -> MediaKind:
    """
    Check kind and size before anything else happens to a selection.

    Raises:
        MediaValidationError: not an image/video, or larger than ``max_bytes``
    """
    kind = media_kind_of(file)
    if kind is None:
        raise MediaValidationError(MSG_UNSUPPORTED_MEDIA)
    if file.size > max_bytes:
        raise MediaValidationError(MSG_FILE_TOO_LARGE)
    return kind


def normalized_name(name: str) -> str:
    """Swap a HEIC/HEIF extension for ``.jpg`` (appending it if absent)."""
    renamed = _PROPRIETARY_SUFFIX.sub(NORMALIZED_EXTENSION, name)
    if not renamed.lower().endswith(NORMALIZED_EXTENSION):
        renamed = f"{renamed}{NORMALIZED_EXTENSION}"
    return renamed


def heif_to_jpeg(
    content: bytes,
    to_type: str = NORMALIZED_CONTENT_TYPE,
    quality: float = DEFAULT_JPEG_QUALITY
) -> bytes:
    """
    Decode a HEIC/HEIF image and re-encode it as JPEG.

    Args:
        content: HEIC/HEIF bytes
        to_type: Target MIME type (only image/jpeg is supported)
        quality: Lossy quality between 0 and 1

    Returns:
        JPEG bytes
    """
    if to_type != NORMALIZED_CONTENT_TYPE:
        raise ValueError(f"Unsupported target type: {to_type}")

    pillow_heif.register_heif_opener()

    with Image.open(io.BytesIO(content)) as image:
        output = io.BytesIO()
        image.convert("RGB").save(output, format="JPEG", quality=round(quality * 100))
        return output.getvalue()


class MediaHandle:
    """
    Displayable handle for media content, backed by a temporary file.

    ``release`` deletes the file; it acts once and later calls are no-ops.
    """

    def __init__(self, content: bytes, suffix: str = ""):
        with tempfile.NamedTemporaryFile(
            prefix="accesswatch-", suffix=suffix, delete=False
        ) as handle:
            handle.write(content)
            self.path = Path(handle.name)
        self._released = False

    @property
    def url(self) -> str:
        return self.path.as_uri()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> bool:
        """
        Revoke the handle.

        Returns:
            True if this call released it, False if it was already released
        """
        if self._released:
            return False
        self._released = True
        self.path.unlink(missing_ok=True)
        logger.debug(f"Released media handle {self.path.name}")
        return True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.release()


@dataclass
class MediaAsset:
    """Normalized media owned by an in-progress report."""
    file: MediaFile
    kind: MediaKind
    handle: MediaHandle
    normalized: bool = False

    @property
    def url(self) -> str:
        return self.handle.url

    def release(self) -> bool:
        return self.handle.release()

    def to_reference(self) -> MediaReference:
        return MediaReference(
            kind=self.kind,
            url=self.url,
            file_name=self.file.name,
            file_size=self.file.size,
        )


class MediaNormalizer:
    """
    Makes selected media universally renderable.

    The codec is injected; ``heif_to_jpeg`` is the default.
    """

    def __init__(
        self,
        converter: Converter = heif_to_jpeg,
        quality: float = DEFAULT_JPEG_QUALITY,
        max_bytes: int = MAX_MEDIA_BYTES
    ):
        """
        Initialize normalizer.

        Args:
            converter: Conversion function for proprietary photos
            quality: JPEG quality requested from the converter (0-1)
            max_bytes: Maximum accepted file size
        """
        self.converter = converter
        self.quality = quality
        self.max_bytes = max_bytes

    def validate(self, file: MediaFile) -> MediaKind:
        return validate_media(file, self.max_bytes)

    def needs_conversion(self, file: MediaFile) -> bool:
        return is_proprietary_format(file)

    def normalize(self, file: MediaFile) -> MediaFile:
        """
        Convert a proprietary photo to JPEG.

        The converter may return several images; only the first is kept.

        Raises:
            NormalizationError: conversion failed or produced nothing
        """
        logger.info(f"Converting {file.name} to {NORMALIZED_CONTENT_TYPE}")

        try:
            converted = self.converter(file.content, NORMALIZED_CONTENT_TYPE, self.quality)
            if not isinstance(converted, (bytes, bytearray, memoryview)):
                converted = next(iter(converted), None)
            content = bytes(converted) if converted is not None else b""
        except Exception as e:
            logger.warning(f"Conversion of {file.name} failed: {e}")
            raise NormalizationError(f"Failed to convert {file.name}") from e

        if not content:
            raise NormalizationError(f"Converter returned no image for {file.name}")

        return MediaFile(
            name=normalized_name(file.name),
            content_type=NORMALIZED_CONTENT_TYPE,
            content=content,
        )

    def prepare(self, file: MediaFile, normalized: bool = False) -> MediaAsset:
        """Wrap a renderable file in an asset with a fresh handle."""
        kind = media_kind_of(file)
        if kind is None:
            raise MediaValidationError(MSG_UNSUPPORTED_MEDIA)
        return MediaAsset(
            file=file,
            kind=kind,
            handle=MediaHandle(file.content, suffix=Path(file.name).suffix),
            normalized=normalized,
        )

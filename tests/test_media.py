"""
Tests for media validation and normalization
"""
import io
import pytest

import sys
sys.path.insert(0, '.')

from PIL import Image, UnidentifiedImageError

from src.reports.models import MediaKind
from src.intake.media import (
    MediaFile,
    MediaHandle,
    MediaNormalizer,
    MediaValidationError,
    NormalizationError,
    heif_to_jpeg,
    is_proprietary_format,
    media_kind_of,
    normalized_name,
    validate_media,
)


def png_bytes(size=(4, 4), color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class TestMediaValidation:
    """Test suite for selection checks."""

    def test_accepts_image(self):
        """Test photos are accepted."""
        file = MediaFile("ramp.jpg", "image/jpeg", b"jpeg")

        assert validate_media(file) == MediaKind.IMAGE

    def test_accepts_video(self):
        """Test videos are accepted."""
        file = MediaFile("stairs.mp4", "video/mp4", b"mp4")

        assert validate_media(file) == MediaKind.VIDEO

    def test_rejects_other_types(self):
        """Test documents are rejected with the selection advisory."""
        file = MediaFile("notes.pdf", "application/pdf", b"%PDF")

        with pytest.raises(MediaValidationError, match="Please select an image or video file"):
            validate_media(file)

    def test_rejects_oversized_file(self):
        """Test a 25 MiB file is rejected."""
        file = MediaFile("big.jpg", "image/jpeg", b"\0" * (25 * 1024 * 1024))

        with pytest.raises(MediaValidationError, match="File must be under 20MB"):
            validate_media(file)

    def test_accepts_heic_without_content_type(self):
        """Test HEIC files with an empty MIME type are still photos."""
        file = MediaFile("IMG_0001.HEIC", "", b"heic")

        assert media_kind_of(file) == MediaKind.IMAGE
        assert validate_media(file) == MediaKind.IMAGE


class TestProprietaryDetection:
    """Test suite for HEIC/HEIF detection."""

    def test_extension_only(self):
        """Test the extension alone is enough."""
        assert is_proprietary_format(MediaFile("photo.heic", "application/octet-stream", b""))
        assert is_proprietary_format(MediaFile("photo.HEIF", "", b""))

    def test_content_type_only(self):
        """Test the content type alone is enough."""
        assert is_proprietary_format(MediaFile("photo", "image/heic", b""))
        assert is_proprietary_format(MediaFile("upload.bin", "image/heif", b""))

    def test_regular_jpeg(self):
        """Test ordinary photos are not flagged."""
        assert not is_proprietary_format(MediaFile("photo.jpg", "image/jpeg", b""))

    def test_normalized_name(self):
        """Test extension replacement."""
        assert normalized_name("IMG_0001.HEIC") == "IMG_0001.jpg"
        assert normalized_name("scan.heif") == "scan.jpg"
        assert normalized_name("photo") == "photo.jpg"


class TestMediaNormalizer:
    """Test suite for conversion."""

    def test_normalize_renames_and_retypes(self):
        """Test converted files become JPEG with a .jpg name."""
        normalizer = MediaNormalizer(converter=lambda content, to_type, quality: b"jpeg-bytes")

        result = normalizer.normalize(MediaFile("IMG_0001.HEIC", "image/heic", b"heic"))

        assert result.name == "IMG_0001.jpg"
        assert result.content_type == "image/jpeg"
        assert result.content == b"jpeg-bytes"

    def test_normalize_passes_quality(self):
        """Test the converter is asked for JPEG at the configured quality."""
        calls = []

        def converter(content, to_type, quality):
            calls.append((content, to_type, quality))
            return b"jpeg"

        MediaNormalizer(converter=converter, quality=0.9).normalize(
            MediaFile("a.heic", "image/heic", b"heic")
        )

        assert calls == [(b"heic", "image/jpeg", 0.9)]

    def test_normalize_keeps_first_of_many(self):
        """Test multi-image results keep only the first image."""
        normalizer = MediaNormalizer(converter=lambda c, t, q: [b"first", b"second"])

        result = normalizer.normalize(MediaFile("burst.heic", "image/heic", b"heic"))

        assert result.content == b"first"

    def test_normalize_keeps_first_of_iterator(self):
        """Test lazily produced results keep only the first image."""
        normalizer = MediaNormalizer(converter=lambda c, t, q: (image for image in [b"first", b"second"]))

        result = normalizer.normalize(MediaFile("burst.heic", "image/heic", b"heic"))

        assert result.content == b"first"

    def test_normalize_unusable_result(self):
        """Test a result that is neither bytes nor a collection is a failure."""
        normalizer = MediaNormalizer(converter=lambda c, t, q: 42)

        with pytest.raises(NormalizationError):
            normalizer.normalize(MediaFile("odd.heic", "image/heic", b"heic"))

    def test_normalize_empty_result(self):
        """Test a converter returning nothing is a failure."""
        normalizer = MediaNormalizer(converter=lambda c, t, q: [])

        with pytest.raises(NormalizationError):
            normalizer.normalize(MediaFile("empty.heic", "image/heic", b"heic"))

    def test_normalize_converter_error(self):
        """Test converter exceptions become NormalizationError."""
        def converter(content, to_type, quality):
            raise OSError("corrupt file")

        with pytest.raises(NormalizationError):
            MediaNormalizer(converter=converter).normalize(
                MediaFile("bad.heic", "image/heic", b"junk")
            )

    def test_prepare_creates_handle(self):
        """Test prepared assets carry a displayable handle."""
        normalizer = MediaNormalizer()
        asset = normalizer.prepare(MediaFile("ramp.jpg", "image/jpeg", b"jpeg"))

        try:
            assert asset.kind == MediaKind.IMAGE
            assert asset.url.startswith("file://")
            assert asset.handle.path.read_bytes() == b"jpeg"

            reference = asset.to_reference()
            assert reference.file_name == "ramp.jpg"
            assert reference.file_size == 4
        finally:
            asset.release()


class TestHeifToJpeg:
    """Test suite for the default codec."""

    def test_converts_to_jpeg(self):
        """Test decoded images are re-encoded as JPEG."""
        jpeg = heif_to_jpeg(png_bytes(), "image/jpeg", 0.9)

        with Image.open(io.BytesIO(jpeg)) as image:
            assert image.format == "JPEG"
            assert image.size == (4, 4)

    def test_unsupported_target(self):
        """Test only JPEG output is supported."""
        with pytest.raises(ValueError):
            heif_to_jpeg(png_bytes(), "image/png", 0.9)

    def test_undecodable_input(self):
        """Test garbage input fails."""
        with pytest.raises(UnidentifiedImageError):
            heif_to_jpeg(b"not an image", "image/jpeg", 0.9)


class TestMediaHandle:
    """Test suite for handle lifetime."""

    def test_release_once(self):
        """Test a handle is released exactly once."""
        handle = MediaHandle(b"data", suffix=".jpg")

        assert handle.path.exists()
        assert handle.release() is True
        assert not handle.path.exists()
        assert handle.release() is False
        assert handle.released

    def test_context_manager(self):
        """Test handles release on exit."""
        with MediaHandle(b"data") as handle:
            path = handle.path
            assert path.exists()

        assert not path.exists()

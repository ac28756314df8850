"""Unit tests for reference image loading, sniffing and transport encoding."""

import base64
import io

import pytest
from PIL import Image

from imgblend.core.reference import (
    MAX_REFERENCE_IMAGES,
    MIN_REFERENCE_IMAGES,
    SUPPORTED_EXTENSIONS,
    ImagePart,
    _infer_format_from_magic,
    create_image_data_url,
    decode_image_base64,
    encode_image_base64,
    load_reference_image,
    sniff_image,
    validate_extension,
    validate_reference_count,
)
from imgblend.utils.exceptions import ImageProcessingError, ValidationError

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"
WEBP_MAGIC = b"RIFF\x00\x00\x00\x00WEBP"


def _gif_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (2, 2)).save(buf, format="GIF")
    return buf.getvalue()


@pytest.mark.unit
class TestConstants:
    def test_count_bounds(self):
        assert MIN_REFERENCE_IMAGES == 2
        assert MAX_REFERENCE_IMAGES == 4

    def test_supported_extensions(self):
        assert SUPPORTED_EXTENSIONS == (".png", ".jpg", ".jpeg")


@pytest.mark.unit
class TestInferFormatFromMagic:
    def test_png(self):
        assert _infer_format_from_magic(PNG_MAGIC + b"\x00" * 20) == "PNG"

    def test_jpeg(self):
        assert _infer_format_from_magic(JPEG_MAGIC + b"\x00" * 20) == "JPEG"

    def test_webp_is_unknown(self):
        assert _infer_format_from_magic(WEBP_MAGIC + b"\x00" * 20) is None

    def test_empty(self):
        assert _infer_format_from_magic(b"") is None


@pytest.mark.unit
class TestValidateExtension:
    @pytest.mark.parametrize("name", ["a.png", "b.JPG", "c.jpeg", "dir/d.PNG"])
    def test_accepts_supported(self, name):
        assert validate_extension(name) in ("PNG", "JPEG")

    @pytest.mark.parametrize("name", ["a.gif", "b.webp", "noext", ""])
    def test_rejects_others(self, name):
        with pytest.raises(ValidationError) as exc_info:
            validate_extension(name)
        assert exc_info.value.field == "image_format"


@pytest.mark.unit
class TestSniffImage:
    def test_png(self, png_bytes):
        assert sniff_image(png_bytes, "a.png") == "image/png"

    def test_jpeg(self, jpeg_bytes):
        assert sniff_image(jpeg_bytes, "a.jpg") == "image/jpeg"

    def test_empty_raises(self):
        with pytest.raises(ImageProcessingError) as exc_info:
            sniff_image(b"", "empty.png")
        assert exc_info.value.image_path == "empty.png"

    def test_other_format_raises(self):
        with pytest.raises(ImageProcessingError) as exc_info:
            sniff_image(_gif_bytes(), "fake.png")
        assert "not a PNG or JPEG" in str(exc_info.value)

    def test_truncated_png_raises(self):
        with pytest.raises(ImageProcessingError):
            sniff_image(PNG_MAGIC + b"\x00" * 10, "broken.png")


@pytest.mark.unit
class TestBase64Helpers:
    def test_encode_decode_identity(self, png_bytes):
        encoded = encode_image_base64(png_bytes)
        assert isinstance(encoded, str)
        assert decode_image_base64(encoded) == png_bytes

    def test_decode_accepts_data_url(self, png_bytes):
        url = create_image_data_url(encode_image_base64(png_bytes), "image/png")
        assert url.startswith("data:image/png;base64,")
        assert decode_image_base64(url) == png_bytes

    def test_decode_invalid_raises(self):
        with pytest.raises(ImageProcessingError):
            decode_image_base64("not base64!!")

    def test_create_data_url_default_mime(self):
        assert create_image_data_url("abc") == "data:image/png;base64,abc"


@pytest.mark.unit
class TestLoadReferenceImage:
    def test_from_path(self, tmp_path, png_bytes):
        path = tmp_path / "cat.png"
        path.write_bytes(png_bytes)
        ref = load_reference_image(path)
        assert ref.filename == "cat.png"
        assert ref.mime_type == "image/png"
        assert ref.id.startswith("cat-")
        assert base64.b64decode(ref.data) == png_bytes
        assert ref.image_bytes == png_bytes

    def test_from_bytes_needs_supported_name(self, jpeg_bytes):
        ref = load_reference_image(jpeg_bytes, filename="dog.jpeg")
        assert ref.mime_type == "image/jpeg"
        with pytest.raises(ValidationError):
            load_reference_image(jpeg_bytes, filename="dog.bmp")

    def test_ids_are_unique(self, png_bytes):
        a = load_reference_image(png_bytes, filename="same.png")
        b = load_reference_image(png_bytes, filename="same.png")
        assert a.id != b.id

    def test_mime_from_content_not_extension(self, jpeg_bytes):
        ref = load_reference_image(jpeg_bytes, filename="mislabeled.png")
        assert ref.mime_type == "image/jpeg"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ImageProcessingError):
            load_reference_image(tmp_path / "nope.png")

    def test_non_image_content_rejected(self, tmp_path):
        path = tmp_path / "notes.png"
        path.write_text("hello")
        with pytest.raises(ImageProcessingError):
            load_reference_image(path)

    def test_image_part_and_data_url(self, png_bytes):
        ref = load_reference_image(png_bytes, filename="x.png")
        assert ref.image_part == ImagePart(data=ref.data, mime_type="image/png")
        assert ref.data_url == f"data:image/png;base64,{ref.data}"


@pytest.mark.unit
class TestValidateReferenceCount:
    @pytest.mark.parametrize("count", [2, 3, 4])
    def test_in_range(self, count):
        validate_reference_count(count)

    @pytest.mark.parametrize("count", [0, 1, 5])
    def test_out_of_range(self, count):
        with pytest.raises(ValidationError) as exc_info:
            validate_reference_count(count)
        assert str(exc_info.value) == "Please provide 2 to 4 reference images."
        assert exc_info.value.field == "images"

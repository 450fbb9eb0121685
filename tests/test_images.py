from io import BytesIO

import pytest
from PIL import Image as PILImage

from services.images import (
    clean_image,
    decode_data_url,
    encode_image_file,
    first_image,
    is_valid_image_src,
    resize_slots,
    to_height,
    to_scale,
    valid_images,
)


PNG_1PX = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="
)
DATA_URL = f"data:image/png;base64,{PNG_1PX}"


@pytest.mark.parametrize(
    "src",
    [DATA_URL, "https://example.com/a.png", "http://example.com/a.png", "/img/logo.png", "blob:abc-123"],
)
def test_accepted_references(src):
    assert is_valid_image_src(src)
    assert clean_image(f"  {src} ") == src


@pytest.mark.parametrize(
    "src",
    ["", "   ", "null", "undefined", "NULL", None, 42, ["x"], "data:image/png;base64", "c:/img.png", "//cdn/x.png", "ftp://x"],
)
def test_rejected_references(src):
    assert not is_valid_image_src(src)
    assert clean_image(src) is None


def test_valid_images_filters_in_order():
    assert valid_images(["null", "/a.png", "", "/b.png"]) == ["/a.png", "/b.png"]
    assert valid_images("not a list") == []
    assert first_image(["undefined", "/b.png"]) == "/b.png"
    assert first_image([]) is None


def test_layout_numbers_are_coerced():
    assert to_height("120") == 120.0
    assert to_height("12,5") == 12.5
    assert to_height(0) is None
    assert to_height(-5) is None
    assert to_height("abc") is None
    assert to_height(float("inf")) is None
    assert to_scale(None) == 100.0
    assert to_scale(0) == 100.0
    assert to_scale("-3") == 100.0
    assert to_scale(55) == 55.0


def test_resize_slots_keeps_leading_slots():
    slots = ["/a.png", "", "/c.png"]
    assert resize_slots(slots, 2) == ["/a.png", ""]
    assert resize_slots(slots, 5) == ["/a.png", "", "/c.png", "", ""]
    assert resize_slots(slots, 0) == []
    assert resize_slots(None, 1) == [""]
    assert slots == ["/a.png", "", "/c.png"]


def _image_bytes(fmt: str) -> bytes:
    buffer = BytesIO()
    PILImage.new("RGB", (3, 2), "blue").save(buffer, format=fmt)
    return buffer.getvalue()


def test_encode_image_file(tmp_path):
    path = tmp_path / "pixel.png"
    path.write_bytes(_image_bytes("PNG"))
    encoded = encode_image_file(path)
    assert encoded.startswith("data:image/png;base64,")
    assert decode_data_url(encoded) == path.read_bytes()


def test_encode_takes_mime_from_content(tmp_path):
    path = tmp_path / "foto.png"
    path.write_bytes(_image_bytes("JPEG"))
    assert encode_image_file(path).startswith("data:image/jpeg;base64,")


@pytest.mark.parametrize(
    "name, content",
    [
        ("notes.txt", b"hello"),
        ("fake.png", b"this is not an image at all"),
        ("empty.jpg", b""),
    ],
)
def test_encode_rejects_non_images(tmp_path, name, content):
    path = tmp_path / name
    path.write_bytes(content)
    with pytest.raises(ValueError):
        encode_image_file(path)


def test_decode_ignores_other_references():
    assert decode_data_url("/img/logo.png") is None

from __future__ import annotations

import base64
import binascii
import math
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, Optional
from urllib.parse import unquote_to_bytes

from PIL import Image as PILImage, UnidentifiedImageError


DATA_URL_PREFIX = "data:image/"
PREVIEW_PREFIX = "blob:"
_ABSENT_LITERALS = {"undefined", "null", "none"}


def is_valid_image_src(value: Any) -> bool:
    """Return True for image references the document can use.

    Accepted: inline ``data:image/...`` URLs, http(s) URLs, root-relative paths
    and temporary ``blob:`` preview references.
    """
    if not isinstance(value, str):
        return False
    src = value.strip()
    if not src or src.lower() in _ABSENT_LITERALS:
        return False
    lower = src.lower()
    if lower.startswith(DATA_URL_PREFIX):
        return "," in src
    if lower.startswith("http://") or lower.startswith("https://"):
        return len(src) > len("https://")
    if lower.startswith(PREVIEW_PREFIX):
        return len(src) > len(PREVIEW_PREFIX)
    return src.startswith("/") and not src.startswith("//") and len(src) > 1


def clean_image(value: Any) -> Optional[str]:
    if is_valid_image_src(value):
        return value.strip()
    return None


def valid_images(values: Any) -> list[str]:
    if not isinstance(values, (list, tuple)):
        return []
    out: list[str] = []
    for value in values:
        src = clean_image(value)
        if src is not None:
            out.append(src)
    return out


def first_image(values: Any) -> Optional[str]:
    images = valid_images(values)
    return images[0] if images else None


def to_non_negative(value: Any, default: float) -> float:
    """Coerce layout numbers (heights, scales) to finite values >= 0."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(str(value).replace(",", ".")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def to_height(value: Any) -> Optional[float]:
    """Heights: invalid or zero means no explicit height."""
    height = to_non_negative(value, 0.0)
    return height if height > 0 else None


def to_scale(value: Any, default: float = 100.0) -> float:
    scale = to_non_negative(value, default)
    return scale if scale > 0 else default


def resize_slots(slots: Iterable[Any], count: int, empty: Any = "") -> list[Any]:
    """Truncate or pad a multi-image slot list to ``count`` entries.

    Slots kept by the new count are returned untouched; only trailing slots
    beyond it are dropped, and padding uses ``empty``.
    """
    current = list(slots or [])
    count = max(int(count), 0)
    if count <= len(current):
        return current[:count]
    return current + [empty for _ in range(count - len(current))]


def encode_image_file(path: Path) -> str:
    """Turn an uploaded image file into an inline ``data:`` URL.

    The MIME type comes from the decoded content, not the file name.
    """
    data = path.read_bytes()
    try:
        with PILImage.open(BytesIO(data)) as image:
            image.verify()
            mime = PILImage.MIME.get(image.format or "")
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValueError(f"Not an image file: {path}") from exc
    if not mime:
        raise ValueError(f"Unsupported image format: {path}")
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{payload}"


def decode_data_url(src: str) -> Optional[bytes]:
    if not src.lower().startswith(DATA_URL_PREFIX):
        return None
    header, _, payload = src.partition(",")
    try:
        if header.lower().endswith(";base64"):
            return base64.b64decode(payload, validate=False)
        return unquote_to_bytes(payload)
    except (binascii.Error, ValueError):
        return None

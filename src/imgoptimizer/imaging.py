"""In-process image decoding, resizing and encoding (Pillow)."""

from __future__ import annotations

import base64
import logging
import math
from io import BytesIO
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError
from .types import ImageSpec


logger = logging.getLogger(__name__)

_PIL_FORMATS = {"webp": "WEBP", "jpeg": "JPEG", "png": "PNG"}


def compute_target_size(width: int, height: int, spec: ImageSpec) -> Tuple[int, int]:
    """Fit (width, height) within `max_pixels` and the per-axis `max_dimensions` cap, never upscaling."""
    w = int(width)
    h = int(height)
    if w < 1 or h < 1:
        raise ValueError(f"Invalid image size: {w}x{h}")

    max_dim = int(spec.max_dimensions)
    max_pixels = int(spec.max_pixels)

    scale = 1.0
    if w * h > max_pixels:
        scale = math.sqrt(max_pixels / float(w * h))
    scale = min(scale, max_dim / float(w), max_dim / float(h))
    if scale >= 1.0:
        return w, h

    long_side, short_side = (w, h) if w >= h else (h, w)

    def _short_for(n_long: int) -> int:
        return max(1, min(max_dim, int(round(short_side * n_long / float(long_side)))))

    # Epsilon keeps exact caps (1000.0) from flooring to 999.
    n_long = max(1, min(max_dim, int(math.floor(long_side * scale + 1e-6))))
    n_short = _short_for(n_long)
    while n_long * n_short > max_pixels and n_long > 1:
        n_long -= 1
        n_short = _short_for(n_long)
    return (n_long, n_short) if w >= h else (n_short, n_long)


def _open(raw: bytes) -> Image.Image:
    if not isinstance(raw, (bytes, bytearray)) or not raw:
        raise ImageDecodeError("Image data is empty.")
    try:
        img = Image.open(BytesIO(bytes(raw)))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Cannot decode image: {e}") from e
    return img


def _normalize_mode(img: Image.Image, fmt: str) -> Image.Image:
    if fmt == "jpeg":
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            rgba = img.convert("RGBA")
            flat = Image.new("RGB", rgba.size, (255, 255, 255))
            flat.paste(rgba, mask=rgba.getchannel("A"))
            return flat
        return img.convert("RGB") if img.mode != "RGB" else img
    if img.mode not in ("RGB", "RGBA", "L", "LA"):
        return img.convert("RGBA")
    return img


def _encode(img: Image.Image, fmt: str, quality: int) -> bytes:
    fmt = str(fmt).lower()
    if fmt not in _PIL_FORMATS:
        raise ImageDecodeError(f"Unsupported output format: {fmt!r}")
    img = _normalize_mode(img, fmt)
    buf = BytesIO()
    kwargs = {}
    if fmt in ("webp", "jpeg"):
        kwargs["quality"] = max(1, min(int(quality), 100))
    try:
        img.save(buf, format=_PIL_FORMATS[fmt], **kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise ImageDecodeError(f"Cannot encode image as {fmt}: {e}") from e
    return buf.getvalue()


def image_size(raw: bytes) -> Tuple[int, int]:
    return _open(raw).size


def to_base64(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{to_base64(data)}"


def preprocess_image(raw: bytes, spec: ImageSpec, output: str = "bytes") -> Union[bytes, str]:
    """Resize and re-encode `raw` to satisfy `spec`.

    `output` selects the result shape: "bytes", "base64" or "data_url".
    Raises ImageDecodeError on corrupt input; no fallback is attempted here.
    """
    if output not in ("bytes", "base64", "data_url"):
        raise ValueError(f"Unknown output type: {output!r}")

    img = _open(raw)
    target = compute_target_size(img.width, img.height, spec)
    if target != img.size:
        logger.debug("Resizing image %sx%s -> %sx%s", img.width, img.height, target[0], target[1])
        img = img.resize(target, Image.Resampling.LANCZOS)

    data = _encode(img, spec.target_format, quality=90)
    if output == "base64":
        return to_base64(data)
    if output == "data_url":
        return to_data_url(data, spec.mime_type)
    return data


def encode_image(raw: bytes, fmt: str, quality: int = 90) -> bytes:
    """Re-encode `raw` at its original size into webp, jpeg or png."""
    return _encode(_open(raw), fmt, quality)

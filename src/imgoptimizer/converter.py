from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from .errors import ImageDecodeError
from .imaging import encode_image
from .settings import PluginSettings
from .storage import ObjectStorageSink, Storage
from .tools import ToolResult, convert_image
from .types import ImageArtifact


logger = logging.getLogger(__name__)

_ALPHABET = string.digits + string.ascii_lowercase

ToolRunner = Callable[..., ToolResult]


def random_filename(file_extension: str = "") -> str:
    """`PastedImage_{UTC timestamp}_{5 random chars}[.ext]`."""
    now = datetime.now(timezone.utc)
    stamp = now.strftime("%Y%m%dT%H%M%S") + f"{now.microsecond // 1000:03d}Z"
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(5))
    ext = f".{file_extension.lower()}" if file_extension else ""
    return f"PastedImage_{stamp}_{suffix}{ext}"


def _png_artifact(raw: bytes, filename: Optional[str] = None) -> ImageArtifact:
    return ImageArtifact(
        mime_type="image/png",
        file_extension="png",
        filename=filename or random_filename("png"),
        data=bytes(raw),
    )


class ImageConverter:
    """Turns pasted image bytes into a stored file in the configured format."""

    def __init__(
        self,
        settings: PluginSettings,
        storage: Storage,
        *,
        sink: Optional[ObjectStorageSink] = None,
        tool_runner: ToolRunner = convert_image,
    ):
        self.settings = settings
        self.storage = storage
        self.sink = sink
        self._tool_runner = tool_runner

    def process_image(self, raw: bytes, fmt: str) -> ImageArtifact:
        """In-process conversion to webp/jpeg/png; encode failures fall back to the original PNG."""
        fmt = str(fmt).lower()
        if fmt == "png":
            return _png_artifact(raw)
        try:
            data = encode_image(raw, fmt, quality=self.settings.compression_level)
        except ImageDecodeError as e:
            logger.error("Encoding as %s failed, keeping PNG: %s", fmt, e)
            return _png_artifact(raw)
        return ImageArtifact(
            mime_type=f"image/{fmt}",
            file_extension=fmt,
            filename=random_filename(fmt),
            data=data,
        )

    def process_avif(self, raw: bytes) -> ImageArtifact:
        """External-tool AVIF conversion; on failure the temporary PNG becomes the result."""
        stem = random_filename()
        png_path = self.storage.write_binary(self.storage.available_path(f"{stem}.png"), raw)
        avif_path = self.storage.available_path(f"{stem}.avif")

        result = self._tool_runner(self.settings.bin_exec, png_path, avif_path, self.settings.compression_level)
        logger.debug("AVIF conversion result=%s stdout=%r stderr=%r", result.result, result.stdout, result.stderr)

        if result.result and self.storage.exists(avif_path):
            self.storage.delete(png_path)
            return ImageArtifact(
                mime_type="image/avif",
                file_extension="avif",
                filename=Path(avif_path).name,
                file_path=Path(avif_path),
            )

        logger.warning("AVIF conversion failed (%s); falling back to PNG", result.error or "unknown error")
        self.storage.delete(avif_path)
        return ImageArtifact(
            mime_type="image/png",
            file_extension="png",
            filename=Path(png_path).name,
            file_path=Path(png_path),
        )

    def to_artifact(self, raw: bytes) -> ImageArtifact:
        fmt = self.settings.image_format
        if fmt == "avif":
            return self.process_avif(raw)
        return self.process_image(raw, fmt)

    def convert(self, raw: bytes) -> str:
        """Convert, store and (optionally) upload; returns the embeddable path or URL."""
        artifact = self.to_artifact(raw)
        if artifact.file_path is not None:
            path = artifact.file_path
        else:
            path = self.storage.write_binary(self.storage.available_path(artifact.filename), artifact.data or b"")

        if self.sink is None:
            return str(path)
        try:
            url = self.sink.put(Path(path).name, self.storage.read_binary(path), artifact.mime_type)
        except Exception as e:
            logger.warning("Upload of %s failed, keeping local file: %s", path, e)
            return str(path)
        self.storage.delete(path)
        return url

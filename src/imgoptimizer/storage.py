from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from .errors import OptionalDependencyMissingError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class Storage(Protocol):
    """Minimal file storage used by the converter (the note vault's attachment folder)."""

    def write_binary(self, path: PathLike, data: bytes) -> Path: ...

    def read_binary(self, path: PathLike) -> bytes: ...

    def delete(self, path: PathLike) -> None: ...

    def available_path(self, suggested_name: str) -> Path: ...

    def exists(self, path: PathLike) -> bool: ...


class ObjectStorageSink(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> str: ...


class LocalStorage:
    """Attachment folder on the local filesystem.

    `available_path` never returns an existing file: collisions get ` 1`, ` 2`, ...
    appended to the stem.
    """

    def __init__(self, base_dir: Optional[PathLike] = None):
        if base_dir is None:
            base_dir = Path.home() / ".imgoptimizer" / "attachments"
        self._base_dir = Path(base_dir).expanduser().resolve()
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _resolve(self, path: PathLike) -> Path:
        p = Path(path)
        if not p.is_absolute():
            p = self._base_dir / p
        return p

    def _validate_name(self, name: str) -> str:
        name = str(name or "").strip()
        if not name or os.sep in name or (os.altsep and os.altsep in name) or name in {".", ".."}:
            raise ValueError(f"Invalid file name: {name!r}")
        return name

    def available_path(self, suggested_name: str) -> Path:
        name = self._validate_name(suggested_name)
        candidate = self._base_dir / name
        if not candidate.exists():
            return candidate
        stem, suffix = candidate.stem, candidate.suffix
        i = 1
        while True:
            candidate = self._base_dir / f"{stem} {i}{suffix}"
            if not candidate.exists():
                return candidate
            i += 1

    def write_binary(self, path: PathLike, data: bytes) -> Path:
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("data must be bytes")
        p = self._resolve(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(bytes(data))
        logger.debug("Wrote %d bytes to %s", len(data), p)
        return p

    def read_binary(self, path: PathLike) -> bytes:
        return self._resolve(path).read_bytes()

    def delete(self, path: PathLike) -> None:
        p = self._resolve(path)
        if p.exists():
            p.unlink()
            logger.debug("Deleted %s", p)

    def exists(self, path: PathLike) -> bool:
        return self._resolve(path).is_file()


class S3ObjectSink:
    """S3-compatible bucket (AWS, MinIO, R2) used to publish converted images."""

    def __init__(
        self,
        bucket: str,
        *,
        prefix: str = "",
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        client: Any = None,
    ):
        if not str(bucket or "").strip():
            raise ValueError("bucket must be a non-empty string")
        self.bucket = str(bucket)
        self.prefix = str(prefix or "")
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self._client = client

    def _require_client(self) -> Any:
        if self._client is not None:
            return self._client
        try:
            import boto3
        except ImportError as e:
            raise OptionalDependencyMissingError(
                "S3 upload requires boto3. Install with: pip install 'imgoptimizer[s3]'"
            ) from e
        self._client = boto3.client("s3", endpoint_url=self.endpoint_url)
        return self._client

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        full_key = f"{self.prefix}{key}"
        self._require_client().put_object(
            Bucket=self.bucket,
            Key=full_key,
            Body=bytes(data),
            ContentType=str(content_type),
        )
        logger.info("Uploaded %s to s3://%s", full_key, self.bucket)
        return self.public_url(full_key)

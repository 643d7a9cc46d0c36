from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .vault import generate_salt


logger = logging.getLogger(__name__)

VALID_FORMATS = ("webp", "png", "avif", "jpeg")
DEFAULT_COMPRESSION_LEVEL = 90

PathLike = Union[str, Path]


def default_settings_path() -> Path:
    return Path(_env("IMGOPTIMIZER_SETTINGS") or (Path.home() / ".imgoptimizer" / "settings.json")).expanduser()


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.environ.get(key)
    if v is None:
        return default
    s = str(v).strip()
    return s if s else default


@dataclass
class PluginSettings:
    """Persisted configuration. `ai_model_api_keys` holds ciphertext only."""

    salt: str = ""
    image_format: str = "webp"
    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    bin_exec: str = ""
    ai_model: str = ""
    ai_model_api_keys: Dict[str, str] = field(default_factory=dict)
    attachments_dir: Optional[str] = None
    s3_bucket: Optional[str] = None
    s3_prefix: str = ""
    s3_endpoint_url: Optional[str] = None
    s3_public_base_url: Optional[str] = None

    def __post_init__(self) -> None:
        self.normalize()

    def normalize(self) -> None:
        fmt = str(self.image_format or "").strip().lower()
        self.image_format = fmt if fmt in VALID_FORMATS else "webp"
        try:
            level = int(float(self.compression_level))
        except (TypeError, ValueError, OverflowError):
            level = DEFAULT_COMPRESSION_LEVEL
        self.compression_level = min(100, max(1, level))
        self.bin_exec = str(self.bin_exec or "").strip()
        self.ai_model = str(self.ai_model or "").strip()
        if not isinstance(self.ai_model_api_keys, dict):
            self.ai_model_api_keys = {}

    def ensure_salt(self) -> bool:
        """Generate the installation salt on first use; returns True when it was created."""
        if str(self.salt or "").strip():
            return False
        self.salt = generate_salt()
        return True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PluginSettings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in dict(data).items() if k in known})


_ENV_FIELDS = {
    "image_format": "IMGOPTIMIZER_IMAGE_FORMAT",
    "compression_level": "IMGOPTIMIZER_COMPRESSION_LEVEL",
    "bin_exec": "IMGOPTIMIZER_BIN_EXEC",
    "ai_model": "IMGOPTIMIZER_AI_MODEL",
    "attachments_dir": "IMGOPTIMIZER_ATTACHMENTS_DIR",
    "s3_bucket": "IMGOPTIMIZER_S3_BUCKET",
    "s3_prefix": "IMGOPTIMIZER_S3_PREFIX",
    "s3_endpoint_url": "IMGOPTIMIZER_S3_ENDPOINT_URL",
    "s3_public_base_url": "IMGOPTIMIZER_S3_PUBLIC_BASE_URL",
}


def apply_env_overrides(settings: PluginSettings) -> PluginSettings:
    for name, key in _ENV_FIELDS.items():
        value = _env(key)
        if value is not None:
            setattr(settings, name, value)
    settings.normalize()
    return settings


def load_settings(path: Optional[PathLike] = None, *, env: bool = True) -> PluginSettings:
    p = Path(path).expanduser() if path is not None else default_settings_path()
    data: Dict[str, Any] = {}
    if p.exists():
        raw = json.loads(p.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid settings file (expected JSON object): {p}")
        data = raw
    settings = PluginSettings.from_dict(data)
    if env:
        apply_env_overrides(settings)
    return settings


def save_settings(settings: PluginSettings, path: Optional[PathLike] = None) -> Path:
    p = Path(path).expanduser() if path is not None else default_settings_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(settings.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
    logger.debug("Saved settings to %s", p)
    return p

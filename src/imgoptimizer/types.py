from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


INTERFACE_KINDS = (
    "anthropic",
    "google_generative_ai",
    "mistral",
    "openai",
    "together_ai",
    "alibaba_cloud",
)


class Task(str, Enum):
    OCR = "ocr"
    SUMMARIZE = "summarize"


class PromptMode(str, Enum):
    """Prompt variant selector.

    LLAMA is a terser OCR instruction that smaller open models follow better.
    """

    DEFAULT = "default"
    LLAMA = "llama"


class WireEncoding(str, Enum):
    BASE64 = "base64"
    DATA_URL = "data_url"


def make_setting_key(platform_id: str, model_id: str) -> str:
    return f"{platform_id}/{model_id}"


@dataclass(frozen=True)
class ModelDescriptor:
    """One selectable remote model and the adapter kind that drives it."""

    platform_id: str
    model_id: str
    interface_kind: str

    @property
    def setting_key(self) -> str:
        return make_setting_key(self.platform_id, self.model_id)

    @property
    def label(self) -> str:
        return f"{self.model_id} ({self.platform_id})"


@dataclass(frozen=True)
class ImageSpec:
    """Per-adapter resize/encode constraints for image payloads."""

    max_dimensions: int = 1000
    max_pixels: int = 1_000_000
    target_format: str = "webp"  # "webp" | "png"
    wire_encoding: WireEncoding = WireEncoding.BASE64

    def __post_init__(self) -> None:
        if self.target_format not in {"webp", "png"}:
            raise ValueError(f"Unsupported target format: {self.target_format!r}")
        if int(self.max_dimensions) < 1 or int(self.max_pixels) < 1:
            raise ValueError("max_dimensions and max_pixels must be positive")

    @property
    def mime_type(self) -> str:
        return f"image/{self.target_format}"


@dataclass(frozen=True)
class GenerationParams:
    temperature: float
    top_p: float


OCR_PARAMS = GenerationParams(temperature=0.1, top_p=0.9)
SUMMARIZE_PARAMS = GenerationParams(temperature=0.3, top_p=0.9)


@dataclass(frozen=True)
class ImageArtifact:
    """A converted image, either held in memory or already written to storage.

    Exactly one of `data` / `file_path` is set.
    """

    mime_type: str
    file_extension: str
    filename: str
    data: Optional[bytes] = None
    file_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if (self.data is None) == (self.file_path is None):
            raise ValueError("ImageArtifact requires exactly one of `data` or `file_path`.")

    @property
    def stem(self) -> str:
        return Path(self.filename).stem


@dataclass(frozen=True)
class ConversionSession:
    """Provider, task and resolved key for the lifetime of one operation."""

    descriptor: ModelDescriptor
    task: Task
    api_key: str = field(repr=False)

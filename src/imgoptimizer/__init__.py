"""imgoptimizer: image conversion and AI-assisted OCR/summaries for Markdown notes.

Pasted images are re-encoded (webp/jpeg/png in-process, AVIF through ffmpeg, magick
or vips), and images or text can be sent to one of the supported vision models.
API keys are stored encrypted at rest.
"""

from .errors import (
    ConfigurationError,
    GateBusyError,
    ImgOptimizerError,
    ProviderCallError,
)
from .model_registry import ModelRegistry
from .optimizer import ImageOptimizer, Outcome, embed_markdown
from .settings import PluginSettings, load_settings, save_settings
from .storage import LocalStorage, S3ObjectSink
from .vault import CredentialVault

__version__ = "0.1.0"

__all__ = [
    "ImageOptimizer",
    "Outcome",
    "embed_markdown",
    "ModelRegistry",
    "PluginSettings",
    "load_settings",
    "save_settings",
    "LocalStorage",
    "S3ObjectSink",
    "CredentialVault",
    "ImgOptimizerError",
    "ConfigurationError",
    "GateBusyError",
    "ProviderCallError",
    "__version__",
]

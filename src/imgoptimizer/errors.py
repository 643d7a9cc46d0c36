class ImgOptimizerError(Exception):
    """Base exception for the imgoptimizer package."""


class ConfigurationError(ImgOptimizerError):
    """Raised when an API key or model selection is missing or invalid."""


class AdapterConstructionError(ConfigurationError):
    """Raised when no adapter implementation exists for a model's interface kind."""


class OptionalDependencyMissingError(ImgOptimizerError):
    """Raised when an optional dependency (e.g. boto3) is missing."""


class ImageDecodeError(ImgOptimizerError):
    """Raised when image bytes cannot be decoded or re-encoded."""


class ExternalToolError(ImgOptimizerError):
    """Raised when an external converter is missing, fails, or writes no output."""


class CryptoError(ImgOptimizerError):
    """Raised when a stored credential cannot be decrypted."""


class GateBusyError(ImgOptimizerError):
    """Raised when a guarded operation is attempted while another one is in flight."""


class ProviderCallError(ImgOptimizerError):
    """Raised when a remote AI provider call fails (transport or vendor-side)."""

    def __init__(self, vendor: str, cause: BaseException, *, detail: str = ""):
        self.vendor = str(vendor)
        self.cause = cause
        self.detail = str(detail or "")
        msg = f"{self.vendor} call failed: {cause}"
        if self.detail:
            msg += f" ({self.detail})"
        super().__init__(msg)

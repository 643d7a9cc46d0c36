"""Provider adapters.

The set of adapters is closed: `create_adapter` dispatches once on the model's
`interface_kind`, so adding a vendor means adding a class and a table entry.
"""

from typing import Any, Dict, Type

from ..errors import AdapterConstructionError
from ..types import ModelDescriptor
from .anthropic import AnthropicAdapter
from .base_provider import ProviderAdapter
from .google import GoogleGenerativeAIAdapter
from .mistral import MistralAdapter
from .openai_compatible import AlibabaCloudAdapter, OpenAIAdapter, OpenAICompatibleAdapter, TogetherAIAdapter

__all__ = [
    "ProviderAdapter",
    "AnthropicAdapter",
    "GoogleGenerativeAIAdapter",
    "MistralAdapter",
    "OpenAICompatibleAdapter",
    "OpenAIAdapter",
    "TogetherAIAdapter",
    "AlibabaCloudAdapter",
    "ADAPTERS",
    "create_adapter",
]


ADAPTERS: Dict[str, Type[ProviderAdapter]] = {
    "anthropic": AnthropicAdapter,
    "google_generative_ai": GoogleGenerativeAIAdapter,
    "mistral": MistralAdapter,
    "openai": OpenAIAdapter,
    "together_ai": TogetherAIAdapter,
    "alibaba_cloud": AlibabaCloudAdapter,
}


def create_adapter(descriptor: ModelDescriptor, **options: Any) -> ProviderAdapter:
    cls = ADAPTERS.get(str(descriptor.interface_kind))
    if cls is None:
        raise AdapterConstructionError(
            f"No adapter for interface kind {descriptor.interface_kind!r} (model {descriptor.setting_key!r})."
        )
    return cls(descriptor, **options)

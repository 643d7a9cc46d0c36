from __future__ import annotations

from typing import Any, Dict

from ..types import GenerationParams, ImageSpec, PromptMode, WireEncoding
from .base_provider import ProviderAdapter, join_text_parts, join_url
from .prompts import SYSTEM, USER, summarize_prompt


ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 1000


class AnthropicAdapter(ProviderAdapter):
    """Anthropic messages API. Images travel as base64 source blocks ahead of the prompt."""

    vendor = "Anthropic"
    default_base_url = "https://api.anthropic.com/v1"
    image_spec = ImageSpec(max_dimensions=1000, max_pixels=1_000_000, target_format="webp", wire_encoding=WireEncoding.BASE64)

    def _endpoint(self) -> str:
        return join_url(self.base_url, "/messages")

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self._require_key(), "anthropic-version": ANTHROPIC_VERSION}

    def _ocr_payload(self, prompt: str, params: GenerationParams) -> Dict[str, Any]:
        image_blocks = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": self.image_spec.mime_type, "data": image},
            }
            for image in self._images
        ]
        return {
            "model": self.model_id,
            "max_tokens": MAX_TOKENS,
            "temperature": params.temperature,
            "top_p": params.top_p,
            "messages": [{"role": "user", "content": [*image_blocks, {"type": "text", "text": prompt}]}],
        }

    def _summarize_payload(self, original_text: str, mode: PromptMode, params: GenerationParams) -> Dict[str, Any]:
        return {
            "model": self.model_id,
            "max_tokens": MAX_TOKENS,
            "system": summarize_prompt(original_text, role=SYSTEM, mode=mode),
            "temperature": params.temperature,
            "top_p": params.top_p,
            "messages": [
                {
                    "role": "user",
                    "content": [{"type": "text", "text": summarize_prompt(original_text, role=USER, mode=mode)}],
                }
            ],
        }

    def _parse_text(self, resp: Dict[str, Any]) -> str:
        content = resp.get("content")
        if not isinstance(content, list):
            raise ValueError("Invalid response: missing `content` list")
        return join_text_parts(content)

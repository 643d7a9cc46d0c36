from __future__ import annotations

from typing import Any, Dict

from ..types import GenerationParams, ImageSpec, PromptMode, WireEncoding
from .base_provider import ProviderAdapter, join_url
from .openai_compatible import parse_chat_completion
from .prompts import USER, summarize_prompt


class MistralAdapter(ProviderAdapter):
    """Mistral chat API. Image chunks carry the data URL directly in `image_url`."""

    vendor = "Mistral"
    default_base_url = "https://api.mistral.ai/v1"
    image_spec = ImageSpec(max_dimensions=1000, max_pixels=1_000_000, target_format="webp", wire_encoding=WireEncoding.DATA_URL)

    def _endpoint(self) -> str:
        return join_url(self.base_url, "/chat/completions")

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._require_key()}"}

    def _ocr_payload(self, prompt: str, params: GenerationParams) -> Dict[str, Any]:
        image_chunks = [{"type": "image_url", "image_url": image} for image in self._images]
        return {
            "model": self.model_id,
            "temperature": params.temperature,
            "top_p": params.top_p,
            "messages": [{"role": "user", "content": [{"type": "text", "text": prompt}, *image_chunks]}],
        }

    def _summarize_payload(self, original_text: str, mode: PromptMode, params: GenerationParams) -> Dict[str, Any]:
        return {
            "model": self.model_id,
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
        return parse_chat_completion(resp)

from __future__ import annotations

from typing import Any, Dict

from ..types import GenerationParams, ImageSpec, PromptMode, WireEncoding
from .base_provider import ProviderAdapter, join_text_parts, join_url
from .prompts import SYSTEM, summarize_prompt


def parse_chat_completion(resp: Dict[str, Any]) -> str:
    """Text of `choices[0].message.content`, which may be a string or a list of content parts."""
    choices = resp.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ValueError("Invalid response: missing `choices`")
    choice = choices[0]
    if not isinstance(choice, dict):
        raise ValueError("Invalid response: `choices[0]` is not an object")
    message = choice.get("message") or {}
    if not isinstance(message, dict):
        raise ValueError("Invalid response: `message` is not an object")
    content = message.get("content")
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return join_text_parts(content)
    raise ValueError("Invalid response: unexpected message content type")


class OpenAICompatibleAdapter(ProviderAdapter):
    """Chat-completions shaped APIs (OpenAI and vendors exposing the same HTTP shape)."""

    image_spec = ImageSpec(max_dimensions=1000, max_pixels=1_000_000, target_format="webp", wire_encoding=WireEncoding.DATA_URL)

    def _endpoint(self) -> str:
        return join_url(self.base_url, "/chat/completions")

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._require_key()}"}

    def _ocr_payload(self, prompt: str, params: GenerationParams) -> Dict[str, Any]:
        image_parts = [{"type": "image_url", "image_url": {"url": image}} for image in self._images]
        return {
            "model": self.model_id,
            "stream": False,
            "temperature": params.temperature,
            "top_p": params.top_p,
            "messages": [{"role": "user", "content": [{"type": "text", "text": prompt}, *image_parts]}],
        }

    def _summarize_payload(self, original_text: str, mode: PromptMode, params: GenerationParams) -> Dict[str, Any]:
        return {
            "model": self.model_id,
            "stream": False,
            "temperature": params.temperature,
            "top_p": params.top_p,
            "messages": [
                {"role": "system", "content": summarize_prompt(original_text, role=SYSTEM, mode=mode)},
                {"role": "user", "content": [{"type": "text", "text": original_text}]},
            ],
        }

    def _parse_text(self, resp: Dict[str, Any]) -> str:
        return parse_chat_completion(resp)


class OpenAIAdapter(OpenAICompatibleAdapter):
    vendor = "OpenAI"
    default_base_url = "https://api.openai.com/v1"


class TogetherAIAdapter(OpenAICompatibleAdapter):
    """TogetherAI hosts Llama vision models, which follow the terser OCR prompt better."""

    vendor = "TogetherAI"
    default_base_url = "https://api.together.xyz/v1"
    default_prompt_mode = PromptMode.LLAMA


class AlibabaCloudAdapter(OpenAICompatibleAdapter):
    vendor = "AlibabaCloud"
    default_base_url = "https://dashscope-intl.aliyuncs.com/compatible-mode/v1"

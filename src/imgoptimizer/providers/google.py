from __future__ import annotations

from typing import Any, Dict
from urllib.parse import quote

from ..types import GenerationParams, ImageSpec, PromptMode, WireEncoding
from .base_provider import ProviderAdapter, join_text_parts, join_url
from .prompts import USER, summarize_prompt


class GoogleGenerativeAIAdapter(ProviderAdapter):
    """Gemini `generateContent`. Images travel as `inline_data` parts after the prompt."""

    vendor = "Google"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"
    image_spec = ImageSpec(max_dimensions=1000, max_pixels=1_000_000, target_format="webp", wire_encoding=WireEncoding.BASE64)

    def _endpoint(self) -> str:
        return join_url(self.base_url, f"/models/{quote(self.model_id, safe='')}:generateContent")

    def _headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self._require_key()}

    @staticmethod
    def _generation_config(params: GenerationParams) -> Dict[str, Any]:
        return {"temperature": params.temperature, "topP": params.top_p}

    def _ocr_payload(self, prompt: str, params: GenerationParams) -> Dict[str, Any]:
        image_parts = [{"inline_data": {"mime_type": self.image_spec.mime_type, "data": image}} for image in self._images]
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}, *image_parts]}],
            "generationConfig": self._generation_config(params),
        }

    def _summarize_payload(self, original_text: str, mode: PromptMode, params: GenerationParams) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": summarize_prompt(original_text, role=USER, mode=mode)}]}],
            "generationConfig": self._generation_config(params),
        }

    def _parse_text(self, resp: Dict[str, Any]) -> str:
        candidates = resp.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            feedback = resp.get("promptFeedback") or {}
            reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            raise ValueError(f"Invalid response: no candidates (blockReason={reason!r})")
        candidate = candidates[0]
        content = candidate.get("content") if isinstance(candidate, dict) else None
        if not isinstance(content, dict):
            raise ValueError("Invalid response: `candidates[0].content` is not an object")
        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise ValueError("Invalid response: `parts` is not a list")
        return join_text_parts(parts)

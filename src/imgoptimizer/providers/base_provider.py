from __future__ import annotations

import json
import logging
from http.client import HTTPException
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import ConfigurationError, ProviderCallError
from ..imaging import preprocess_image
from ..types import (
    OCR_PARAMS,
    SUMMARIZE_PARAMS,
    GenerationParams,
    ImageSpec,
    ModelDescriptor,
    PromptMode,
    WireEncoding,
)
from .prompts import ocr_prompt


logger = logging.getLogger(__name__)


def join_url(base_url: str, path: str) -> str:
    b = str(base_url or "").rstrip("/")
    p = str(path or "").strip()
    if not p:
        return b
    if not p.startswith("/"):
        p = "/" + p
    return b + p


def join_text_parts(parts: Iterable[Any]) -> str:
    """Concatenate text parts with a single space; non-text parts are ignored."""
    texts: List[str] = []
    for part in parts:
        if isinstance(part, str):
            text = part
        elif isinstance(part, dict) and isinstance(part.get("text"), str):
            if part.get("type") not in (None, "text"):
                continue
            text = part["text"]
        else:
            continue
        if text:
            texts.append(text)
    return " ".join(texts)


def _http_error_detail(err: HTTPError) -> str:
    try:
        body = err.read()
    except OSError:
        return ""
    return (body or b"").decode("utf-8", errors="replace").strip()[:1000]


class ProviderAdapter(ABC):
    """One vendor's implementation of the OCR/summarize contract.

    Lifecycle: construct -> `init(api_key)` -> `add_image(...)` (any number) -> task call.
    Subclasses own request marshaling and response parsing only.
    """

    vendor: str = ""
    default_base_url: str = ""
    image_spec: ImageSpec = ImageSpec()
    default_prompt_mode: PromptMode = PromptMode.DEFAULT

    def __init__(
        self,
        descriptor: ModelDescriptor,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ):
        self.descriptor = descriptor
        self._base_url = str(base_url or self.default_base_url)
        self._timeout_s = timeout_s
        self._api_key: Optional[str] = None
        self._images: List[str] = []

    @property
    def model_id(self) -> str:
        return self.descriptor.model_id

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def images(self) -> Tuple[str, ...]:
        return tuple(self._images)

    def init(self, api_key: str) -> None:
        key = str(api_key or "").strip()
        if not key:
            raise ConfigurationError(f"{self.vendor} API key is empty.")
        if any(c.isspace() for c in key):
            raise ConfigurationError(f"{self.vendor} API key is malformed (contains whitespace).")
        self._api_key = key

    def add_image(self, raw: bytes) -> None:
        output = "data_url" if self.image_spec.wire_encoding == WireEncoding.DATA_URL else "base64"
        self._images.append(preprocess_image(raw, self.image_spec, output=output))

    def task_ocr(self, mode: Optional[PromptMode] = None) -> str:
        self._require_key()
        if not self._images:
            raise ConfigurationError("No image queued for OCR; call add_image() first.")
        prompt = ocr_prompt(mode=mode or self.default_prompt_mode)
        payload = self._ocr_payload(prompt, OCR_PARAMS)
        return self._call(payload)

    def task_summarize(self, original_text: str, mode: Optional[PromptMode] = None) -> str:
        self._require_key()
        payload = self._summarize_payload(str(original_text), mode or self.default_prompt_mode, SUMMARIZE_PARAMS)
        return self._call(payload)

    def _require_key(self) -> str:
        if not self._api_key:
            raise ConfigurationError(f"{self.vendor} adapter is not initialized; call init(api_key) first.")
        return self._api_key

    def _call(self, payload: Dict[str, Any]) -> str:
        url = self._endpoint()
        logger.info("Calling %s model %s", self.vendor, self.model_id)
        try:
            data = self._post_json(url, payload)
            return self._parse_text(data)
        except HTTPError as e:
            raise ProviderCallError(self.vendor, e, detail=_http_error_detail(e)) from e
        except (URLError, HTTPException, OSError, ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderCallError(self.vendor, e) from e

    def _post_json(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        headers.update(self._headers())
        req = Request(url=url, data=body, method="POST", headers=headers)
        with urlopen(req, timeout=self._timeout_s) as resp:
            raw = resp.read()
        data = json.loads(raw.decode("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Invalid response: expected JSON object")
        return data

    @abstractmethod
    def _endpoint(self) -> str: ...

    @abstractmethod
    def _headers(self) -> Dict[str, str]: ...

    @abstractmethod
    def _ocr_payload(self, prompt: str, params: GenerationParams) -> Dict[str, Any]: ...

    @abstractmethod
    def _summarize_payload(self, original_text: str, mode: PromptMode, params: GenerationParams) -> Dict[str, Any]: ...

    @abstractmethod
    def _parse_text(self, resp: Dict[str, Any]) -> str: ...

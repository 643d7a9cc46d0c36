from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional, TypeVar

from .converter import ImageConverter
from .errors import ConfigurationError
from .gate import SingleFlightGate
from .model_registry import ModelRegistry
from .providers import ProviderAdapter, create_adapter
from .settings import PluginSettings
from .storage import ObjectStorageSink, Storage
from .types import ConversionSession, ModelDescriptor, Task
from .vault import CredentialVault


logger = logging.getLogger(__name__)

T = TypeVar("T")


def embed_markdown(path: str) -> str:
    return f"![[{path}]]"


@dataclass(frozen=True)
class Outcome:
    """Result of one sub-task (one pasted image)."""

    ok: bool
    value: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def message(self) -> str:
        if self.ok:
            return str(self.value or "")
        return str(self.error or "unknown error")


@dataclass
class ImageOptimizer:
    """Entry points for pasting, OCR and summarization.

    Every public operation holds the single-flight gate for its whole lifetime, so a
    second operation started meanwhile fails with GateBusyError instead of queueing.
    Images of one operation are processed concurrently and fail independently.
    """

    settings: PluginSettings
    storage: Storage
    registry: Optional[ModelRegistry] = None
    sink: Optional[ObjectStorageSink] = None
    gate: SingleFlightGate = field(default_factory=SingleFlightGate)
    adapter_factory: Callable[[ModelDescriptor], ProviderAdapter] = create_adapter
    converter: Optional[ImageConverter] = None

    def __post_init__(self) -> None:
        if self.registry is None:
            self.registry = ModelRegistry()
        if self.converter is None:
            self.converter = ImageConverter(self.settings, self.storage, sink=self.sink)

    @property
    def vault(self) -> CredentialVault:
        self.settings.ensure_salt()
        return CredentialVault(self.settings.salt, self.settings.ai_model_api_keys)

    def _require_model(self) -> ModelDescriptor:
        reg = self.registry or ModelRegistry()
        descriptor = reg.lookup_key(self.settings.ai_model)
        if descriptor is None:
            raise ConfigurationError(f"AI model not found: {self.settings.ai_model!r}")
        return descriptor

    def resolve_session(self, task: Task) -> ConversionSession:
        descriptor = self._require_model()
        api_key = self.vault.get_key(descriptor.setting_key)
        if not api_key:
            raise ConfigurationError(f"AI model API key not found for {descriptor.setting_key}")
        return ConversionSession(descriptor=descriptor, task=Task(task), api_key=api_key)

    def _new_adapter(self, session: ConversionSession) -> ProviderAdapter:
        adapter = self.adapter_factory(session.descriptor)
        adapter.init(session.api_key)
        return adapter

    def _require_converter(self) -> ImageConverter:
        if self.converter is None:
            self.converter = ImageConverter(self.settings, self.storage, sink=self.sink)
        return self.converter

    async def _gather(self, fn: Callable[[T], str], items: List[T]) -> List[Outcome]:
        results = await asyncio.gather(*(asyncio.to_thread(fn, item) for item in items), return_exceptions=True)
        outcomes: List[Outcome] = []
        for r in results:
            if isinstance(r, Exception):
                logger.error("Sub-task failed: %s", r)
                outcomes.append(Outcome(ok=False, error=r))
            elif isinstance(r, BaseException):
                raise r
            else:
                outcomes.append(Outcome(ok=True, value=r))
        return outcomes

    async def paste_images(self, blobs: Iterable[bytes]) -> List[Outcome]:
        """Convert and store each image; each outcome carries the stored path (or URL)."""
        items = list(blobs)
        with self.gate.hold("paste_images"):
            if not items:
                return []
            return await self._gather(self._require_converter().convert, items)

    async def images_to_markdown(self, blobs: Iterable[bytes], *, include_image: bool = False) -> List[Outcome]:
        """OCR each image with the configured model.

        With `include_image`, the image is also stored and its embed precedes the text.
        """
        items = list(blobs)
        with self.gate.hold("images_to_markdown"):
            if not items:
                return []
            session = self.resolve_session(Task.OCR)
            logger.info("Interacting with %s", session.descriptor.model_id)

            def _one(raw: bytes) -> str:
                adapter = self._new_adapter(session)
                adapter.add_image(raw)
                text = adapter.task_ocr()
                if include_image:
                    path = self._require_converter().convert(raw)
                    return f"\n{embed_markdown(path)}\n\n{text}\n"
                return text

            return await self._gather(_one, items)

    async def summarize_text(self, text: str) -> str:
        original = str(text or "").strip()
        if not original:
            raise ValueError("No text selected")
        with self.gate.hold("summarize_text"):
            session = self.resolve_session(Task.SUMMARIZE)
            logger.info("Interacting with %s", session.descriptor.model_id)
            adapter = self._new_adapter(session)
            return await asyncio.to_thread(adapter.task_summarize, original)

    def save_api_keys(self, keys: Mapping[str, str]) -> None:
        """Encrypt and store API keys keyed by `platform/model`; empty values remove a key."""
        with self.gate.hold("save_api_keys"):
            self.vault.store_many(keys)

from __future__ import annotations

import json
import pkgutil
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .types import INTERFACE_KINDS, ModelDescriptor, make_setting_key


class ModelRegistry:
    """Loads `assets/models.json` and answers model lookups.

    The catalog is read-only: lookups return `None` for unknown models instead of raising.
    """

    DEFAULT_ASSET_PATH = "assets/models.json"

    def __init__(self, *, asset_path: Optional[str] = None):
        self._asset_path = asset_path or self.DEFAULT_ASSET_PATH
        self._schema_version: str = ""
        self._models: Tuple[ModelDescriptor, ...] = ()
        self._by_key: Dict[str, ModelDescriptor] = {}
        self._load()

    def _load(self) -> None:
        raw = pkgutil.get_data("imgoptimizer", self._asset_path)
        if raw is None:
            raise RuntimeError(f"Model catalog not found: imgoptimizer/{self._asset_path}")
        data = json.loads(raw.decode("utf-8"))
        validate_models_json(data)

        self._schema_version = str(data.get("schema_version") or "")
        models = tuple(
            ModelDescriptor(
                platform_id=str(m["platform_id"]),
                model_id=str(m["model_id"]),
                interface_kind=str(m["interface_kind"]),
            )
            for m in data["models"]
        )
        self._models = models
        self._by_key = {m.setting_key: m for m in models}

    def schema_version(self) -> str:
        return self._schema_version

    def all(self) -> Tuple[ModelDescriptor, ...]:
        return self._models

    def lookup(self, platform_id: str, model_id: str) -> Optional[ModelDescriptor]:
        return self._by_key.get(make_setting_key(str(platform_id or ""), str(model_id or "")))

    def lookup_key(self, setting_key: str) -> Optional[ModelDescriptor]:
        """Lookup by the composite `platform/model` key (model ids may contain '/')."""
        return self._by_key.get(str(setting_key or ""))

    def platforms(self) -> List[str]:
        out: List[str] = []
        for m in self._models:
            if m.platform_id not in out:
                out.append(m.platform_id)
        return out

    def options(self) -> Dict[str, str]:
        """Selection labels keyed by setting key, in catalog order."""
        return {m.setting_key: m.label for m in self._models}


_PathPart = Union[str, int]


def _fmt_path(parts: Sequence[_PathPart]) -> str:
    out: List[str] = []
    for p in parts:
        if isinstance(p, int):
            out.append(f"[{p}]")
        elif not out:
            out.append(str(p))
        else:
            out.append(f"[{p!r}]")
    return "".join(out) if out else "<root>"


def validate_models_json(data: Any) -> None:
    """Validate the `models.json` catalog (required keys, closed interface kinds, unique keys)."""
    if not isinstance(data, dict):
        raise ValueError("Invalid model catalog: top-level JSON must be an object.")
    if data.get("schema_version") is None:
        raise ValueError("Invalid model catalog: missing required key 'schema_version'.")

    models = data.get("models")
    if not isinstance(models, list):
        raise ValueError("Invalid model catalog: 'models' must be a list.")

    def _err(path: Sequence[_PathPart], msg: str) -> None:
        raise ValueError(f"Invalid model catalog at {_fmt_path(path)}: {msg}")

    seen = set()
    for i, m in enumerate(models):
        path: List[_PathPart] = ["models", i]
        if not isinstance(m, dict):
            _err(path, "expected object")
        for key in ("platform_id", "model_id", "interface_kind"):
            value = m.get(key)
            if not isinstance(value, str) or not value.strip():
                _err([*path, key], "expected non-empty string")
        if m["interface_kind"] not in INTERFACE_KINDS:
            _err([*path, "interface_kind"], f"unknown interface kind: {m['interface_kind']!r}")
        setting_key = make_setting_key(m["platform_id"], m["model_id"])
        if setting_key in seen:
            _err(path, f"duplicate model: {setting_key!r}")
        seen.add(setting_key)

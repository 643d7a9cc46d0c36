from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .errors import ImgOptimizerError
from .model_registry import ModelRegistry
from .optimizer import ImageOptimizer
from .settings import PluginSettings, load_settings, save_settings
from .storage import LocalStorage, S3ObjectSink


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _read_inputs(paths: Sequence[str]) -> List[bytes]:
    return [Path(p).expanduser().read_bytes() for p in paths]


def _load(args: argparse.Namespace) -> PluginSettings:
    return load_settings(args.settings)


def _build_optimizer(settings: PluginSettings) -> ImageOptimizer:
    storage = LocalStorage(settings.attachments_dir) if settings.attachments_dir else LocalStorage()
    sink = None
    if settings.s3_bucket:
        sink = S3ObjectSink(
            settings.s3_bucket,
            prefix=settings.s3_prefix,
            endpoint_url=settings.s3_endpoint_url,
            public_base_url=settings.s3_public_base_url,
        )
    return ImageOptimizer(settings=settings, storage=storage, sink=sink)


def _cmd_models(_: argparse.Namespace) -> int:
    reg = ModelRegistry()
    for key, label in reg.options().items():
        print(f"{key}\t{label}")
    return 0


def _cmd_show_model(args: argparse.Namespace) -> int:
    reg = ModelRegistry()
    m = reg.lookup_key(str(args.setting_key))
    if m is None:
        print(f"Error: unknown model {args.setting_key!r} (use `imgoptimizer models`).", file=sys.stderr)
        return 1
    print(m.setting_key)
    print(f"platform: {m.platform_id}")
    print(f"model: {m.model_id}")
    print(f"interface: {m.interface_kind}")
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    settings = _load(args)
    updates: Dict[str, Any] = {
        "image_format": args.image_format,
        "compression_level": args.compression_level,
        "bin_exec": args.bin_exec,
        "ai_model": args.ai_model,
        "attachments_dir": args.attachments_dir,
    }
    changed = False
    for name, value in updates.items():
        if value is not None:
            setattr(settings, name, value)
            changed = True
    if args.ai_model is not None and ModelRegistry().lookup_key(args.ai_model) is None:
        print(f"Error: unknown model {args.ai_model!r} (use `imgoptimizer models`).", file=sys.stderr)
        return 1
    settings.normalize()
    if changed:
        save_settings(settings, args.settings)

    shown = settings.to_dict()
    # Never print ciphertext or the salt.
    shown["ai_model_api_keys"] = sorted(settings.ai_model_api_keys.keys())
    shown.pop("salt", None)
    _print_json(shown)
    return 0


def _cmd_set_key(args: argparse.Namespace) -> int:
    settings = _load(args)
    if ModelRegistry().lookup_key(args.setting_key) is None:
        print(f"Error: unknown model {args.setting_key!r} (use `imgoptimizer models`).", file=sys.stderr)
        return 1
    api_key = args.api_key if args.api_key is not None else sys.stdin.readline()
    vm = _build_optimizer(settings)
    vm.save_api_keys({args.setting_key: api_key})
    save_settings(settings, args.settings)
    print("ok")
    return 0


def _print_outcomes(paths: Sequence[str], outcomes: Sequence[Any]) -> int:
    rc = 0
    for path, out in zip(paths, outcomes):
        if out.ok:
            print(out.value)
        else:
            print(f"Error: {path}: {out.message}", file=sys.stderr)
            rc = 1
    return rc


def _cmd_convert(args: argparse.Namespace) -> int:
    settings = _load(args)
    if args.image_format:
        settings.image_format = args.image_format
        settings.normalize()
    vm = _build_optimizer(settings)
    outcomes = asyncio.run(vm.paste_images(_read_inputs(args.images)))
    return _print_outcomes(args.images, outcomes)


def _cmd_ocr(args: argparse.Namespace) -> int:
    settings = _load(args)
    vm = _build_optimizer(settings)
    outcomes = asyncio.run(vm.images_to_markdown(_read_inputs(args.images), include_image=bool(args.include_image)))
    return _print_outcomes(args.images, outcomes)


def _cmd_summarize(args: argparse.Namespace) -> int:
    settings = _load(args)
    text = Path(args.file).expanduser().read_text(encoding="utf-8") if args.file else sys.stdin.read()
    vm = _build_optimizer(settings)
    print(asyncio.run(vm.summarize_text(text)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="imgoptimizer", description="Image optimizer CLI (conversion + AI OCR/summaries).")
    p.add_argument("--settings", default=None, help="Settings JSON path (default: $IMGOPTIMIZER_SETTINGS or ~/.imgoptimizer/settings.json).")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("models", help="List supported AI models (setting key + label).").set_defaults(_fn=_cmd_models)

    sm = sub.add_parser("show-model", help="Show a model's platform and interface.")
    sm.add_argument("setting_key", help="`platform/model` key as printed by `models`.")
    sm.set_defaults(_fn=_cmd_show_model)

    cfg = sub.add_parser("config", help="Show (and optionally update) settings. API keys are never printed.")
    cfg.add_argument("--image-format", default=None, choices=["webp", "png", "avif", "jpeg"])
    cfg.add_argument("--compression-level", type=int, default=None)
    cfg.add_argument("--bin-exec", default=None, help="Path to ffmpeg, magick or vips (AVIF only).")
    cfg.add_argument("--ai-model", default=None, help="`platform/model` key.")
    cfg.add_argument("--attachments-dir", default=None)
    cfg.set_defaults(_fn=_cmd_config)

    sk = sub.add_parser("set-key", help="Encrypt and store an API key (read from stdin when omitted; empty removes it).")
    sk.add_argument("setting_key")
    sk.add_argument("api_key", nargs="?", default=None)
    sk.set_defaults(_fn=_cmd_set_key)

    cv = sub.add_parser("convert", help="Convert images and print the stored paths (or URLs).")
    cv.add_argument("images", nargs="+")
    cv.add_argument("--image-format", default=None, choices=["webp", "png", "avif", "jpeg"])
    cv.set_defaults(_fn=_cmd_convert)

    ocr = sub.add_parser("ocr", help="Transcribe images to Markdown with the configured model.")
    ocr.add_argument("images", nargs="+")
    ocr.add_argument("--include-image", action="store_true", help="Also store the image and embed it before the text.")
    ocr.set_defaults(_fn=_cmd_ocr)

    sz = sub.add_parser("summarize", help="Summarize a Markdown file (or stdin) with the configured model.")
    sz.add_argument("file", nargs="?", default=None)
    sz.set_defaults(_fn=_cmd_summarize)

    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    fn = getattr(args, "_fn", None)
    if not callable(fn):
        raise SystemExit(2)
    try:
        return int(fn(args))
    except (ImgOptimizerError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

"""AVIF conversion through an externally installed ffmpeg, ImageMagick or libvips binary."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .errors import ExternalToolError


logger = logging.getLogger(__name__)

SUPPORTED_TOOLS = ("ffmpeg", "magick", "vips")

_EXECUTABLE_SUFFIXES = (".exe", ".cmd", ".bat")

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ToolResult:
    stdout: str
    stderr: str
    result: bool
    error: Optional[str] = None


def map_quality_to_avif(user_quality: float) -> int:
    """Map quality 1..100 (higher is better) onto ffmpeg's inverted AV1 CRF scale 1..63."""
    q = max(1.0, min(float(user_quality), 100.0))
    return max(1, 64 - int(round(q * 0.63)))


def tool_kind(path: Optional[PathLike]) -> Optional[str]:
    """Return "ffmpeg", "magick" or "vips" from the executable's basename, else None."""
    p = str(path or "").strip()
    if not p:
        return None
    name = os.path.basename(p).lower()
    for suffix in _EXECUTABLE_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
            break
    return name if name in SUPPORTED_TOOLS else None


def _is_executable(p: Path) -> bool:
    if not p.is_file():
        return False
    if sys.platform.startswith("win"):
        return True
    return os.access(str(p), os.X_OK)


def find_prog_path(path: Optional[PathLike]) -> Optional[str]:
    """Return `path` when it names a supported converter that exists and is executable."""
    if tool_kind(path) is None:
        return None
    p = Path(str(path).strip()).expanduser()
    if not _is_executable(p):
        return None
    return str(p)


def build_tool_args(kind: str, input_path: PathLike, output_path: PathLike, quality: int) -> List[str]:
    """Argument vector (without the executable) for one converter dialect."""
    src = str(input_path)
    dst = str(output_path)
    if kind == "ffmpeg":
        return [
            "-i", src,
            "-c:v", "libaom-av1",
            "-crf", str(map_quality_to_avif(quality)),
            "-pix_fmt", "yuv420p",
            "-y",
            dst,
        ]
    if kind == "magick":
        return [src, "-quality", str(int(quality)), dst]
    if kind == "vips":
        return ["copy", src, f"{dst}[Q={int(quality)}]"]
    raise ExternalToolError(f"Unsupported converter: {kind!r}")


def _decode(out: Optional[bytes]) -> str:
    return (out or b"").decode("utf-8", errors="replace")


def _run(cmd: List[str], *, timeout_s: Optional[float]) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            cmd,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(f"{Path(cmd[0]).name} timed out after {timeout_s}s") from e
    except subprocess.CalledProcessError as e:
        out = _decode(e.stdout) + "\n" + _decode(e.stderr)
        raise ExternalToolError(f"{Path(cmd[0]).name} failed (exit={e.returncode}). Output:\n{out[:4000]}") from e
    except OSError as e:
        raise ExternalToolError(f"Cannot execute {cmd[0]!r}: {e}") from e


def _validate_output(output_path: Path) -> None:
    if not output_path.is_file():
        raise ExternalToolError(f"Output file not found: {output_path}")
    if output_path.stat().st_size == 0:
        output_path.unlink()
        raise ExternalToolError(f"Output file is empty: {output_path}")


def convert_image(
    prog_path: Optional[PathLike],
    input_path: PathLike,
    output_path: PathLike,
    quality: int,
    *,
    timeout_s: Optional[float] = None,
) -> ToolResult:
    """Convert `input_path` to `output_path` with the configured converter.

    Failures are reported as `ToolResult(result=False)`; falling back to another
    format is left to the caller.
    """
    prog = find_prog_path(prog_path)
    if prog is None:
        logger.warning("AVIF converter not usable: %r", str(prog_path or ""))
        return ToolResult(stdout="", stderr="", result=False, error="converter not found or not executable")

    kind = tool_kind(prog)
    cmd = [prog, *build_tool_args(str(kind), input_path, output_path, quality)]
    logger.debug("Running converter: %s", cmd)

    stdout = ""
    stderr = ""
    try:
        proc = _run(cmd, timeout_s=timeout_s)
        stdout = _decode(proc.stdout)
        stderr = _decode(proc.stderr)
        _validate_output(Path(output_path))
    except ExternalToolError as e:
        logger.warning("AVIF conversion failed: %s", e)
        return ToolResult(stdout=stdout, stderr=stderr, result=False, error=str(e))

    logger.debug("Converter stdout: %s", stdout)
    logger.debug("Converter stderr: %s", stderr)
    return ToolResult(stdout=stdout, stderr=stderr, result=True)

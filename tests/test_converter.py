import io
import re
import sys
import tempfile
import unittest
from pathlib import Path

# Ensure `src/` layout is importable when running tests without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))


def _png(width=40, height=20):
    from PIL import Image

    buf = io.BytesIO()
    Image.new("RGB", (width, height), (10, 200, 10)).save(buf, format="PNG")
    return buf.getvalue()


class _FakeSink:
    def __init__(self, *, fail=False):
        self.fail = fail
        self.puts = []

    def put(self, key, data, content_type):
        if self.fail:
            raise ConnectionError("bucket unreachable")
        self.puts.append((key, data, content_type))
        return f"https://cdn.example.test/{key}"


class TestRandomFilename(unittest.TestCase):
    def test_shape(self):
        from imgoptimizer.converter import random_filename

        name = random_filename("WEBP")
        self.assertRegex(name, r"^PastedImage_\d{8}T\d{9}Z_[0-9a-z]{5}\.webp$")
        self.assertIsNone(re.search(r"\.", random_filename()))


class TestImageConverter(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        from imgoptimizer.storage import LocalStorage

        self.storage = LocalStorage(self._td.name)

    def _converter(self, fmt, **kwargs):
        from imgoptimizer.converter import ImageConverter
        from imgoptimizer.settings import PluginSettings

        settings = PluginSettings(image_format=fmt, compression_level=80, bin_exec="/usr/bin/ffmpeg")
        return ImageConverter(settings, self.storage, **kwargs)

    def test_webp_conversion_writes_file(self):
        from PIL import Image

        conv = self._converter("webp")
        path = Path(conv.convert(_png()))
        self.assertEqual(path.suffix, ".webp")
        self.assertEqual(path.parent, self.storage.base_dir)
        self.assertEqual(Image.open(path).format, "WEBP")

    def test_png_passes_through(self):
        raw = _png()
        artifact = self._converter("png").to_artifact(raw)
        self.assertEqual(artifact.data, raw)
        self.assertEqual(artifact.mime_type, "image/png")

    def test_undecodable_input_is_kept_as_png(self):
        conv = self._converter("jpeg")
        with self.assertLogs("imgoptimizer.converter", level="ERROR"):
            artifact = conv.process_image(b"not an image", "jpeg")
        self.assertEqual(artifact.file_extension, "png")
        self.assertEqual(artifact.data, b"not an image")

    def test_avif_failure_falls_back_to_png_with_same_stem(self):
        from imgoptimizer.tools import ToolResult

        calls = []

        def failing_runner(prog, src, dst, quality):
            calls.append((prog, Path(src), Path(dst), quality))
            return ToolResult(stdout="", stderr="", result=False, error="converter not found")

        conv = self._converter("avif", tool_runner=failing_runner)
        artifact = conv.to_artifact(_png())

        self.assertEqual(len(calls), 1)
        prog, src, dst, quality = calls[0]
        self.assertEqual(prog, "/usr/bin/ffmpeg")
        self.assertEqual(quality, 80)
        self.assertEqual(artifact.mime_type, "image/png")
        self.assertEqual(artifact.file_path, src)
        self.assertEqual(artifact.stem, dst.stem)
        self.assertTrue(src.is_file())
        self.assertFalse(dst.exists())

    def test_avif_failure_removes_partial_output(self):
        from imgoptimizer.tools import ToolResult

        def partial_runner(prog, src, dst, quality):
            Path(dst).write_bytes(b"half-written")
            return ToolResult(stdout="", stderr="", result=False, error="ffmpeg failed (exit=1)")

        conv = self._converter("avif", tool_runner=partial_runner)
        path = Path(conv.convert(_png()))
        self.assertEqual(path.suffix, ".png")
        self.assertEqual(list(self.storage.base_dir.glob("*.avif")), [])

    def test_avif_success_removes_temporary_png(self):
        from imgoptimizer.tools import ToolResult

        def ok_runner(prog, src, dst, quality):
            Path(dst).write_bytes(b"avif-bytes")
            return ToolResult(stdout="", stderr="", result=True)

        conv = self._converter("avif", tool_runner=ok_runner)
        path = Path(conv.convert(_png()))
        self.assertEqual(path.suffix, ".avif")
        self.assertEqual(path.read_bytes(), b"avif-bytes")
        self.assertEqual(list(self.storage.base_dir.glob("*.png")), [])

    def test_upload_replaces_local_file(self):
        sink = _FakeSink()
        conv = self._converter("webp", sink=sink)
        url = conv.convert(_png())
        self.assertTrue(url.startswith("https://cdn.example.test/PastedImage_"))
        self.assertEqual(sink.puts[0][2], "image/webp")
        self.assertEqual(list(self.storage.base_dir.iterdir()), [])

    def test_upload_failure_keeps_local_file(self):
        conv = self._converter("webp", sink=_FakeSink(fail=True))
        with self.assertLogs("imgoptimizer.converter", level="WARNING"):
            path = Path(conv.convert(_png()))
        self.assertTrue(path.is_file())


if __name__ == "__main__":
    unittest.main()

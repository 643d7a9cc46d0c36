import base64
import io
import random
import sys
import unittest
from pathlib import Path

# Ensure `src/` layout is importable when running tests without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))


def _png(width, height, mode="RGB"):
    from PIL import Image

    color = (200, 10, 10, 128) if mode == "RGBA" else (200, 10, 10)
    buf = io.BytesIO()
    Image.new(mode, (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


class TestComputeTargetSize(unittest.TestCase):
    def test_small_images_are_untouched(self):
        from imgoptimizer.imaging import compute_target_size
        from imgoptimizer.types import ImageSpec

        spec = ImageSpec()
        self.assertEqual(compute_target_size(640, 480, spec), (640, 480))
        self.assertEqual(compute_target_size(1000, 1000, spec), (1000, 1000))

    def test_wide_image_is_capped_per_axis(self):
        from imgoptimizer.imaging import compute_target_size
        from imgoptimizer.types import ImageSpec

        self.assertEqual(compute_target_size(4000, 1000, ImageSpec()), (1000, 250))

    def test_pixel_limit_dominates_for_square_inputs(self):
        from imgoptimizer.imaging import compute_target_size
        from imgoptimizer.types import ImageSpec

        spec = ImageSpec(max_dimensions=5000, max_pixels=1_000_000)
        w, h = compute_target_size(3000, 3000, spec)
        self.assertLessEqual(w * h, 1_000_000)
        self.assertEqual(w, h)

    def test_bounds_hold_for_random_sizes(self):
        from imgoptimizer.imaging import compute_target_size
        from imgoptimizer.types import ImageSpec

        rng = random.Random(7)
        specs = [ImageSpec(), ImageSpec(max_dimensions=512, max_pixels=100_000)]
        for _ in range(500):
            w = rng.randint(1, 9000)
            h = rng.randint(1, 9000)
            for spec in specs:
                nw, nh = compute_target_size(w, h, spec)
                self.assertGreaterEqual(min(nw, nh), 1)
                self.assertLessEqual(nw, spec.max_dimensions)
                self.assertLessEqual(nh, spec.max_dimensions)
                self.assertLessEqual(nw * nh, spec.max_pixels)
                self.assertLessEqual(nw, w)
                self.assertLessEqual(nh, h)
                if (nw, nh) != (w, h) and min(nw, nh) >= 100:
                    self.assertLessEqual(abs((nw / nh) / (w / h) - 1), 0.01, (w, h, nw, nh))

    def test_in_bounds_sizes_are_unchanged(self):
        from imgoptimizer.imaging import compute_target_size
        from imgoptimizer.types import ImageSpec

        rng = random.Random(11)
        spec = ImageSpec()
        for _ in range(500):
            w = rng.randint(1, 1000)
            h = rng.randint(1, 1000)
            if w * h <= spec.max_pixels:
                self.assertEqual(compute_target_size(w, h, spec), (w, h))

    def test_short_axis_follows_long_axis_rounding(self):
        from imgoptimizer.imaging import compute_target_size
        from imgoptimizer.types import ImageSpec

        self.assertEqual(compute_target_size(9000, 170, ImageSpec()), (1000, 19))
        self.assertEqual(compute_target_size(8000, 190, ImageSpec()), (1000, 24))
        self.assertEqual(compute_target_size(170, 9000, ImageSpec()), (19, 1000))

    def test_invalid_size(self):
        from imgoptimizer.imaging import compute_target_size
        from imgoptimizer.types import ImageSpec

        with self.assertRaises(ValueError):
            compute_target_size(0, 10, ImageSpec())


class TestPreprocessImage(unittest.TestCase):
    def test_large_image_is_resized_and_reencoded_as_webp(self):
        from PIL import Image

        from imgoptimizer.imaging import preprocess_image
        from imgoptimizer.types import ImageSpec

        out = preprocess_image(_png(2400, 1200), ImageSpec())
        img = Image.open(io.BytesIO(out))
        self.assertEqual(img.format, "WEBP")
        self.assertEqual(img.size, (1000, 500))

    def test_data_url_output(self):
        from imgoptimizer.imaging import preprocess_image
        from imgoptimizer.types import ImageSpec

        out = preprocess_image(_png(20, 20), ImageSpec(target_format="png"), output="data_url")
        self.assertTrue(out.startswith("data:image/png;base64,"))
        raw = base64.b64decode(out.split(",", 1)[1])
        self.assertTrue(raw.startswith(b"\x89PNG"))

    def test_corrupt_input_raises_decode_error(self):
        from imgoptimizer.errors import ImageDecodeError
        from imgoptimizer.imaging import preprocess_image
        from imgoptimizer.types import ImageSpec

        with self.assertRaises(ImageDecodeError):
            preprocess_image(b"not an image", ImageSpec())
        with self.assertRaises(ImageDecodeError):
            preprocess_image(b"", ImageSpec())

    def test_unknown_output_kind(self):
        from imgoptimizer.imaging import preprocess_image
        from imgoptimizer.types import ImageSpec

        with self.assertRaises(ValueError):
            preprocess_image(_png(4, 4), ImageSpec(), output="file")


class TestEncodeImage(unittest.TestCase):
    def test_jpeg_flattens_alpha(self):
        from PIL import Image

        from imgoptimizer.imaging import encode_image

        out = encode_image(_png(8, 8, mode="RGBA"), "jpeg", quality=80)
        img = Image.open(io.BytesIO(out))
        self.assertEqual(img.format, "JPEG")
        self.assertEqual(img.mode, "RGB")

    def test_keeps_original_size(self):
        from imgoptimizer.imaging import encode_image, image_size

        out = encode_image(_png(1500, 30), "webp")
        self.assertEqual(image_size(out), (1500, 30))

    def test_unsupported_format(self):
        from imgoptimizer.errors import ImageDecodeError
        from imgoptimizer.imaging import encode_image

        with self.assertRaises(ImageDecodeError):
            encode_image(_png(4, 4), "avif")


if __name__ == "__main__":
    unittest.main()

import sys
import threading
import unittest
from pathlib import Path

# Ensure `src/` layout is importable when running tests without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))


class TestSingleFlightGate(unittest.TestCase):
    def test_second_entry_is_rejected_not_queued(self):
        from imgoptimizer.errors import GateBusyError
        from imgoptimizer.gate import SingleFlightGate

        gate = SingleFlightGate()
        with gate.hold("paste_images"):
            self.assertTrue(gate.locked)
            self.assertEqual(gate.holder, "paste_images")
            with self.assertRaises(GateBusyError) as ctx:
                with gate.hold("summarize_text"):
                    self.fail("should not enter")
            self.assertIn("paste_images", str(ctx.exception))
        self.assertFalse(gate.locked)
        self.assertIsNone(gate.holder)

    def test_released_after_exception(self):
        from imgoptimizer.gate import SingleFlightGate

        gate = SingleFlightGate()
        with self.assertRaises(RuntimeError):
            with gate.hold("ocr"):
                raise RuntimeError("boom")
        self.assertFalse(gate.locked)
        with gate.hold("ocr"):
            pass

    def test_rejects_other_threads(self):
        from imgoptimizer.errors import GateBusyError
        from imgoptimizer.gate import SingleFlightGate

        gate = SingleFlightGate()
        errors = []

        def contender():
            try:
                with gate.hold("other"):
                    pass
            except GateBusyError as e:
                errors.append(e)

        with gate.hold("first"):
            t = threading.Thread(target=contender)
            t.start()
            t.join(timeout=5)
        self.assertEqual(len(errors), 1)


if __name__ == "__main__":
    unittest.main()

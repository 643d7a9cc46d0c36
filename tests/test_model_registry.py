import json
import sys
import unittest
from pathlib import Path

# Ensure `src/` layout is importable when running tests without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))


class TestModelRegistry(unittest.TestCase):
    def test_catalog_has_every_vendor(self):
        from imgoptimizer.model_registry import ModelRegistry
        from imgoptimizer.types import INTERFACE_KINDS

        reg = ModelRegistry()
        self.assertEqual(len(reg.all()), 14)
        self.assertEqual(reg.schema_version(), "1")
        self.assertEqual({m.interface_kind for m in reg.all()}, set(INTERFACE_KINDS))
        self.assertEqual(
            reg.platforms(),
            ["Anthropic", "Google", "Mistral", "TogetherAI", "OpenAI", "AlibabaCloud"],
        )

    def test_lookup_by_parts_and_by_setting_key(self):
        from imgoptimizer.model_registry import ModelRegistry

        reg = ModelRegistry()
        m = reg.lookup("TogetherAI", "meta-llama/Llama-Vision-Free")
        self.assertIsNotNone(m)
        self.assertEqual(m.interface_kind, "together_ai")
        self.assertEqual(m.setting_key, "TogetherAI/meta-llama/Llama-Vision-Free")
        self.assertIs(reg.lookup_key(m.setting_key), m)

    def test_unknown_model_returns_none(self):
        from imgoptimizer.model_registry import ModelRegistry

        reg = ModelRegistry()
        self.assertIsNone(reg.lookup("OpenAI", "gpt-unknown"))
        self.assertIsNone(reg.lookup_key(""))

    def test_options_labels(self):
        from imgoptimizer.model_registry import ModelRegistry

        opts = ModelRegistry().options()
        self.assertEqual(opts["Mistral/pixtral-12b-2409"], "pixtral-12b-2409 (Mistral)")


class TestModelsSchemaValidation(unittest.TestCase):
    def test_valid_asset_passes_validation(self):
        from imgoptimizer.model_registry import validate_models_json

        p = REPO_ROOT / "src" / "imgoptimizer" / "assets" / "models.json"
        validate_models_json(json.loads(p.read_text(encoding="utf-8")))

    def test_missing_schema_version(self):
        from imgoptimizer.model_registry import validate_models_json

        with self.assertRaises(ValueError) as ctx:
            validate_models_json({"models": []})
        self.assertIn("schema_version", str(ctx.exception))

    def test_unknown_interface_kind_fails(self):
        from imgoptimizer.model_registry import validate_models_json

        data = {
            "schema_version": "1",
            "models": [{"platform_id": "X", "model_id": "m", "interface_kind": "cohere"}],
        }
        with self.assertRaises(ValueError) as ctx:
            validate_models_json(data)
        self.assertIn("models[0]['interface_kind']", str(ctx.exception))

    def test_duplicate_model_fails(self):
        from imgoptimizer.model_registry import validate_models_json

        entry = {"platform_id": "OpenAI", "model_id": "gpt-4o", "interface_kind": "openai"}
        with self.assertRaises(ValueError) as ctx:
            validate_models_json({"schema_version": "1", "models": [entry, dict(entry)]})
        self.assertIn("duplicate", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()

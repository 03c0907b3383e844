import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from stancevoice.runtime_settings import (
    DEFAULT_RUNTIME_SETTINGS,
    build_runtime_settings,
    get_runtime_setting,
    load_dotenv_file,
    set_runtime_setting,
)


class TestRuntimeSettings(unittest.TestCase):
    def test_build_runtime_settings_uses_config_runtime_overrides(self):
        config_data = {
            "runtime": {
                "merger": {
                    "base_template_retention": 0.25,
                },
                "inference": {
                    "tagger_max_tokens": 300,
                },
            }
        }
        settings = build_runtime_settings(config_data=config_data, env_data={})
        self.assertEqual(settings["merger"]["base_template_retention"], 0.25)
        self.assertEqual(settings["merger"]["min_lexicon_per_pos"], 6)
        self.assertEqual(settings["inference"]["tagger_max_tokens"], 300)
        self.assertEqual(DEFAULT_RUNTIME_SETTINGS["merger"]["base_template_retention"], 0.5)

    def test_build_runtime_settings_supports_legacy_and_prefixed_env_keys(self):
        settings = build_runtime_settings(
            config_data={},
            env_data={
                "OLLAMA_HOST": "http://legacy-ollama:11434",
                "STANCEVOICE_MIN_TEMPLATES_PER_STANCE": "7",
                "STANCEVOICE_LEXICON_RETENTION": "0.8",
            },
        )
        self.assertEqual(settings["inference"]["default_ollama_host"], "http://legacy-ollama:11434")
        self.assertEqual(settings["merger"]["min_templates_per_stance"], 7)
        self.assertEqual(settings["merger"]["base_lexicon_retention"], 0.8)

        # Prefixed keys take precedence when both are present.
        overridden = build_runtime_settings(
            config_data={},
            env_data={
                "OLLAMA_HOST": "http://legacy-ollama:11434",
                "STANCEVOICE_OLLAMA_HOST": "http://voice-ollama:11434",
            },
        )
        self.assertEqual(overridden["inference"]["default_ollama_host"], "http://voice-ollama:11434")

    def test_endpoint_pool_env_is_parsed_as_json(self):
        settings = build_runtime_settings(
            env_data={"MERGER_CONFIGS": '[{"baseURL": "http://a:11434", "model": "m", "apiKey": "k"}]'}
        )
        self.assertEqual(settings["endpoints"][0]["baseURL"], "http://a:11434")

    def test_invalid_env_values_are_ignored(self):
        with self.assertLogs("stancevoice.runtime_settings", level="WARNING"):
            settings = build_runtime_settings(
                env_data={
                    "STANCEVOICE_MODEL_ENDPOINTS": "[not json",
                    "STANCEVOICE_MIN_LEXICON_PER_POS": "six",
                }
            )
        self.assertEqual(settings["endpoints"], [])
        self.assertEqual(settings["merger"]["min_lexicon_per_pos"], 6)

    def test_get_and_set_runtime_setting(self):
        settings = {}
        set_runtime_setting(settings, "merger.min_lexicon_per_pos", 2)
        self.assertEqual(get_runtime_setting(settings, "merger.min_lexicon_per_pos"), 2)
        self.assertEqual(get_runtime_setting(settings, "merger.missing", "fallback"), "fallback")

    def test_load_dotenv_file_parses_basic_lines(self):
        with tempfile.TemporaryDirectory() as tmp_dir, mock.patch.dict(os.environ, {}, clear=False):
            dotenv_path = Path(tmp_dir) / ".env"
            dotenv_path.write_text(
                "# comment\n"
                "export STANCEVOICE_MIN_TEMPLATES_PER_STANCE=5\n"
                "STANCEVOICE_TAGGER_MODEL='tagger:latest'\n",
                encoding="utf-8",
            )
            loaded = load_dotenv_file(dotenv_path, override=True)
            self.assertEqual(os.environ["STANCEVOICE_TAGGER_MODEL"], "tagger:latest")

        self.assertEqual(loaded["STANCEVOICE_MIN_TEMPLATES_PER_STANCE"], "5")
        self.assertEqual(loaded["STANCEVOICE_TAGGER_MODEL"], "tagger:latest")

    def test_missing_dotenv_file_loads_nothing(self):
        self.assertEqual(load_dotenv_file("/nonexistent/.env"), {})


if __name__ == "__main__":
    unittest.main()

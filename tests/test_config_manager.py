"""Tests for config_manager module."""

import json
import os
import tempfile

from docpipe.utils.config_manager import DEFAULT_CONFIG, ConfigManager


class TestConfigManager:
    def _make_manager(self, tmp_dir, initial=None):
        path = os.path.join(tmp_dir, "settings.json")
        if initial is not None:
            with open(path, "w") as f:
                json.dump(initial, f)
        return ConfigManager(config_path=path)

    def test_get_default_value(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d)
            assert cm.get("nonexistent.key", "fallback") == "fallback"

    def test_defaults_present(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d)
            assert cm.get("ocr.languages") == ["eng"]
            assert cm.get("images.page_size") == "A4"
            assert cm.get("output.overwrite_existing") is False

    def test_load_does_not_create_file(self):
        with tempfile.TemporaryDirectory() as d:
            self._make_manager(d)
            assert not os.path.exists(os.path.join(d, "settings.json"))

    def test_set_and_get(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d)
            cm.set("ocr.scale", 3.0, save_immediately=False)
            assert cm.get("ocr.scale") == 3.0

    def test_save_and_reload(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "nested", "settings.json")
            cm = ConfigManager(config_path=path)
            cm.set("text_color.mode", "light")
            cm2 = ConfigManager(config_path=path)
            assert cm2.get("text_color.mode") == "light"

    def test_nested_key_path(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d)
            cm.set("a.b.c", 42, save_immediately=False)
            assert cm.get("a.b.c") == 42

    def test_partial_file_merged_with_defaults(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d, initial={"ocr": {"languages": ["jpn"]}})
            assert cm.get("ocr.languages") == ["jpn"]
            assert cm.get("ocr.scale") == DEFAULT_CONFIG["ocr"]["scale"]
            assert cm.get("images.quality") == DEFAULT_CONFIG["images"]["quality"]

    def test_corrupt_file_falls_back(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "settings.json")
            with open(path, "w") as f:
                f.write("{not json")
            cm = ConfigManager(config_path=path)
            assert cm.get("images.orientation") == "auto"

    def test_non_object_file_falls_back(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d, initial=[1, 2, 3])
            assert cm.get("ocr.output_format") == "text"

    def test_defaults_not_shared_between_instances(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d)
            cm.get("ocr.languages").append("deu")
            assert DEFAULT_CONFIG["ocr"]["languages"] == ["eng"]

    def test_save_returns_true(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d)
            assert cm.save() is True

    def test_language_string_split(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d, initial={"ocr": {"languages": "eng, deu"}})
            assert cm.get("ocr.languages") == ["eng", "deu"]

    def test_reload_picks_up_external_changes(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d)
            with open(cm.config_path, "w") as f:
                json.dump({"images": {"margin": 0}}, f)
            cm.reload()
            assert cm.get("images.margin") == 0
            assert cm.get("images.page_size") == "A4"

    def test_set_replaces_scalar_with_section(self):
        with tempfile.TemporaryDirectory() as d:
            cm = self._make_manager(d)
            cm.set("version.major", 2, save_immediately=False)
            assert cm.get("version") == {"major": 2}

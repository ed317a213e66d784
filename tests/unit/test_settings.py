import json
import logging
import os
import tempfile
import unittest
from pathlib import Path

from template_studio.settings import get_settings
from template_studio.user_config import load_user_config, save_user_config
from template_studio.utils.logging import JsonFormatter, build_logging_config


class TestSettings(unittest.TestCase):
    def setUp(self) -> None:
        """Create a temporary user settings file."""
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config_path = Path(self.tmpdir.name) / "user_settings.json"
        self.previous_path = os.environ.get("USER_SETTINGS_FILE")
        self.previous_db_url = os.environ.pop("DATABASE_URL", None)
        os.environ["USER_SETTINGS_FILE"] = str(self.config_path)
        get_settings.cache_clear()

    def tearDown(self) -> None:
        """Restore the environment."""
        get_settings.cache_clear()
        if self.previous_path is None:
            os.environ.pop("USER_SETTINGS_FILE", None)
        else:
            os.environ["USER_SETTINGS_FILE"] = self.previous_path
        if self.previous_db_url is not None:
            os.environ["DATABASE_URL"] = self.previous_db_url
        self.tmpdir.cleanup()

    def test_save_and_load_user_config(self) -> None:
        """Test saving and loading user config keeps only known keys."""
        config = {"default_page_limit": 50, "sample_content_targeting": True, "secret": "x"}
        saved = save_user_config(None, config)
        loaded = load_user_config(None)
        self.assertEqual(saved, {"default_page_limit": 50, "sample_content_targeting": True})
        self.assertEqual(loaded, saved)

    def test_settings_override_from_user_config(self) -> None:
        """Test settings load values from user config."""
        self.config_path.write_text(json.dumps({"default_page_limit": 35}), encoding="utf-8")
        settings = get_settings()
        self.assertEqual(settings.default_page_limit, 35)

    def test_environment_beats_user_config(self) -> None:
        """Test user config outranks the environment."""
        self.config_path.write_text(
            json.dumps({"sql_db_url": "sqlite:///from-json.db"}), encoding="utf-8"
        )
        os.environ["DATABASE_URL"] = "sqlite:///from-env.db"
        try:
            settings = get_settings()
        finally:
            del os.environ["DATABASE_URL"]
        # JSON user config is consulted before the environment
        self.assertEqual(settings.sql_db_url, "sqlite:///from-json.db")

    def test_environment_used_when_json_silent(self) -> None:
        os.environ["LOG_LEVEL"] = "DEBUG"
        try:
            settings = get_settings()
        finally:
            del os.environ["LOG_LEVEL"]
        self.assertEqual(settings.log_level, "DEBUG")

    def test_log_levels_from_environment(self) -> None:
        """Test per-logger levels parse from the environment into dictConfig."""
        os.environ["LOG_LEVELS"] = "sqlalchemy.engine=info, uvicorn.access=WARNING"
        try:
            settings = get_settings()
        finally:
            del os.environ["LOG_LEVELS"]
        self.assertEqual(
            settings.log_levels, {"sqlalchemy.engine": "INFO", "uvicorn.access": "WARNING"}
        )
        config = build_logging_config(settings)
        self.assertEqual(config["loggers"]["sqlalchemy.engine"], {"level": "INFO"})
        self.assertEqual(config["handlers"]["console"]["formatter"], "standard")

    def test_log_levels_from_user_config(self) -> None:
        self.config_path.write_text(
            json.dumps({"log_levels": {"template_studio.services": "debug"}, "log_json": True}),
            encoding="utf-8",
        )
        config = build_logging_config(get_settings())
        self.assertEqual(config["loggers"], {"template_studio.services": {"level": "DEBUG"}})
        self.assertEqual(config["handlers"]["console"]["formatter"], "json")

    def test_json_formatter_keeps_extra_fields(self) -> None:
        record = logging.LogRecord(
            "template_studio.services", logging.INFO, __file__, 1, "saved %s", ("t1",), None
        )
        record.template_id = "t1"
        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload["message"], "saved t1")
        self.assertEqual(payload["template_id"], "t1")
        self.assertNotIn("args", payload)

    def test_unreadable_user_config_is_ignored(self) -> None:
        self.config_path.write_text("{not json", encoding="utf-8")
        self.assertEqual(load_user_config(None), {})


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_USER_CONFIG_PATH = "config/user_settings.json"

ALLOWED_KEYS = {
    "cors_origins",
    "default_page_limit",
    "log_level",
    "log_json",
    "log_levels",
    "preset_file",
    "sample_content_targeting",
    "sql_db_url",
    "sql_echo",
    "template_dir",
}


def get_user_config_path() -> str:
    return os.environ.get("USER_SETTINGS_FILE", DEFAULT_USER_CONFIG_PATH)


def load_user_config(path: str | None = None) -> Dict[str, Any]:
    config_path = Path(path or get_user_config_path())
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable user settings %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        return {}
    return {key: data[key] for key in ALLOWED_KEYS if key in data}


def save_user_config(path: str | None, config: Dict[str, Any]) -> Dict[str, Any]:
    config_path = Path(path or get_user_config_path())
    config_path.parent.mkdir(parents=True, exist_ok=True)
    filtered = {key: config[key] for key in ALLOWED_KEYS if key in config}
    config_path.write_text(
        json.dumps(filtered, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return filtered

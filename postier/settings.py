import copy
import json
import logging
from pathlib import Path
from typing import Optional, Union

SETTINGS_FILENAME = ".postier_settings.json"
SETTINGS_FILE = Path.home() / SETTINGS_FILENAME
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"

DEFAULT_SETTINGS = {
    "version": 1,
    "log_level": "INFO",
    "auto_save": True,
    "collections": [],
    "selected_collection": "",
    "current_file": "",
    "expanded_nodes": [],
}

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(level=(level or DEFAULT_SETTINGS["log_level"]).upper(), format=LOG_FORMAT)


def deep_merge(a: dict, b: dict) -> dict:
    out = copy.deepcopy(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def load_settings(path: Optional[PathLike] = None) -> dict:
    path = Path(path) if path else SETTINGS_FILE
    if not path.exists():
        return copy.deepcopy(DEFAULT_SETTINGS)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("settings root must be an object")
        return deep_merge(DEFAULT_SETTINGS, data)
    except (OSError, ValueError):
        logger.exception(f"Failed to load settings from {path}; using defaults")
        return copy.deepcopy(DEFAULT_SETTINGS)


def save_settings(settings: dict, path: Optional[PathLike] = None):
    path = Path(path) if path else SETTINGS_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(settings, f, indent=2, ensure_ascii=False)
    except OSError:
        logger.exception(f"Failed to save settings to {path}")
        raise

"""
FINGERQUIZ configuration.

One shared Config object backed by fingerquiz/config/config.json. Every entry
is either a plain value or a [value, description] pair; readers only ever see
the value. A missing or unreadable file falls back to DEFAULTS below so the
quiz still starts with the standard dwell/cooldown timings.
"""

import copy
import json
from typing import Dict, Any, Optional, Tuple
from pathlib import Path

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.json"

_MISSING = object()


class Config:
    """Process-wide settings store (singleton)."""
    _instance = None
    _config_data: Dict[str, Any] = {}
    _config_path: str = ""

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        """
        Config() loads the bundled config.json the first time only.
        Config(path) switches the shared instance to `path` and reloads.
        """
        if config_path is None and self._config_data:
            return
        self._config_path = str(config_path if config_path is not None else DEFAULT_CONFIG_PATH)
        self.reload()

    def reload(self):
        try:
            with open(self._config_path, 'r', encoding='utf-8') as f:
                self._config_data = json.load(f)
        except FileNotFoundError:
            print(f"⚠ Config file not found: {self._config_path} (using defaults)")
            self._config_data = self._get_defaults()
        except json.JSONDecodeError as e:
            print(f"⚠ Could not parse {self._config_path}: {e} (using defaults)")
            self._config_data = self._get_defaults()
        else:
            print(f"✓ Loaded configuration from {self._config_path}")

    def save(self):
        """Write the current settings back to the file they came from."""
        try:
            with open(self._config_path, 'w', encoding='utf-8') as f:
                json.dump(self._config_data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            print(f"❌ Could not save configuration: {e}")
            return
        print(f"✓ Saved configuration to {self._config_path}")

    def _lookup(self, keys):
        node = self._config_data
        for key in keys:
            if not isinstance(node, dict) or key not in node:
                return _MISSING
            node = node[key]
        return node

    def get(self, *keys, default=None) -> Any:
        """
        Value at a key path, e.g. config.get('stabilizer', 'dwell_frames').
        [value, description] pairs are unwrapped to value.
        """
        return self.get_with_description(*keys, default=default)[0]

    def get_with_description(self, *keys, default=None) -> Tuple[Any, str]:
        """(value, description) at a key path; description is "" for plain values."""
        node = self._lookup(keys)
        if node is _MISSING:
            return (default, "")
        if isinstance(node, list) and node:
            return (node[0], node[1] if len(node) > 1 else "")
        return (node, "")

    def set(self, *keys, value):
        """
        Set a value, creating sections as needed.
        An existing [value, description] entry keeps its description.
        """
        if not keys:
            return
        section = self._config_data
        for key in keys[:-1]:
            if not isinstance(section.get(key), dict):
                section[key] = {}
            section = section[key]

        leaf = keys[-1]
        existing = section.get(leaf)
        if isinstance(existing, list) and len(existing) >= 2:
            section[leaf] = [value, existing[1]]
        else:
            section[leaf] = value

    def _get_defaults(self) -> Dict:
        return copy.deepcopy(DEFAULTS)

    @property
    def data(self) -> Dict:
        return self._config_data

    @property
    def path(self) -> str:
        return self._config_path


DEFAULTS: Dict[str, Any] = {
    "camera": {
        "index": 0,
        "width": 640,
        "height": 480,
        "fps": 30
    },
    "performance": {
        "max_hands": 2,
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
        "use_gpu": True,
        "model_path": ""
    },
    "finger_count": {
        "extension_margin": 1.10
    },
    "stabilizer": {
        "dwell_frames": 20,
        "cooldown_seconds": 1.5
    },
    "quiz": {
        "batch_size": 5
    },
    "question_supply": {
        "path": "",
        "url": "",
        "timeout_seconds": 30.0
    },
    "display": {
        "window_width": 1280,
        "window_height": 720,
        "flip_horizontal": True,
        "show_camera_window": True,
        "show_landmarks": True,
        "feedback_flash_seconds": 2.0
    },
    "input_map": {
        "1": {"type": "gesture", "value": 1},
        "2": {"type": "gesture", "value": 2},
        "3": {"type": "gesture", "value": 3},
        "4": {"type": "gesture", "value": 4},
        "5": {"type": "gesture", "value": 5},
        "enter": {"type": "gesture", "value": 5},
        "6": {"type": "gesture", "value": 6},
        "m": {"type": "gesture", "value": 6},
        "q": {"type": "function", "name": "exit"},
        "escape": {"type": "function", "name": "exit"}
    }
}


# Global configuration instance
config = Config()


def get_stabilizer_setting(param_name: str, default=None):
    """Get a gesture stabilizer parameter."""
    return config.get('stabilizer', param_name, default=default)


def get_display_setting(param_name: str, default=None):
    """Get a display setting."""
    return config.get('display', param_name, default=default)

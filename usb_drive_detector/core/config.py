import copy
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

# Default configuration if file is missing
DEFAULT_CONFIG = {
    "app": {
        "name": "USB Drive Detector",
        "version": "1.0.0"
    },
    "detector": {
        "polling_interval_ms": 5000,
        "shutdown_timeout_seconds": 5.0
    },
    "logging": {
        "level": "INFO",
        "console_output": True,
        "file_output": True
    }
}


def deep_update(d: Dict[str, Any], u: Dict[str, Any]) -> Dict[str, Any]:
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = deep_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


def load_config(config_path: Optional[str] = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from a YAML file.
    Falls back to defaults if file is missing or invalid.

    Relative paths are resolved against the project root
    (usb_drive_detector/core/../../).
    """
    if not config_path:
        return copy.deepcopy(DEFAULT_CONFIG)

    file_path = Path(config_path)
    if not file_path.is_absolute():
        base_dir = Path(__file__).resolve().parent.parent.parent
        file_path = base_dir / config_path

    if not file_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(file_path, "r") as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error loading config: {e}")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(config, dict):
        return copy.deepcopy(DEFAULT_CONFIG)

    # Merge with defaults
    return deep_update(copy.deepcopy(DEFAULT_CONFIG), config)


# Global config instance
config = load_config()

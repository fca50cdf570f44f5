"""Runtime configuration for gotestlooplint - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from gotestlooplint.utils.constants import CONFIG_FILE_NAME, DEFAULT_MAX_FILE_SIZE, ENV_PREFIX
from gotestlooplint.utils.logging import logger

DEFAULTS = {
    "scan": {
        "include_tests": True,
        # Only check loops inside receiver-less `func TestXxx` declarations
        "require_test_function": False,
        "exclude_patterns": [],
        "follow_symlinks": False,
    },
    "limits": {
        "max_file_size": DEFAULT_MAX_FILE_SIZE,
    },
    "output": {
        "format": "text",
    },
}

OUTPUT_FORMATS = ("text", "json")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _coerce_env_value(raw: str, default_value: Any) -> Any:
    """Convert an environment string to the type of the default it overrides."""
    # bool first: bool is a subclass of int
    if isinstance(default_value, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"expected a boolean, got {raw!r}")
    if isinstance(default_value, int):
        return int(raw)
    if isinstance(default_value, float):
        return float(raw)
    if isinstance(default_value, list):
        return [v.strip() for v in raw.split(",") if v.strip()]
    return raw


def load_runtime_config(root: str = ".") -> dict[str, Any]:
    """
    Load runtime configuration from .gotestlooplint.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (GOTESTLOOPLINT_<SECTION>_<KEY>)
    2. <root>/.gotestlooplint.json
    3. Built-in defaults

    CLI flags are applied on top of the returned dict by the command itself.

    Args:
        root: Root directory to look for config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / CONFIG_FILE_NAME
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key not in cfg[section]:
                                logger.warning(f"Unknown config key {section}.{key} in {path}")
                                continue
                            default_value = cfg[section][key]
                            if isinstance(value, type(default_value)) and (
                                isinstance(value, bool) == isinstance(default_value, bool)
                            ):
                                cfg[section][key] = value
                            else:
                                logger.warning(
                                    f"Ignoring {section}.{key}={value!r} in {path}: "
                                    f"expected {type(default_value).__name__}"
                                )
            else:
                logger.warning(f"Config file {path} is not a JSON object, using defaults")
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"{ENV_PREFIX}_{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    cfg[section][key] = _coerce_env_value(value, cfg[section][key])
                except (ValueError, AttributeError) as e:
                    logger.warning(
                        f"Invalid value for environment variable {env_var}: '{value}' - {e}"
                    )
                    logger.info(f"Using default value: {cfg[section][key]}")

    if cfg["output"]["format"] not in OUTPUT_FORMATS:
        logger.warning(
            f"Unknown output format {cfg['output']['format']!r}, falling back to 'text'"
        )
        cfg["output"]["format"] = "text"

    return cfg

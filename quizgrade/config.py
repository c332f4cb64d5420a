"""
Configuration utilities for QuizGrade.
"""

import logging
import os

import yaml

from quizgrade.grading import DEFAULT_PASSING_GRADE
from quizgrade.grading_scales import DEFAULT_SCALE_KEY

DEFAULT_CONFIG = {
    "paths": {"database_file": "quizgrade.db"},
    "grading": {"default_scale": DEFAULT_SCALE_KEY, "passing_grade": DEFAULT_PASSING_GRADE},
    "logging": {"level": "INFO"},
}

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def load_config(config_path="config.yaml"):
    """
    Read config.yaml, filling in defaults for missing sections.

    Environment overrides: DATABASE_PATH replaces paths.database_file.

    Args:
        config_path: Path to config file (default: config.yaml)

    Returns:
        Config dict

    Raises:
        FileNotFoundError: If the file does not exist
    """
    with open(config_path) as f:
        loaded = yaml.safe_load(f) or {}

    config = {section: dict(values) for section, values in DEFAULT_CONFIG.items()}
    for key, value in loaded.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value

    if os.environ.get("DATABASE_PATH"):
        config["paths"]["database_file"] = os.environ["DATABASE_PATH"]
    return config


def save_config(config, config_path="config.yaml"):
    """
    Write the config dict back to config.yaml.

    Args:
        config: Application config dict to persist
        config_path: Path to config file (default: config.yaml)
    """
    with open(config_path, "w") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)


def get_grading_defaults(config):
    """Return ``(default_scale, passing_grade)`` from the grading section."""
    grading = config.get("grading") or {}
    return (
        grading.get("default_scale", DEFAULT_SCALE_KEY),
        grading.get("passing_grade", DEFAULT_PASSING_GRADE),
    )


def configure_logging(config=None):
    """Configure root logging from the config's logging.level."""
    level_name = str(((config or {}).get("logging") or {}).get("level", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)

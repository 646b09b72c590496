"""Process-level configuration read from the environment."""
from __future__ import annotations
import logging
import os
import sys
from pathlib import Path


APP_NAME = "StudyPlanner"
DATA_DIR_ENV = "STUDY_PLANNER_DATA_DIR"
LOG_LEVEL_ENV = "STUDY_PLANNER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _default_data_dir() -> Path:
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    if sys.platform.startswith("win"):
        roaming = os.environ.get("APPDATA")
        return Path(roaming) / APP_NAME if roaming else home / "AppData" / "Roaming" / APP_NAME
    return home / ".local" / "share" / "study-planner"


def get_data_dir() -> Path:
    """
    Directory holding profile files. Resolved on every call so the
    environment override can change between runs (and tests).
    """
    override = os.environ.get(DATA_DIR_ENV)
    base = Path(override).expanduser() if override else _default_data_dir()
    base.mkdir(parents=True, exist_ok=True)
    return base


def log_level() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    logging.basicConfig(level=log_level(), format=LOG_FORMAT)

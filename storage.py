from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any
from config import get_data_dir

logger = logging.getLogger(__name__)


def ensure_data_dir() -> Path:
    return get_data_dir()


def data_path(filename: str | Path) -> Path:
    return ensure_data_dir() / Path(filename)


def _reset(path: Path, content: str) -> None:
    """Keep the unreadable content as ``<name>.bak`` and replace the file with ``{}``."""
    backup = path.with_name(path.name + ".bak")
    try:
        backup.write_text(content, encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not back up %s: %s", path, exc)
    save_json(path, {})


def load_json(path: Path | str, default: Any = None) -> Any:
    """
    Read a JSON document.

    A missing or unreadable file yields ``default`` (``{}`` when omitted).
    An empty or malformed file is backed up, reset, and also yields ``default``.
    """
    path = Path(path)
    fallback = {} if default is None else default
    if not path.exists():
        return fallback

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return fallback

    if not content.strip():
        _reset(path, content)
        return fallback
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        logger.warning("Malformed JSON in %s (%s); kept a .bak copy and reset it", path, exc)
        _reset(path, content)
        return fallback


def save_json(path: Path | str, payload: Any) -> None:
    """Write through a sibling temp file so readers never see a partial document."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(path)

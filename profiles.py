from __future__ import annotations
import logging
import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional
from pydantic import ValidationError
from errors import PlannerError
from models import AppState
from storage import data_path, ensure_data_dir, load_json, save_json

logger = logging.getLogger(__name__)

REGISTRY_FILE = "profiles.json"
STATE_PREFIX = "state__"
DEFAULT_PROFILE = "default"

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def profile_key(name: str) -> str:
    """File-safe key for a profile name; names differing only in punctuation share a key."""
    key = re.sub(r"[^A-Za-z0-9_-]+", "_", name.strip()).strip("_")
    return (key or DEFAULT_PROFILE)[:80]


def _state_path(name: str) -> Path:
    return data_path(f"{STATE_PREFIX}{profile_key(name)}.json")


def _read_registry() -> List[str]:
    raw = load_json(data_path(REGISTRY_FILE), {"profiles": []})
    return [p for p in raw.get("profiles", []) if isinstance(p, str) and p.strip()]


def _write_registry(names: List[str]) -> None:
    save_json(data_path(REGISTRY_FILE), {"profiles": names})


def _register(name: str) -> None:
    names = _read_registry()
    if profile_key(name) not in {profile_key(n) for n in names}:
        _write_registry(names + [name])


def profile_lock(name: str) -> threading.Lock:
    with _locks_guard:
        return _locks.setdefault(profile_key(name), threading.Lock())


def list_profiles() -> List[str]:
    # State files without a registry entry still count as profiles.
    on_disk = [
        path.stem[len(STATE_PREFIX):].replace("_", " ").strip() or DEFAULT_PROFILE
        for path in sorted(ensure_data_dir().glob(f"{STATE_PREFIX}*.json"))
    ]
    by_key: Dict[str, str] = {}
    for name in _read_registry() + on_disk:
        by_key.setdefault(profile_key(name), name)

    if not by_key:
        _write_registry([DEFAULT_PROFILE])
        return [DEFAULT_PROFILE]
    return list(by_key.values())


def load_profile(name: str) -> AppState:
    empty = AppState(profile=name)
    raw = load_json(_state_path(name), empty.model_dump(mode="json"))
    try:
        state = AppState.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Profile %r failed validation, starting empty: %s", name, exc.errors()[:3])
        state = empty
        save_profile(name, state)
    state.profile = name
    _register(name)
    return state


def save_profile(name: str, state: AppState) -> None:
    state.profile = name
    save_json(_state_path(name), state.model_dump(mode="json"))
    _register(name)


@contextmanager
def edit_profile(name: str) -> Iterator[AppState]:
    """
    Load a profile under its lock and save it when the block succeeds.
    An exception inside the block leaves the stored profile untouched.
    """
    with profile_lock(name):
        state = load_profile(name)
        yield state
        save_profile(name, state)


@dataclass
class EditResult:
    ok: bool
    state: Optional[AppState] = None
    outcome: Any = None
    error: str = ""


def apply_edit(name: str, action: Callable[[AppState], Any]) -> EditResult:
    """Run ``action`` inside :func:`edit_profile`, turning planner and validation errors into a failed result."""
    try:
        with edit_profile(name) as state:
            outcome = action(state)
    except (PlannerError, ValueError) as exc:
        logger.info("Edit of profile %r rejected: %s", name, exc)
        return EditResult(ok=False, error=str(exc))
    return EditResult(ok=True, state=state, outcome=outcome)


def create_profile(name: str) -> AppState:
    name = name.strip()
    if not name:
        raise ValueError("Profile name cannot be empty.")
    if profile_key(name).lower() in {profile_key(p).lower() for p in list_profiles()}:
        raise ValueError("Profile already exists.")

    state = AppState(profile=name)
    save_profile(name, state)
    logger.info("Created profile %r", name)
    return state


def delete_profile(name: str) -> None:
    _state_path(name).unlink(missing_ok=True)
    key = profile_key(name)
    remaining = [p for p in _read_registry() if profile_key(p) != key]
    if not remaining:
        remaining = [DEFAULT_PROFILE]
        save_json(_state_path(DEFAULT_PROFILE), AppState(profile=DEFAULT_PROFILE).model_dump(mode="json"))
    _write_registry(remaining)
    logger.info("Deleted profile %r", name)

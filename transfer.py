from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, List
from pydantic import TypeAdapter, ValidationError
from errors import TransferError
from intervals import offsets_for
from models import AppState, Constraint, Course, Settings

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"

_courses = TypeAdapter(List[Course])
_constraints = TypeAdapter(List[Constraint])


def export_payload(state: AppState, now: datetime | None = None) -> Dict[str, Any]:
    now = now or datetime.now()
    settings = state.settings
    return {
        "version": FORMAT_VERSION,
        "exportDate": now.isoformat(timespec="seconds"),
        "data": {
            "courses": [c.model_dump(mode="json") for c in state.courses],
            "constraints": [c.model_dump(mode="json") for c in state.constraints],
            "settings": settings.model_dump(mode="json"),
            "intervals": [i.offset_days for i in offsets_for(settings.catalog)],
        },
    }


def import_payload(payload: Any, profile: str = "default") -> AppState:
    """Rebuild a full state from an exported payload, replacing everything."""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise TransferError("Invalid data format: missing 'data' section.")
    data = payload["data"]
    if "courses" not in data or "constraints" not in data:
        raise TransferError("Invalid data format: 'courses' and 'constraints' are required.")
    version = payload.get("version")
    if version is not None and version != FORMAT_VERSION:
        raise TransferError(f"Unsupported export version: {version}")

    try:
        courses = _courses.validate_python(data["courses"])
        constraints = _constraints.validate_python(data["constraints"])
        settings = Settings.model_validate(data.get("settings") or {})
    except ValidationError as exc:
        raise TransferError(f"Invalid data format: {exc.error_count()} error(s)") from exc

    logger.info("Imported %d courses and %d constraints", len(courses), len(constraints))
    return AppState(courses=courses, constraints=constraints, settings=settings, profile=profile)

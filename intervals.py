from __future__ import annotations
from typing import Dict, List
from pydantic import BaseModel, ConfigDict, Field
from errors import UnknownCatalog


DEFAULT_CATALOG = "classic"


class Interval(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    offset_days: int = Field(ge=0)
    label: str


def _build(offsets: List[int]) -> List[Interval]:
    out = []
    for days in offsets:
        key = "J0" if days == 0 else f"J+{days}"
        label = "J0 (initial learning)" if days == 0 else key
        out.append(Interval(key=key, offset_days=days, label=label))
    return out


CATALOGS: Dict[str, List[Interval]] = {
    "classic": _build([0, 1, 2, 10, 25, 47]),
    "extended": _build([0, 1, 3, 7, 15, 30, 90]),
}


def offsets_for(catalog_id: str) -> List[Interval]:
    try:
        return list(CATALOGS[catalog_id])
    except KeyError:
        raise UnknownCatalog(catalog_id) from None


def catalog_index(catalog: List[Interval], key: str) -> int:
    """Tie-break rank of an interval key; unknown keys rank after all known ones."""
    for i, interval in enumerate(catalog):
        if interval.key == key:
            return i
    return len(catalog)


def label_for(catalog: List[Interval], key: str) -> str:
    for interval in catalog:
        if interval.key == key:
            return interval.label
    return key


def normalize_key(raw: str) -> str:
    """'j10', 'J+10' and 'j+10' all map to 'J+10'; 'j0' maps to 'J0'."""
    digits = "".join(ch for ch in raw if ch.isdigit())
    if not digits or int(digits) == 0:
        return "J0"
    return f"J+{int(digits)}"

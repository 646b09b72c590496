import pytest
from errors import UnknownCatalog
from intervals import CATALOGS, DEFAULT_CATALOG, catalog_index, label_for, normalize_key, offsets_for


def test_classic_catalog_offsets():
    assert [i.offset_days for i in offsets_for("classic")] == [0, 1, 2, 10, 25, 47]
    assert [i.key for i in offsets_for("classic")] == ["J0", "J+1", "J+2", "J+10", "J+25", "J+47"]


def test_default_catalog_is_classic():
    assert DEFAULT_CATALOG == "classic"
    assert DEFAULT_CATALOG in CATALOGS


def test_extended_catalog_is_ascending():
    offsets = [i.offset_days for i in offsets_for("extended")]
    assert offsets[0] == 0
    assert offsets == sorted(set(offsets))


def test_offsets_for_returns_a_copy():
    first = offsets_for("classic")
    first.pop()
    assert len(offsets_for("classic")) == 6


def test_unknown_catalog_raises():
    with pytest.raises(UnknownCatalog) as exc:
        offsets_for("nope")
    assert exc.value.catalog_id == "nope"
    assert isinstance(exc.value, KeyError)


def test_labels():
    catalog = offsets_for("classic")
    assert label_for(catalog, "J0") == "J0 (initial learning)"
    assert label_for(catalog, "J+10") == "J+10"
    assert label_for(catalog, "J+99") == "J+99"


def test_catalog_index_ranks_unknown_last():
    catalog = offsets_for("classic")
    assert catalog_index(catalog, "J0") == 0
    assert catalog_index(catalog, "J+47") == 5
    assert catalog_index(catalog, "J+3") == len(catalog)


@pytest.mark.parametrize("raw,expected", [
    ("j10", "J+10"),
    ("J+10", "J+10"),
    ("j+2", "J+2"),
    ("j0", "J0"),
    ("J0", "J0"),
])
def test_normalize_key(raw, expected):
    assert normalize_key(raw) == expected

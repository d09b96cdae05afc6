import copy

from paintmix.data.records import ColorRecord
from paintmix.formula.duplicates import (
    detect_on_save,
    find_duplicate_groups,
    group_by_ratio_signature,
    parse_ratio,
)

SIG = "天蓝:1.0000|钛白:5.0000"


def _rows():
    return [
        {"id": "1", "formula": "钛白 15g 天蓝 3g"},
        {"id": "2", "formula": "天蓝 1g 钛白 5g"},
        {"id": "3", "formula": "钛白 10g"},
        {"id": "4", "formula": ""},
        {"id": "5", "formula": "钛白 1g 天蓝 1ml"},
    ]


def test_group_by_ratio_signature_keeps_every_bucket():
    buckets = group_by_ratio_signature(_rows())
    assert list(buckets) == [SIG, "钛白:1.0000"]
    assert [r["id"] for r in buckets[SIG]] == ["1", "2"]


def test_find_duplicate_groups():
    groups = find_duplicate_groups(_rows())
    assert len(groups) == 1
    assert groups[0].signature == SIG
    assert [r["id"] for r in groups[0].records] == ["1", "2"]


def test_find_duplicate_groups_is_idempotent_and_read_only():
    rows = _rows()
    before = copy.deepcopy(rows)
    first = find_duplicate_groups(rows)
    second = find_duplicate_groups(rows)
    assert [(g.signature, g.records) for g in first] == [(g.signature, g.records) for g in second]
    assert rows == before


def test_find_duplicate_groups_on_records():
    records = [ColorRecord(id=i, formula=f) for i, f in ((1, "a 2g b 4g"), (2, "b 2g a 1g"), (3, "a 1g"))]
    groups = find_duplicate_groups(records)
    assert [[r.id for r in g.records] for g in groups] == [[1, 2]]


def test_find_duplicate_groups_empty():
    assert find_duplicate_groups([]) == []
    assert find_duplicate_groups([{"id": "1", "formula": "a 1g"}]) == []


def test_detect_on_save():
    new = {"id": "9", "formula": "钛白 30g 天蓝 6g"}
    group = detect_on_save(new, _rows())
    assert group is not None
    assert group.signature == SIG
    assert [r["id"] for r in group.records] == ["1", "2", "9"]


def test_detect_on_save_ignores_the_stored_copy():
    stored = {"id": "1", "formula": "钛白 15g 天蓝 3g"}
    edited = {"id": "1", "formula": "钛白 5g 天蓝 1g"}
    assert detect_on_save(edited, [stored]) is None


def test_detect_on_save_without_signature():
    assert detect_on_save({"id": "9", "formula": "钛白"}, _rows()) is None


def test_parse_ratio():
    assert parse_ratio(SIG) == {"items": [
        {"name": "天蓝", "ratio": 1.0},
        {"name": "钛白", "ratio": 5.0},
    ]}
    assert parse_ratio(None) == {"items": []}
    assert parse_ratio("bad|a:1.5|b:x") == {"items": [{"name": "a", "ratio": 1.5}]}

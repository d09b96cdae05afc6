import sqlite3
import threading

import pytest

from paintmix.data.color_store import CsvColorStore
from paintmix.data.csv_io import read_rows, write_rows_atomic
from paintmix.data.records import COLORS_HEADER
from paintmix.data.rename_pigment import plan_rename, rename_across_formulas, replace_name_in_formula
from paintmix.data.sqlite_store import SqliteColorStore
from paintmix.errors import TransactionError


class FakeTransaction:
    """In-memory FormulaTransaction that can be told to fail on one id."""

    def __init__(self, rows, fail_on=None):
        self.rows = dict(rows)
        self.fail_on = fail_on
        self.calls = []
        self._staged = None

    def read_formulas(self):
        self.calls.append("read")
        return list(self.rows.items())

    def begin(self):
        self.calls.append("begin")
        self._staged = {}

    def write_formula(self, record_id, formula):
        self.calls.append(("write", record_id))
        if record_id == self.fail_on:
            raise IOError("disk full")
        self._staged[record_id] = formula

    def commit(self):
        self.calls.append("commit")
        self.rows.update(self._staged)
        self._staged = None

    def rollback(self):
        self.calls.append("rollback")
        self._staged = None


ROWS = [
    (1, "钛白 15g 天蓝 3g"),
    (2, "天蓝 1g 群青 2g"),
    (3, "钛白 5g"),
]


def test_replace_name_in_formula():
    assert replace_name_in_formula("钛白 15g 天蓝 3g", "天蓝", "湖蓝") == "钛白 15g 湖蓝 3g"
    assert replace_name_in_formula("天蓝色 2g", "天蓝", "湖蓝") == "天蓝色 2g"
    # quantity tokens are never renamed
    assert replace_name_in_formula("钛白 5g", "5g", "x") == "钛白 5g"


def test_replace_keeps_text_when_nothing_changes():
    assert replace_name_in_formula("钛白  15g", "天蓝", "湖蓝") == "钛白  15g"


def test_plan_rename_only_returns_changes():
    assert plan_rename(ROWS + [(4, ""), (5, None)], "天蓝", "湖蓝") == [
        (1, "钛白 15g 湖蓝 3g"),
        (2, "湖蓝 1g 群青 2g"),
    ]


def test_rename_updates_matching_formulas():
    tx = FakeTransaction(ROWS)
    assert rename_across_formulas(tx, "天蓝", "湖蓝") == 2
    assert tx.rows == {1: "钛白 15g 湖蓝 3g", 2: "湖蓝 1g 群青 2g", 3: "钛白 5g"}
    assert tx.calls == ["begin", "read", ("write", 1), ("write", 2), "commit"]


def test_rename_noop_cases():
    tx = FakeTransaction(ROWS)
    assert rename_across_formulas(tx, "天蓝", "天蓝") == 0
    assert rename_across_formulas(tx, "", "湖蓝") == 0
    assert tx.calls == []
    assert rename_across_formulas(tx, "朱红", "湖蓝") == 0
    assert tx.calls == ["begin", "read", "rollback"]


@pytest.mark.parametrize("bad", ["", "湖 蓝", "5g"])
def test_rename_rejects_invalid_new_name(bad):
    tx = FakeTransaction(ROWS)
    with pytest.raises(ValueError):
        rename_across_formulas(tx, "天蓝", bad)
    assert tx.calls == []


def test_rename_rolls_back_on_failure():
    tx = FakeTransaction(ROWS, fail_on=2)
    with pytest.raises(TransactionError):
        rename_across_formulas(tx, "天蓝", "湖蓝")
    assert tx.calls[-1] == "rollback"
    assert "commit" not in tx.calls
    assert tx.rows == dict(ROWS)


def test_rename_read_failure():
    class Broken(FakeTransaction):
        def read_formulas(self):
            raise IOError("gone")

    tx = Broken(ROWS)
    with pytest.raises(TransactionError):
        rename_across_formulas(tx, "天蓝", "湖蓝")
    assert tx.calls == ["begin", "rollback"]


# -----------------------------------------------------------------------------
# Against real stores
# -----------------------------------------------------------------------------

def _fill(store):
    for n, (rid, formula) in enumerate(ROWS, 1):
        store.add_record({"id": str(rid), "color_code": f"C{n}", "formula": formula})


def test_rename_csv_store(tmp_path):
    store = CsvColorStore(tmp_path / "colors.csv")
    _fill(store)
    assert rename_across_formulas(store, "天蓝", "湖蓝") == 2
    formulas = dict(CsvColorStore(tmp_path / "colors.csv").read_formulas())
    assert formulas == {"1": "钛白 15g 湖蓝 3g", "2": "湖蓝 1g 群青 2g", "3": "钛白 5g"}


def test_rename_csv_store_failure_leaves_file_untouched(tmp_path):
    class FailingStore(CsvColorStore):
        def write_formula(self, record_id, formula):
            if record_id == "2":
                raise IOError("disk full")
            super().write_formula(record_id, formula)

    path = tmp_path / "colors.csv"
    store = FailingStore(path)
    _fill(store)
    before = path.read_bytes()
    with pytest.raises(TransactionError):
        rename_across_formulas(store, "天蓝", "湖蓝")
    assert path.read_bytes() == before
    assert not store._lock.locked()


def test_rename_sqlite_store(tmp_path):
    store = SqliteColorStore(tmp_path / "colors.db")
    for n, (_, formula) in enumerate(ROWS, 1):
        store.add_record({"color_code": f"C{n}", "formula": formula})
    assert rename_across_formulas(store, "天蓝", "湖蓝") == 2
    assert dict(store.read_formulas()) == {1: "钛白 15g 湖蓝 3g", 2: "湖蓝 1g 群青 2g", 3: "钛白 5g"}
    store.close()


def test_rename_sqlite_store_rolls_back(tmp_path):
    class FailingStore(SqliteColorStore):
        def write_formula(self, record_id, formula):
            if record_id == 2:
                raise IOError("disk full")
            super().write_formula(record_id, formula)

    store = FailingStore(tmp_path / "colors.db")
    for n, (_, formula) in enumerate(ROWS, 1):
        store.add_record({"color_code": f"C{n}", "formula": formula})
    with pytest.raises(TransactionError):
        rename_across_formulas(store, "天蓝", "湖蓝")
    assert not store.conn.in_transaction
    assert dict(store.read_formulas()) == dict(ROWS)
    store.close()


def test_rename_changes_exactly_the_matching_rows():
    tx = FakeTransaction(enumerate(["天蓝 3g", "钛白 15g 天蓝 3g", "深绿 1g"]))
    assert rename_across_formulas(tx, "天蓝", "湖蓝") == 2
    assert tx.rows == {0: "湖蓝 3g", 1: "钛白 15g 湖蓝 3g", 2: "深绿 1g"}


def test_rename_never_touches_quantity_tokens():
    rows = [(1, "钛白 5g 天蓝 5g"), (2, "5g 3g")]
    tx = FakeTransaction(rows)
    assert rename_across_formulas(tx, "5g", "钛黄") == 0
    assert tx.rows == dict(rows)
    assert "commit" not in tx.calls


# -----------------------------------------------------------------------------
# Concurrent writers
# -----------------------------------------------------------------------------

def _two_rows(path):
    store = CsvColorStore(path)
    store.add_record({"id": "1", "formula": "钛白 15g 天蓝 3g"})
    store.add_record({"id": "2", "formula": "天蓝 1g"})
    return store


def test_csv_stores_on_one_file_share_a_lock(tmp_path):
    path = tmp_path / "colors.csv"
    assert CsvColorStore(path)._lock is CsvColorStore(tmp_path / "." / "colors.csv")._lock
    assert CsvColorStore(path)._lock is not CsvColorStore(tmp_path / "other.csv")._lock


def test_csv_rename_waits_for_open_transaction(tmp_path):
    path = tmp_path / "colors.csv"
    first = _two_rows(path)
    second = CsvColorStore(path)

    first.begin()
    for rid, formula in first.read_formulas():
        first.write_formula(rid, formula.replace("天蓝", "湖蓝"))

    result = {}
    worker = threading.Thread(
        target=lambda: result.update(n=rename_across_formulas(second, "钛白", "白"))
    )
    worker.start()
    worker.join(timeout=0.2)
    assert worker.is_alive()

    first.commit()
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert result["n"] == 1
    assert dict(CsvColorStore(path).read_formulas()) == {"1": "白 15g 湖蓝 3g", "2": "湖蓝 1g"}


def test_csv_commit_refuses_rows_changed_on_disk(tmp_path):
    class RacingStore(CsvColorStore):
        def read_formulas(self):
            pairs = super().read_formulas()
            # another process rewrites row 2 after our read
            rows = read_rows(self.csv_path)
            rows[1]["formula"] = "湖蓝 1g"
            write_rows_atomic(self.csv_path, COLORS_HEADER, rows)
            return pairs

    path = tmp_path / "colors.csv"
    _two_rows(path)
    store = RacingStore(path)
    with pytest.raises(TransactionError):
        rename_across_formulas(store, "天蓝", "群青")
    assert dict(CsvColorStore(path).read_formulas()) == {"1": "钛白 15g 天蓝 3g", "2": "湖蓝 1g"}
    assert not store._lock.locked()


def test_sqlite_rename_blocked_by_open_writer(tmp_path):
    db = tmp_path / "colors.db"
    first = SqliteColorStore(db)
    for n, (_, formula) in enumerate(ROWS, 1):
        first.add_record({"color_code": f"C{n}", "formula": formula})
    second = SqliteColorStore(sqlite3.connect(str(db), timeout=0.1))

    first.begin()
    first.write_formula(1, "钛白 15g 湖蓝 3g")
    with pytest.raises(TransactionError):
        rename_across_formulas(second, "钛白", "白")
    first.commit()

    assert dict(second.read_formulas())[1] == "钛白 15g 湖蓝 3g"
    assert rename_across_formulas(second, "钛白", "白") == 2
    first.close()
    second.close()

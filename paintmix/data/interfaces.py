# paintmix/data/interfaces.py
from __future__ import annotations
from typing import Any, Dict, Iterable, Protocol, Tuple

Row = Dict[str, Any]   # storage row (keys are canonical column names)
RecordId = Any


class FormulaTransaction(Protocol):
    """
    Storage handle used by the cascading rename.

    begin() takes the store's write lock; read_formulas() then enumerates
    (id, formula) pairs and write_formula() stages changes until commit().
    rollback() discards every write since begin(). After a rollback no write
    from that transaction may be observable.
    """

    def read_formulas(self) -> Iterable[Tuple[RecordId, str]]: ...
    def begin(self) -> None: ...
    def write_formula(self, record_id: RecordId, formula: str) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


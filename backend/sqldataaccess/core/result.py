"""
Tabular results: DataTable / DataSet built from a DB-API cursor.

materialize_* read the cursor to exhaustion; closing it is the caller's job.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, NamedTuple


class DataColumn(NamedTuple):
    name: str
    type_code: Any = None


@dataclass
class DataTable:
    columns: list[DataColumn] = field(default_factory=list)
    rows: list[tuple[Any, ...]] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def to_dicts(self) -> list[dict[str, Any]]:
        names = self.column_names
        return [dict(zip(names, row, strict=True)) for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        return iter(self.rows)


@dataclass
class DataSet:
    tables: list[DataTable] = field(default_factory=list)

    def __getitem__(self, index: int) -> DataTable:
        return self.tables[index]

    def __len__(self) -> int:
        return len(self.tables)

    def __iter__(self) -> Iterator[DataTable]:
        return iter(self.tables)


def _read_current(cursor: Any) -> DataTable | None:
    desc = cursor.description
    if not desc:
        return None
    columns = [DataColumn(d[0], d[1] if len(d) > 1 else None) for d in desc]
    rows = [tuple(r) for r in cursor.fetchall()]
    return DataTable(columns=columns, rows=rows)


def materialize_table(cursor: Any) -> DataTable:
    """First result set of the cursor; an empty table when there is none."""
    return _read_current(cursor) or DataTable()


def materialize_set(cursor: Any) -> DataSet:
    """Every result set on the cursor, in order. Statements without rows are skipped."""
    ds = DataSet()
    nextset = getattr(cursor, "nextset", None)
    while True:
        table = _read_current(cursor)
        if table is not None:
            ds.tables.append(table)
        if nextset is None or not nextset():
            break
    return ds


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts. Works for psycopg, pymysql and trino."""
    return materialize_table(cursor).to_dicts()

"""Unit tests for core.result (DataTable / DataSet materialization)."""

from sqldataaccess.core.result import (
    DataColumn,
    DataTable,
    cursor_to_dicts,
    materialize_set,
    materialize_table,
)
from tests.utils.db import make_cursor


def test_materialize_table_reads_columns_and_rows() -> None:
    cur = make_cursor(
        description=[("id", 23, None, None, None, None, None), ("name", 25)],
        rows=[(1, "a"), (2, "b")],
    )
    table = materialize_table(cur)

    assert table.columns == [DataColumn("id", 23), DataColumn("name", 25)]
    assert table.column_names == ["id", "name"]
    assert table.rows == [(1, "a"), (2, "b")]
    assert len(table) == 2
    assert list(table) == [(1, "a"), (2, "b")]
    cur.fetchall.assert_called_once()


def test_materialize_table_without_result_set_is_empty() -> None:
    cur = make_cursor(description=None)
    table = materialize_table(cur)
    assert table == DataTable()
    cur.fetchall.assert_not_called()


def test_to_dicts() -> None:
    table = DataTable(columns=[DataColumn("n")], rows=[(1,), (2,)])
    assert table.to_dicts() == [{"n": 1}, {"n": 2}]


def test_cursor_to_dicts() -> None:
    cur = make_cursor(description=[("n",)], rows=[(1,)])
    assert cursor_to_dicts(cur) == [{"n": 1}]


def test_materialize_set_reads_every_result_set() -> None:
    cur = make_cursor()
    descriptions = iter([[("a",)], None, [("b",)]])
    rows = iter([[(1,)], [(2,), (3,)]])
    cur.description = next(descriptions)
    cur.fetchall.side_effect = lambda: next(rows)

    def _nextset():
        try:
            cur.description = next(descriptions)
        except StopIteration:
            return None
        return True

    cur.nextset.side_effect = _nextset

    ds = materialize_set(cur)

    assert len(ds) == 2
    assert ds[0].rows == [(1,)]
    assert ds[1].column_names == ["b"]
    assert ds[1].rows == [(2,), (3,)]


def test_materialize_set_without_nextset_support() -> None:
    class _Cursor:
        description = [("x",)]

        def fetchall(self):
            return [(9,)]

    ds = materialize_set(_Cursor())
    assert [t.rows for t in ds] == [[(9,)]]

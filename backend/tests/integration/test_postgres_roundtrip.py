"""
Integration tests against a live PostgreSQL.

Skipped unless POSTGRES_SERVER is set (POSTGRES_PORT / POSTGRES_DB /
POSTGRES_USER / POSTGRES_PASSWORD as in tests.utils.datasource).
"""

import os
import uuid
from collections.abc import Generator

import pytest

from sqldataaccess import SqlDataAccess
from tests.utils.datasource import pg_datasource_from_env

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        not os.environ.get("POSTGRES_SERVER"), reason="POSTGRES_SERVER not set"
    ),
]


@pytest.fixture
def table_name() -> Generator[str, None, None]:
    name = f"itest_{uuid.uuid4().hex[:8]}"
    with SqlDataAccess(pg_datasource_from_env()) as db:
        db.execute_non_query(f"CREATE TABLE {name} (id SERIAL PRIMARY KEY, label TEXT)")
    yield name
    with SqlDataAccess(pg_datasource_from_env()) as db:
        db.execute_non_query(f"DROP TABLE IF EXISTS {name}")


@pytest.fixture
def error_proc() -> Generator[str, None, None]:
    name = f"itest_proc_{uuid.uuid4().hex[:8]}"
    with SqlDataAccess(pg_datasource_from_env()) as db:
        db.execute_non_query(
            f"""
            CREATE PROCEDURE {name}(p_fail BOOLEAN, INOUT ret_code INTEGER, INOUT ret_message TEXT)
            LANGUAGE plpgsql AS $$
            BEGIN
                IF p_fail THEN
                    ret_code := 50001;
                    ret_message := 'Simulated failure';
                ELSE
                    ret_code := 0;
                    ret_message := 'OK';
                END IF;
            END
            $$
            """
        )
    yield name
    with SqlDataAccess(pg_datasource_from_env()) as db:
        db.execute_non_query(f"DROP PROCEDURE IF EXISTS {name}")


def test_insert_get_id_round_trip(table_name: str) -> None:
    db = SqlDataAccess(pg_datasource_from_env())
    db.add_parameter("@label", "first")
    result = db.execute_insert_get_id(
        f"INSERT INTO {table_name} (label) VALUES (%(label)s)"
    )
    assert result.rowcount == 1

    db.add_parameter("@id", result.id)
    label = db.execute_scalar(f"SELECT label FROM {table_name} WHERE id = %(id)s")
    assert label == "first"


def test_commit_makes_all_statements_visible(table_name: str) -> None:
    db = SqlDataAccess(pg_datasource_from_env())
    db.begin_transaction("three_inserts")
    for label in ("a", "b", "c"):
        db.add_parameter("@label", label)
        db.execute_non_query(f"INSERT INTO {table_name} (label) VALUES (%(label)s)")
    db.commit_transaction()

    assert db.execute_scalar(f"SELECT count(*) FROM {table_name}") == 3


def test_rollback_discards_all_statements(table_name: str) -> None:
    db = SqlDataAccess(pg_datasource_from_env())
    db.begin_transaction("three_inserts")
    for label in ("a", "b", "c"):
        db.add_parameter("@label", label)
        db.execute_non_query(f"INSERT INTO {table_name} (label) VALUES (%(label)s)")
    db.rollback_transaction()

    assert db.execute_scalar(f"SELECT count(*) FROM {table_name}") == 0


def test_failed_statement_rolls_back_transaction(table_name: str) -> None:
    db = SqlDataAccess(pg_datasource_from_env())
    db.begin_transaction("doomed")
    db.execute_non_query(f"INSERT INTO {table_name} (label) VALUES ('kept?')")
    with pytest.raises(Exception):
        db.execute_non_query("INSERT INTO no_such_table_xyz VALUES (1)")

    assert db.in_transaction is False
    assert db.execute_scalar(f"SELECT count(*) FROM {table_name}") == 0


def test_procedure_error_parms(error_proc: str) -> None:
    db = SqlDataAccess(pg_datasource_from_env())

    ok = db.execute_non_query_sp_error_parms(error_proc, -1, False)
    assert (ok.return_code, ok.return_message) == (0, "OK")

    failed = db.execute_non_query_sp_error_parms(error_proc, -1, True)
    assert (failed.return_code, failed.return_message) == (50001, "Simulated failure")


def test_commit_and_rollback_when_idle() -> None:
    db = SqlDataAccess(pg_datasource_from_env())
    db.commit_transaction()
    db.rollback_transaction()
    assert db.in_transaction is False

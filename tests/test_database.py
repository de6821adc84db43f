from types import SimpleNamespace

import pytest

from app.core import database
from app.core.database import (
    ExpectedReturn,
    build_exec_statement,
    db_request,
    fetch_result_sets,
    shape_result,
    to_database_error,
)
from app.core.errors import DatabaseError


class DriverError(Exception):
    """Plays the DBAPI Error class of the driver"""


class FakeCursor:
    def __init__(self, result_sets, error=None):
        # Each set is (columns, rows); columns None for row-count-only sets
        self.result_sets = list(result_sets)
        self.error = error
        self.index = 0
        self.executed = None
        self.closed = False

    def execute(self, statement, values):
        self.executed = (statement, values)
        if self.error is not None:
            raise self.error

    @property
    def description(self):
        if self.index >= len(self.result_sets):
            return None
        columns, _ = self.result_sets[self.index]
        return [(name,) for name in columns] if columns else None

    def fetchall(self):
        return self.result_sets[self.index][1]

    def nextset(self):
        self.index += 1
        return self.index < len(self.result_sets) or None

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeEngine:
    dialect = SimpleNamespace(dbapi=SimpleNamespace(Error=DriverError))

    def __init__(self, connection):
        self.connection = connection
        self.raw_connections = 0

    def raw_connection(self):
        self.raw_connections += 1
        return self.connection


@pytest.fixture
def install_engine(monkeypatch):
    def install(result_sets=(), error=None):
        cursor = FakeCursor(result_sets, error)
        connection = FakeConnection(cursor)
        engine = FakeEngine(connection)
        monkeypatch.setattr(database, "_engine", engine)
        return engine, connection, cursor
    return install


# ===================== Statement & shaping =====================

def test_build_exec_statement_binds_each_parameter():
    statement = build_exec_statement("[functional].[spStockBalanceGet]", ["idAccount", "idProduct"])
    assert statement == "EXEC [functional].[spStockBalanceGet] @idAccount = ?, @idProduct = ?"


def test_build_exec_statement_without_parameters():
    assert build_exec_statement("[functional].[spPing]", []) == "EXEC [functional].[spPing]"


def test_fetch_result_sets_skips_row_count_sets():
    cursor = FakeCursor([
        (None, []),
        (["id", "name"], [(1, "a"), (2, "b")]),
        (["total"], [(2,)]),
    ])

    assert fetch_result_sets(cursor) == [
        [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}],
        [{"total": 2}],
    ]


def test_shape_none_ignores_rows():
    assert shape_result([[{"a": 1}]], ExpectedReturn.NONE) is None


def test_shape_single_first_row_or_none():
    assert shape_result([[{"a": 1}, {"a": 2}], [{"b": 3}]], ExpectedReturn.SINGLE) == {"a": 1}
    assert shape_result([[]], ExpectedReturn.SINGLE) is None
    assert shape_result([], ExpectedReturn.SINGLE) is None


def test_shape_multi_returns_all_sets():
    sets = [[{"a": 1}], []]
    assert shape_result(sets, ExpectedReturn.MULTI) == sets


def test_shape_multi_with_names():
    shaped = shape_result([[{"a": 1}]], ExpectedReturn.MULTI, ["movements", "totals"])
    assert shaped == {"movements": [{"a": 1}], "totals": []}


# ===================== Error normalization =====================

ODBC_PREFIX = "[Microsoft][ODBC Driver 18 for SQL Server][SQL Server]"


def test_odbc_business_rule_message_is_parsed():
    exc = DriverError(
        "42000",
        f"[42000] {ODBC_PREFIX}Motivo obrigatório (51000) (SQLExecDirectW)",
    )

    error = to_database_error(exc)

    assert error.number == 51000
    assert error.message == "Motivo obrigatório"
    assert error.is_business_rule


def test_odbc_informational_records_are_skipped():
    text = (
        f"[42000] {ODBC_PREFIX}ProductDoesntExist (51000) (SQLExecDirectW); "
        f"[01000] {ODBC_PREFIX}checking stock (0)"
    )
    error = to_database_error(DriverError("42000", text))

    assert error.number == 51000
    assert error.message == "ProductDoesntExist"


def test_odbc_print_before_throw():
    text = (
        f"[01000] {ODBC_PREFIX}checking stock (0) (SQLExecDirectW); "
        f"[42000] {ODBC_PREFIX}InvalidQuantity (51000)"
    )
    error = to_database_error(DriverError("42000", text))

    assert error.number == 51000
    assert error.message == "InvalidQuantity"


def test_odbc_message_containing_semicolon():
    text = f"[42000] {ODBC_PREFIX}Saldo insuficiente; tente novamente (51000) (SQLExecDirectW)"
    error = to_database_error(DriverError("42000", text))

    assert error.number == 51000
    assert error.message == "Saldo insuficiente; tente novamente"


def test_pymssql_style_arguments():
    error = to_database_error(DriverError(51000, b"InvalidQuantity"))
    assert error.number == 51000
    assert error.message == "InvalidQuantity"


def test_unrecognized_error_keeps_text():
    error = to_database_error(DriverError("08001", "Login timeout expired"))
    assert error.number is None
    assert error.message == "Login timeout expired"
    assert not error.is_business_rule


# ===================== db_request =====================

def test_db_request_single_commits_and_closes(install_engine):
    engine, connection, cursor = install_engine([(["idStockMovement"], [(77,)])])

    row = db_request("[functional].[spStockMovementCreate]", {"idAccount": 1, "reason": None}, ExpectedReturn.SINGLE)

    assert row == {"idStockMovement": 77}
    assert cursor.executed == (
        "EXEC [functional].[spStockMovementCreate] @idAccount = ?, @reason = ?",
        [1, None],
    )
    assert cursor.closed
    assert connection.committed
    assert connection.closed
    assert engine.raw_connections == 1


def test_db_request_multi_named(install_engine):
    install_engine([(["id"], [(1,), (2,)]), (["total"], [(2,)])])

    shaped = db_request("[functional].[spStockMovementList]", {}, ExpectedReturn.MULTI, result_set_names=["rows", "summary"])

    assert shaped == {"rows": [{"id": 1}, {"id": 2}], "summary": [{"total": 2}]}


def test_db_request_error_rolls_back_and_raises(install_engine):
    failure = DriverError("42000", f"[42000] {ODBC_PREFIX}InvalidMovementType (51000) (SQLExecDirectW)")
    _, connection, _ = install_engine(error=failure)

    with pytest.raises(DatabaseError) as exc_info:
        db_request("[functional].[spStockMovementCreate]", {"movementType": 9}, ExpectedReturn.SINGLE)

    assert exc_info.value.number == 51000
    assert exc_info.value.message == "InvalidMovementType"
    assert exc_info.value.__cause__ is failure
    assert connection.rolled_back
    assert not connection.committed
    assert connection.closed


def test_db_request_inside_transaction_leaves_connection_open(install_engine):
    engine, connection, _ = install_engine([(["id"], [(5,)])])
    transaction = database.begin_transaction()

    row = db_request("[functional].[spStockMovementCreate]", {}, ExpectedReturn.SINGLE, transaction=transaction)

    assert row == {"id": 5}
    assert not connection.committed
    assert not connection.closed

    database.commit_transaction(transaction)
    assert connection.committed
    assert connection.closed
    assert engine.raw_connections == 1


def test_transaction_error_is_left_to_the_caller(install_engine):
    _, connection, _ = install_engine(error=DriverError("42000", "deadlock"))
    transaction = database.begin_transaction()

    with pytest.raises(DatabaseError):
        db_request("[functional].[spStockMovementCreate]", {}, ExpectedReturn.NONE, transaction=transaction)
    assert not connection.rolled_back

    database.rollback_transaction(transaction)
    assert connection.rolled_back
    assert connection.closed


# ===================== Engine lifecycle =====================

def test_engine_is_created_once_and_disposed(monkeypatch):
    created = []

    class Engine:
        disposed = False

        def dispose(self):
            self.disposed = True

    def fake_create_engine(url, **kwargs):
        created.append((url, kwargs))
        return Engine()

    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "create_engine", fake_create_engine)

    first = database.get_engine()
    assert database.get_engine() is first
    assert len(created) == 1
    assert created[0][1]["pool_pre_ping"] is True

    database.dispose_engine()
    assert first.disposed
    assert database._engine is None

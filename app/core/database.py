"""
Database gateway - executes stored procedures through a process-wide pool
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import logging
import re
import threading

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .config import settings
from .errors import DatabaseError

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_engine_lock = threading.Lock()

# pyodbc joins diagnostic records with "; ", each formatted as
# "[42000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]Message text (51000) (SQLExecDirectW)"
_ODBC_RECORD_SPLIT_RE = re.compile(r";\s*(?=\[[0-9A-Z]{5}\])")
_ODBC_RECORD_RE = re.compile(
    r"^\s*(?:\[(?P<state>[0-9A-Z]{5})\]\s*)?(?:\[[^\]]*\]\s*)*"
    r"(?P<message>.*?)\s*\((?P<number>-?\d+)\)(?:\s*\(SQL\w+\))?\s*$",
    re.S,
)


class ExpectedReturn(str, Enum):
    """Expected return shape of a stored procedure call"""
    NONE = "None"
    SINGLE = "Single"
    MULTI = "Multi"


def get_engine() -> Engine:
    """Get or lazily create the connection pool"""
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = create_engine(
                    settings.DATABASE_URL,
                    pool_pre_ping=True,
                    pool_size=settings.DB_POOL_SIZE,
                    pool_timeout=settings.DB_POOL_TIMEOUT,
                )
                logger.info("Database connection pool established")
    return _engine


def dispose_engine() -> None:
    """Close the connection pool"""
    global _engine
    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
            _engine = None
            logger.info("Database connection pool closed")


class Transaction:
    """A pooled connection held open until commit or rollback"""

    def __init__(self, connection):
        self.connection = connection
        self.closed = False

    def commit(self) -> None:
        try:
            self.connection.commit()
        finally:
            self._close()

    def rollback(self) -> None:
        try:
            self.connection.rollback()
        finally:
            self._close()

    def _close(self) -> None:
        if not self.closed:
            self.connection.close()
            self.closed = True


def begin_transaction() -> Transaction:
    return Transaction(get_engine().raw_connection())


def commit_transaction(transaction: Transaction) -> None:
    transaction.commit()


def rollback_transaction(transaction: Transaction) -> None:
    transaction.rollback()


def build_exec_statement(procedure: str, parameter_names: Sequence[str]) -> str:
    """EXEC statement with one bound placeholder per named input"""
    if not parameter_names:
        return f"EXEC {procedure}"
    assignments = ", ".join(f"@{name} = ?" for name in parameter_names)
    return f"EXEC {procedure} {assignments}"


def fetch_result_sets(cursor) -> List[List[Dict[str, Any]]]:
    """Read every result set produced by the call, skipping row-count-only sets"""
    result_sets = []
    while True:
        if cursor.description:
            columns = [column[0] for column in cursor.description]
            result_sets.append([dict(zip(columns, row)) for row in cursor.fetchall()])
        if not cursor.nextset():
            break
    return result_sets


def to_database_error(exc: Exception) -> DatabaseError:
    """Normalize a driver error into DatabaseError(number, message)"""
    number = getattr(exc, "number", None)
    args = getattr(exc, "args", ())

    # pymssql style: (number, b"message")
    if number is None and len(args) >= 2 and isinstance(args[0], int):
        message = args[1].decode("utf-8", "replace") if isinstance(args[1], bytes) else str(args[1])
        return DatabaseError(args[0], message)

    # pyodbc style: (sqlstate, "[sqlstate] [...][SQL Server]message (number) (SQLExecDirectW); [...]")
    text = str(args[-1]) if args else str(exc)
    record = _pick_odbc_record(text)
    if record:
        return DatabaseError(number or int(record.group("number")), record.group("message"))
    return DatabaseError(number, text)


def _pick_odbc_record(text: str) -> Optional[re.Match]:
    """First error record, skipping informational ones (SQLSTATE class 01, e.g. PRINT output)"""
    records = [
        match for match in (_ODBC_RECORD_RE.match(part) for part in _ODBC_RECORD_SPLIT_RE.split(text))
        if match
    ]
    for record in records:
        state = record.group("state") or ""
        if not state.startswith("01"):
            return record
    return records[0] if records else None


def shape_result(
    result_sets: List[List[Dict[str, Any]]],
    expected_return: ExpectedReturn,
    result_set_names: Optional[Sequence[str]] = None,
) -> Any:
    if expected_return == ExpectedReturn.NONE:
        return None
    if expected_return == ExpectedReturn.SINGLE:
        if result_sets and result_sets[0]:
            return result_sets[0][0]
        return None
    if result_set_names:
        return {
            name: result_sets[index] if index < len(result_sets) else []
            for index, name in enumerate(result_set_names)
        }
    return result_sets


def db_request(
    procedure: str,
    parameters: Dict[str, Any],
    expected_return: ExpectedReturn,
    transaction: Optional[Transaction] = None,
    result_set_names: Optional[Sequence[str]] = None,
) -> Any:
    """
    Execute a stored procedure with every parameter bound as a named input.

    NONE returns None, SINGLE the first row of the first result set (or None),
    MULTI the list of result sets, or a name -> result set mapping when
    result_set_names is given.
    """
    engine = get_engine()
    names = list(parameters.keys())
    statement = build_exec_statement(procedure, names)
    values = [parameters[name] for name in names]

    connection = transaction.connection if transaction else engine.raw_connection()
    logger.debug(f"Executing {procedure} ({len(values)} params)")
    try:
        cursor = connection.cursor()
        try:
            cursor.execute(statement, values)
            result_sets = fetch_result_sets(cursor)
        finally:
            cursor.close()
        if transaction is None:
            connection.commit()
    except engine.dialect.dbapi.Error as e:
        if transaction is None:
            connection.rollback()
        error = to_database_error(e)
        logger.warning(f"{procedure} failed: [{error.number}] {error.message}")
        raise error from e
    finally:
        if transaction is None:
            connection.close()

    return shape_result(result_sets, expected_return, result_set_names)

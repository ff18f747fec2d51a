"""SQLAlchemy-backed implementation of the :class:`~basekit.db.port.Db` port.

Statements are passed straight to the driver (``exec_driver_sql``), so they
use the driver's positional paramstyle: ``%s`` for PyMySQL, ``?`` for SQLite.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
import logging
from typing import Any, Optional, Sequence

from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError

from basekit.core.errors import DatabaseConnectionError, QueryError

from .port import INT64_MAX, Row, Value, ValueKind

logger = logging.getLogger(__name__)

WHO_WHERE_SQL = "SELECT CURRENT_USER(), USER(), DATABASE(), @@hostname"


def _error_summary(exc: BaseException) -> str:
    orig = getattr(exc, "orig", None)
    if orig is not None and getattr(orig, "args", None):
        args = orig.args
        if len(args) >= 2:
            return f"code={args[0]}, message={args[1]}"
        return f"message={args[0]}"
    return f"{type(exc).__name__}: {exc}"


def _format_duration(delta: timedelta) -> str:
    sign = "-" if delta < timedelta(0) else ""
    total = abs(delta)
    seconds = total.days * 86400 + total.seconds
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{secs:02d}"
    if total.microseconds:
        text += f".{total.microseconds:06d}"
    return text


def to_driver_value(value: Value) -> Any:
    if value.kind is ValueKind.NULL:
        return None
    if value.kind is ValueKind.BOOL:
        return 1 if value.data else 0
    return value.data


def from_driver_value(raw: Any) -> Value:
    """Convert whatever the DBAPI driver returned into a tagged value."""
    if raw is None:
        return Value.null()
    if isinstance(raw, bool):
        return Value(ValueKind.BOOL, raw)
    if isinstance(raw, int):
        return Value.uint(raw) if raw > INT64_MAX else Value(ValueKind.INT, raw)
    if isinstance(raw, float):
        return Value(ValueKind.FLOAT, raw)
    if isinstance(raw, Decimal):
        return Value(ValueKind.STR, str(raw))
    if isinstance(raw, str):
        return Value(ValueKind.STR, raw)
    if isinstance(raw, datetime):
        return Value(ValueKind.DATETIME, raw)
    if isinstance(raw, date):
        return Value(ValueKind.DATETIME, datetime.combine(raw, time.min))
    if isinstance(raw, timedelta):
        # MySQL TIME columns
        return Value(ValueKind.STR, _format_duration(raw))
    if isinstance(raw, time):
        return Value(ValueKind.STR, raw.isoformat())
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return Value(ValueKind.BYTES, bytes(raw))
    return Value(ValueKind.STR, str(raw))


class SqlDb:
    """Db port over a shared SQLAlchemy engine."""

    def __init__(self, engine: Engine, *, sql_debug: bool = False) -> None:
        self._engine = engine
        self._sql_debug = sql_debug

    @property
    def engine(self) -> Engine:
        return self._engine

    # -------------------------- port --------------------------
    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        with self._connect() as conn:
            result = self._run(conn, "fetch_one", sql, params)
            try:
                keys = list(result.keys())
                first = result.first()
            except SQLAlchemyError as exc:
                raise self._query_failed(conn, "fetch_one", exc)
        self._debug("fetch_one: row_present=%s", first is not None)
        return self._row(keys, first) if first is not None else None

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        with self._connect() as conn:
            result = self._run(conn, "fetch_all", sql, params)
            try:
                keys = list(result.keys())
                rows = result.fetchall()
            except SQLAlchemyError as exc:
                raise self._query_failed(conn, "fetch_all", exc)
        self._debug("fetch_all: rows=%d", len(rows))
        return [self._row(keys, r) for r in rows]

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        with self._connect() as conn:
            result = self._run(conn, "execute", sql, params)
            affected = result.rowcount
            self._commit(conn, "execute")
        self._debug("affected_rows = %s", affected)
        return affected

    def execute_returning_id(self, sql: str, params: Sequence[Any] = ()) -> int:
        with self._connect() as conn:
            result = self._run(conn, "execute_returning_id", sql, params)
            last_id = result.lastrowid
            self._commit(conn, "execute_returning_id")
        if last_id is None:
            raise QueryError("execute_returning_id failed: no id was generated")
        self._debug("last_insert_id = %s", last_id)
        return int(last_id)

    # -------------------------- internals --------------------------
    def _connect(self) -> Connection:
        try:
            return self._engine.connect()
        except SQLAlchemyError as exc:
            logger.error("get_conn failed: %s", _error_summary(exc))
            raise DatabaseConnectionError(f"get_conn failed: {_error_summary(exc)}") from exc

    def _run(self, conn: Connection, op: str, sql: str, params: Sequence[Any]) -> CursorResult:
        values = [Value.of(p) for p in params]
        self._debug("-- %s about to run\nSQL: %s", op, sql)
        for i, v in enumerate(values):
            self._debug("param[%d] = %r", i, v)
        driver_params = tuple(to_driver_value(v) for v in values) if values else None
        try:
            return conn.exec_driver_sql(sql, driver_params)
        except SQLAlchemyError as exc:
            raise self._query_failed(conn, op, exc)

    def _commit(self, conn: Connection, op: str) -> None:
        try:
            conn.commit()
        except SQLAlchemyError as exc:
            raise self._query_failed(conn, op, exc)

    def _query_failed(self, conn: Connection, op: str, exc: SQLAlchemyError) -> QueryError:
        summary = _error_summary(exc)
        logger.error("%s failed: %s", op, summary)
        if self._sql_debug:
            logger.debug("%s failed (debug): %r", op, exc)
            self._log_who_where(conn)
        return QueryError(f"{op} failed: {summary}")

    def _log_who_where(self, conn: Connection) -> None:
        if self._engine.dialect.name != "mysql":
            return
        try:
            conn.rollback()
            row = conn.exec_driver_sql(WHO_WHERE_SQL).first()
        except SQLAlchemyError:
            return
        logger.info("who/where = %s", tuple(row) if row is not None else None)

    def _debug(self, msg: str, *args: Any) -> None:
        if self._sql_debug:
            logger.info(msg, *args)

    @staticmethod
    def _row(keys: list[str], raw: Sequence[Any]) -> Row:
        return Row({name: from_driver_value(value) for name, value in zip(keys, raw)})

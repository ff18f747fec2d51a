"""Database helpers (pool construction, driver-agnostic port, SQL adapter)."""

from .pool import create_pool
from .port import Db, Param, Row, Value, ValueKind, params
from .sql_adapter import SqlDb

__all__ = ["Db", "Param", "Row", "SqlDb", "Value", "ValueKind", "create_pool", "params"]

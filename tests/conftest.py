from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import pytest

# Make the basekit package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from basekit.core import config as core_config  # noqa: E402
from basekit.db.port import Row, Value  # noqa: E402


class FakeDb:
    """In-memory Db port: returns canned rows and records every call."""

    def __init__(self, rows: Optional[list[dict[str, Any]]] = None) -> None:
        self.rows = [Row.from_mapping(r) for r in (rows or [])]
        self.calls: list[tuple[str, str, list[Value]]] = []
        self.next_id = 1

    def _record(self, op: str, sql: str, params: Sequence[Any]) -> None:
        self.calls.append((op, sql, [Value.of(p) for p in params]))

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        self._record("fetch_all", sql, params)
        return list(self.rows)

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        self._record("fetch_one", sql, params)
        return self.rows[0] if self.rows else None

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        self._record("execute", sql, params)
        return len(self.rows)

    def execute_returning_id(self, sql: str, params: Sequence[Any] = ()) -> int:
        self._record("execute_returning_id", sql, params)
        self.next_id += 1
        return self.next_id - 1


@pytest.fixture()
def base_env(tmp_path) -> dict[str, str]:
    """Minimal valid environment mapping (SQLite file database, fixed CSRF secret)."""
    return {
        "APP_ENV": "test",
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "CSRF_SECRET": "test-secret",
        "UPLOAD_ROOT": str(tmp_path / "uploads"),
    }


@pytest.fixture()
def settings(base_env):
    return core_config.load_settings(base_env)


@pytest.fixture()
def fake_db() -> FakeDb:
    return FakeDb([{"id": 1, "name": "alice"}])

# tests/fixtures/fake_db.py
"""In-memory stand-in for the Prisma client used by persistence tests."""
from contextlib import asynccontextmanager
from copy import deepcopy
from types import SimpleNamespace
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import pytest
from prisma import Json


def _unwrap(value: Any) -> Any:
    return value.data if isinstance(value, Json) else value


def _flatten_where(where: Dict[str, Any]) -> Dict[str, Any]:
    """Expand compound unique selectors such as ``tenantId_realmId``."""
    flat: Dict[str, Any] = {}
    for field, value in where.items():
        if isinstance(value, dict) and "_" in field:
            flat.update(value)
        else:
            flat[field] = value
    return flat


class _Row(SimpleNamespace):
    """Record whose unset nullable columns read as None, like a Prisma model."""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return None


class FakeTable:
    """One Prisma model delegate backed by a dict keyed on its primary key."""

    def __init__(self, key_fields: Tuple[str, ...]):
        self.key_fields = key_fields
        self.rows: Dict[Tuple[Any, ...], Dict[str, Any]] = {}

    def _key(self, values: Dict[str, Any]) -> Tuple[Any, ...]:
        return tuple(values[field] for field in self.key_fields)

    def _matches(self, row: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
        flat = _flatten_where(where or {})
        return all(row.get(field) == value for field, value in flat.items())

    async def upsert(self, where: Dict[str, Any], data: Dict[str, Any]) -> Any:
        key = self._key(_flatten_where(where))
        if key in self.rows:
            self.rows[key].update(
                {field: _unwrap(value) for field, value in data["update"].items()}
            )
        else:
            self.rows[key] = {
                field: _unwrap(value) for field, value in data["create"].items()
            }
        return _Row(**self.rows[key])

    async def find_unique(self, where: Dict[str, Any]) -> Any:
        row = self.rows.get(self._key(_flatten_where(where)))
        return _Row(**row) if row else None

    async def find_many(self, where: Optional[Dict[str, Any]] = None) -> List[Any]:
        return [
            _Row(**row)
            for row in self.rows.values()
            if self._matches(row, where)
        ]

    async def count(self, where: Optional[Dict[str, Any]] = None) -> int:
        return len([row for row in self.rows.values() if self._matches(row, where)])

    async def delete_many(self, where: Dict[str, Any]) -> int:
        doomed = [k for k, row in self.rows.items() if self._matches(row, where)]
        for key in doomed:
            del self.rows[key]
        return len(doomed)

    async def create_many(self, data: List[Dict[str, Any]]) -> int:
        for values in data:
            row = {field: _unwrap(value) for field, value in values.items()}
            key = self._key(row)
            if key in self.rows:
                raise AssertionError(f"Unique constraint failed on {key}")
            self.rows[key] = row
        return len(data)

    async def group_by(
        self,
        by: List[str],
        where: Optional[Dict[str, Any]] = None,
        count: bool = False,
    ) -> List[Dict[str, Any]]:
        groups: Dict[Tuple[Any, ...], int] = {}
        for row in self.rows.values():
            if self._matches(row, where):
                group_key = tuple(row[field] for field in by)
                groups[group_key] = groups.get(group_key, 0) + 1
        return [
            {**dict(zip(by, group_key)), "_count": {"_all": total}}
            for group_key, total in groups.items()
        ]

    def snapshot(self) -> Dict[Tuple[Any, ...], Dict[str, Any]]:
        return deepcopy(self.rows)


class FakePrisma:
    """Subset of the Prisma client API exercised by QboSyncRepository."""

    def __init__(self) -> None:
        self.qboentityraw = FakeTable(("tenantId", "realmId", "entityType", "entityId"))
        self.qbosyncstate = FakeTable(("tenantId", "realmId"))
        self.webtransaction = FakeTable(
            ("tenantId", "source", "qboEntityType", "qboEntityId")
        )
        self.webtransactionline = FakeTable(
            ("tenantId", "source", "qboEntityType", "qboEntityId", "lineNum")
        )
        self.transactions_opened = 0
        self.transactions_rolled_back = 0

    def _tables(self) -> Dict[str, FakeTable]:
        return {
            name: table
            for name, table in vars(self).items()
            if isinstance(table, FakeTable)
        }

    @asynccontextmanager
    async def tx(self) -> AsyncIterator["FakePrisma"]:
        """Interactive transaction; every table is restored if the block raises."""
        self.transactions_opened += 1
        saved = {name: table.snapshot() for name, table in self._tables().items()}
        try:
            yield self
        except Exception:
            for name, rows in saved.items():
                self._tables()[name].rows = rows
            self.transactions_rolled_back += 1
            raise

    def snapshot(self) -> Dict[str, Any]:
        """Content of every table, with volatile timestamps removed."""
        volatile = {"fetchedAt", "updatedAt"}
        return {
            name: {
                key: {f: v for f, v in row.items() if f not in volatile}
                for key, row in table.rows.items()
            }
            for name, table in vars(self).items()
            if isinstance(table, FakeTable)
        }


@pytest.fixture
def fake_db() -> FakePrisma:
    """Empty in-memory database."""
    return FakePrisma()

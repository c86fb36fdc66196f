"""
In-memory stand-in for the supabase-py query builder, covering the calls the services make.
"""

import copy
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from postgrest.exceptions import APIError


class FakeResult:
    def __init__(self, data: List[Dict[str, Any]], count: Optional[int] = None):
        self.data = data
        self.count = count


def _like(pattern: str) -> re.Pattern:
    parts = []
    chars = iter(pattern)
    for ch in chars:
        if ch == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile(f"^{''.join(parts)}$", re.IGNORECASE | re.DOTALL)


def _compare(op: str, value: Any, target: Any) -> bool:
    if op == "eq":
        return value == target
    if op == "neq":
        return value != target
    if op == "in":
        return value in target
    if op == "is":
        return value is target
    if value is None or target is None:
        return False
    if op == "gt":
        return value > target
    if op == "gte":
        return value >= target
    if op == "lt":
        return value < target
    if op == "lte":
        return value <= target
    if op == "ilike":
        return bool(_like(str(target)).match(str(value)))
    raise ValueError(f"Unsupported operator: {op}")


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.columns = "*"
        self.count_mode: Optional[str] = None
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[tuple] = []
        self.limit_n: Optional[int] = None
        self.range_bounds: Optional[tuple] = None

    # Actions

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.action = "select"
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload: Dict[str, Any]):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    # Filters

    def _add(self, column: str, op: str, target: Any):
        self.filters.append(lambda row: _compare(op, row.get(column), target))
        return self

    def eq(self, column: str, value: Any):
        return self._add(column, "eq", value)

    def neq(self, column: str, value: Any):
        return self._add(column, "neq", value)

    def in_(self, column: str, values: List[Any]):
        return self._add(column, "in", list(values))

    def gt(self, column: str, value: Any):
        return self._add(column, "gt", value)

    def lt(self, column: str, value: Any):
        return self._add(column, "lt", value)

    def ilike(self, column: str, pattern: str):
        return self._add(column, "ilike", pattern)

    def or_(self, expression: str):
        clauses = []
        for part in expression.split(","):
            column, op, target = part.split(".", 2)
            clauses.append((column, op, target))
        self.filters.append(
            lambda row: any(_compare(op, row.get(column), target) for column, op, target in clauses)
        )
        return self

    def order(self, column: str, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, n: int):
        self.limit_n = n
        return self

    def range(self, start: int, end: int):
        self.range_bounds = (start, end)
        return self

    # Execution

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self.db.tables.setdefault(self.table_name, [])
        return [row for row in rows if all(f(row) for f in self.filters)]

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        names = [c.strip() for c in self.columns.split(",") if c.strip()]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def execute(self) -> FakeResult:
        error = self.db.failing_tables.get(self.table_name, {}).get(self.action)
        if error is not None:
            raise error
        if self.action == "insert":
            return FakeResult(self._insert())
        if self.action == "update":
            matched = self._matching()
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResult([copy.deepcopy(r) for r in matched])
        if self.action == "delete":
            matched = self._matching()
            ids = {id(r) for r in matched}
            self.db.tables[self.table_name] = [
                r for r in self.db.tables[self.table_name] if id(r) not in ids
            ]
            return FakeResult([copy.deepcopy(r) for r in matched])

        rows = self._matching()
        for column, desc in reversed(self.orders):
            present = [r for r in rows if r.get(column) is not None]
            missing = [r for r in rows if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=desc)
            # nulls last for ascending, first for descending (PostgreSQL default)
            rows = missing + present if desc else present + missing
        total = len(rows)
        if self.range_bounds:
            start, end = self.range_bounds
            rows = rows[start:end + 1]
        if self.limit_n is not None:
            rows = rows[:self.limit_n]
        return FakeResult([self._project(r) for r in rows], total if self.count_mode else None)

    def _insert(self) -> List[Dict[str, Any]]:
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        stored = []
        for item in payload:
            row = copy.deepcopy(item)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", self.db.next_timestamp())
            for column in self.db.unique.get(self.table_name, []):
                if any(
                    all(existing.get(c) == row.get(c) for c in column)
                    for existing in self.db.tables.setdefault(self.table_name, [])
                ):
                    raise APIError({
                        "code": "23505",
                        "message": f"duplicate key value violates unique constraint on {self.table_name}",
                        "details": None,
                        "hint": None,
                    })
            self.db.tables.setdefault(self.table_name, []).append(row)
            stored.append(copy.deepcopy(row))
        return stored


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failing_tables: Dict[str, Dict[str, Exception]] = {}
        self.unique: Dict[str, List[tuple]] = {
            "users": [("email",)],
            "workspaces": [("subdomain",)],
            "leads": [("workspace_id", "phone")],
            "tags": [("workspace_id", "name")],
        }
        self._clock = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def next_timestamp(self) -> str:
        # Strictly increasing so ordering by created_at is deterministic
        self._clock += 1
        base = datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp() + self._clock
        return datetime.fromtimestamp(base, tz=timezone.utc).isoformat()

    def fail_on(self, table: str, action: str, error: Optional[Exception] = None) -> None:
        error = error or RuntimeError(f"{action} on {table} failed")
        self.failing_tables.setdefault(table, {})[action] = error

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.get(table, [])

    def seed(self, table: str, **values) -> Dict[str, Any]:
        return self.table(table).insert(values).execute().data[0]

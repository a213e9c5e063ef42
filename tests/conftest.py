"""Pytest fixtures for the ERP backend tests."""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest

from app.modules.auth.service import clear_auth_cache
from app.modules.rbac.repository import RoleRepository
from app.modules.rbac.service import RbacService


# --- Fake Supabase query builder ---


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder."""

    def __init__(self, client: "FakeSupabase", table: str, operation: str = "select", payload: Any = None) -> None:
        self._client = client
        self.table = table
        self.operation = operation
        self.payload = payload
        self.columns: Optional[str] = None
        self.count_mode: Optional[str] = None
        self.filters: List[Tuple[str, Any]] = []
        self.ordering: List[Tuple[str, bool]] = []
        self.row_limit: Optional[int] = None
        self.row_range: Optional[Tuple[int, int]] = None

    def select(self, *columns: str, count: Optional[str] = None) -> "FakeQuery":
        self.columns = ", ".join(columns)
        self.count_mode = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload: Any) -> "FakeQuery":
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self.operation = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((column, value))
        return self

    def is_(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append((f"{column}.is", value))
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        self.filters.append((f"{column}.in", list(values)))
        return self

    def or_(self, filters: str) -> "FakeQuery":
        self.filters.append(("or", filters))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.ordering.append((column, desc))
        return self

    def limit(self, size: int) -> "FakeQuery":
        self.row_limit = size
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.row_range = (start, end)
        return self

    def execute(self) -> SimpleNamespace:
        self._client.executed.append(self)
        outcome = self._client.outcome_for(self)
        if isinstance(outcome, Exception):
            raise outcome
        count = None
        if self.count_mode:
            count = self._client.counts.get(self.table, len(outcome or []))
        return SimpleNamespace(data=outcome, count=count)


class FakeSupabase:
    """In-memory Supabase client: canned responses per table and operation (optionally per select)."""

    def __init__(self) -> None:
        self._outcomes: Dict[Tuple[str, Optional[str], str], Any] = {}
        self.counts: Dict[str, int] = {}
        self.tables_requested: List[str] = []
        self.executed: List[FakeQuery] = []
        self.auth = MagicMock()

    def set_data(self, table: str, data: Any, select: Optional[str] = None, operation: str = "select") -> None:
        self._outcomes[(table, select, operation)] = data

    def set_error(self, table: str, error: Exception, select: Optional[str] = None, operation: str = "select") -> None:
        self._outcomes[(table, select, operation)] = error

    def set_rpc(self, name: str, data: Any) -> None:
        self._outcomes[(name, None, "rpc")] = data

    def outcome_for(self, query: FakeQuery) -> Any:
        for key in ((query.table, query.columns, query.operation), (query.table, None, query.operation)):
            if key in self._outcomes:
                return self._outcomes[key]
        # Inserts echo their rows back, like returning=representation
        if query.operation == "insert":
            return query.payload if isinstance(query.payload, list) else [query.payload]
        return [] if query.operation != "rpc" else None

    def table(self, name: str) -> FakeQuery:
        self.tables_requested.append(name)
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeQuery:
        return FakeQuery(self, name, operation="rpc", payload=params)

    def queries(self, table: str, operation: Optional[str] = None) -> List[FakeQuery]:
        return [
            q for q in self.executed
            if q.table == table and (operation is None or q.operation == operation)
        ]


class StubIdentity:
    """Identity resolver that records how often it was consulted."""

    def __init__(self, user_id: Optional[str]) -> None:
        self.user_id = user_id
        self.calls = 0

    def __call__(self) -> Optional[str]:
        self.calls += 1
        return self.user_id


# --- Row builders ---


def role_row(role_id: str, name: str, display_name: Optional[str] = None, **extra: Any) -> dict:
    role = {"id": role_id, "name": name, "display_name": display_name or name.replace("_", " ").title()}
    role.update(extra)
    return {"role": role}


def permission_row(*pairs: Tuple[str, str]) -> dict:
    return {
        "role": {
            "role_permissions": [
                {"permission": {"action": action, "resource": resource}}
                for action, resource in pairs
            ]
        }
    }


# --- Fixtures ---


@pytest.fixture(autouse=True)
def _reset_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def structured_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def identity() -> StubIdentity:
    return StubIdentity("user-123")


@pytest.fixture
def rbac(fake_supabase, identity, structured_logger) -> RbacService:
    return RbacService(RoleRepository(fake_supabase), identity=identity, logger=structured_logger)

"""
Shared test fixtures.

Key fixtures:
- fake_storage: an in-memory stand-in for `configs.repository`, patched in
  with monkeypatch so service and HTTP tests never need Postgres
- shared_access: the static grant snapshot used by most tests
- client: an httpx.AsyncClient wired to the FastAPI app (in-memory ASGI)

The fake mirrors the repository's query predicates (owner match, shared-grant
match, private-range listing) so authorization outcomes match production.
"""

import copy
import datetime
from types import MappingProxyType

import httpx
import pytest

from configs import repository
from configs.access import SharedAccess
from configs.partition import MAX_SHARED_CONFIG_ID


class FakeStorage:
    def __init__(self):
        self.rows: dict[int, dict] = {}
        self.next_id = MAX_SHARED_CONFIG_ID
        self.calls: list[str] = []

    def _now(self):
        return datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)

    def seed(self, config_id: int, *, owner: str, content) -> dict:
        row = {
            "id": config_id,
            "owner": owner,
            "content": content,
            "created_at": self._now(),
            "updated_at": self._now(),
        }
        self.rows[config_id] = row
        if config_id >= MAX_SHARED_CONFIG_ID:
            self.next_id = max(self.next_id, config_id + 1)
        return row

    async def list_configs_by_owner(self, owner):
        self.calls.append("list_configs_by_owner")
        return [
            copy.deepcopy(row)
            for config_id, row in sorted(self.rows.items())
            if row["owner"] == owner and config_id >= MAX_SHARED_CONFIG_ID
        ]

    async def get_shared_config_without_content(self, config_id):
        self.calls.append("get_shared_config_without_content")
        row = self.rows.get(config_id)
        if row is None or not (1 <= config_id < MAX_SHARED_CONFIG_ID):
            return None
        return {"id": row["id"], "created_at": row["created_at"], "updated_at": row["updated_at"]}

    async def get_granted_shared_config(self, config_id, *, granted_ids):
        self.calls.append("get_granted_shared_config")
        row = self.rows.get(config_id)
        if row is None or config_id not in granted_ids or not (1 <= config_id < MAX_SHARED_CONFIG_ID):
            return None
        return {
            "id": row["id"],
            "content": copy.deepcopy(row["content"]),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    async def get_config_by_id_and_owner(self, config_id, *, owner):
        self.calls.append("get_config_by_id_and_owner")
        row = self.rows.get(config_id)
        if row is None or row["owner"] != owner:
            return None
        return copy.deepcopy(row)

    async def insert_config(self, *, owner, content):
        self.calls.append("insert_config")
        row = self.seed(self.next_id, owner=owner, content=copy.deepcopy(content))
        return copy.deepcopy(row)

    async def update_config_content(self, config_id, *, owner, content):
        self.calls.append("update_config_content")
        row = self.rows.get(config_id)
        if row is not None and row["owner"] == owner:
            row["content"] = copy.deepcopy(content)
            row["updated_at"] = self._now() + datetime.timedelta(minutes=1)


@pytest.fixture
def fake_storage(monkeypatch):
    storage = FakeStorage()
    for name in (
        "list_configs_by_owner",
        "get_shared_config_without_content",
        "get_granted_shared_config",
        "get_config_by_id_and_owner",
        "insert_config",
        "update_config_content",
    ):
        monkeypatch.setattr(repository, name, getattr(storage, name))
    return storage


@pytest.fixture
def shared_access():
    """Token A sees shared ids 1 and 5, token B sees 5, token C sees nothing."""
    return SharedAccess(
        grants=MappingProxyType(
            {
                "token-a": frozenset({1, 5}),
                "token-b": frozenset({5}),
                "token-c": frozenset(),
            }
        )
    )


@pytest.fixture
async def client(fake_storage, shared_access):
    """
    In-memory HTTP client for the app.

    ASGITransport does not run the lifespan, so no pool is opened and the
    shared-access snapshot is installed directly on app.state.
    """
    from main import app

    app.state.shared_access = shared_access
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    del app.state.shared_access


@pytest.fixture
def bearer():
    def _bearer(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _bearer

"""
Config persistence (raw SQL).

Every query that returns a row also encodes its authorization predicate
(owner match, or shared-grant match), so a missing row never tells the
caller whether the id exists.
"""

from __future__ import annotations

import json
from typing import Any

from core import db

from .partition import MAX_SHARED_CONFIG_ID

# Identity starts at the boundary so created configs always land in the private range.
SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS configs (
    id integer GENERATED BY DEFAULT AS IDENTITY (START WITH {MAX_SHARED_CONFIG_ID}) PRIMARY KEY,
    owner text NOT NULL,
    content jsonb NOT NULL DEFAULT 'null'::jsonb,
    created_at timestamptz NOT NULL DEFAULT now(),
    updated_at timestamptz NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS configs_owner_idx ON configs (owner);
"""


def _json_arg(value: Any) -> str:
    """
    asyncpg does not automatically encode Python values for jsonb parameters.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    return json.dumps(value, ensure_ascii=True)


def _decode_row(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    if isinstance(row.get("content"), str):
        row["content"] = json.loads(row["content"])
    return row


async def ensure_schema() -> None:
    await db.execute(SCHEMA_SQL)


async def list_configs_by_owner(owner: str) -> list[dict[str, Any]]:
    rows = await db.fetch_all(
        """
        SELECT id, owner, content, created_at, updated_at
        FROM configs
        WHERE owner = $1
          AND id >= $2
        ORDER BY id ASC
        """,
        owner,
        MAX_SHARED_CONFIG_ID,
    )
    return [_decode_row(row) for row in rows]


async def get_shared_config_without_content(config_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, created_at, updated_at
        FROM configs
        WHERE id = $1
          AND id >= 1
          AND id < $2
        """,
        config_id,
        MAX_SHARED_CONFIG_ID,
    )


async def get_granted_shared_config(config_id: int, *, granted_ids: list[int]) -> dict[str, Any] | None:
    """
    Return a shared config only when `config_id` is among the caller's granted ids.
    """
    row = await db.fetch_one(
        """
        SELECT id, content, created_at, updated_at
        FROM configs
        WHERE id = $1
          AND id = ANY($2::integer[])
          AND id >= 1
          AND id < $3
        """,
        config_id,
        granted_ids,
        MAX_SHARED_CONFIG_ID,
    )
    return _decode_row(row)


async def get_config_by_id_and_owner(config_id: int, *, owner: str) -> dict[str, Any] | None:
    row = await db.fetch_one(
        """
        SELECT id, owner, content, created_at, updated_at
        FROM configs
        WHERE id = $1
          AND owner = $2
        """,
        config_id,
        owner,
    )
    return _decode_row(row)


async def insert_config(*, owner: str, content: Any) -> dict[str, Any]:
    row = await db.fetch_one(
        """
        INSERT INTO configs (owner, content)
        VALUES ($1, $2::jsonb)
        RETURNING id, owner, content, created_at, updated_at
        """,
        owner,
        _json_arg(content),
    )
    if row is None:
        raise db.StorageError("Failed to insert config.")
    return _decode_row(row)


async def update_config_content(config_id: int, *, owner: str, content: Any) -> None:
    await db.execute(
        """
        UPDATE configs
        SET content = $3::jsonb,
            updated_at = now()
        WHERE id = $1
          AND owner = $2
        """,
        config_id,
        owner,
        _json_arg(content),
    )

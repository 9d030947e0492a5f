"""
Config business logic: authorization and the shared/private merge.

Every operation classifies the id first, then runs exactly the query that
matches the classification. "Absent" and "not yours" are reported the same
way (401) so callers cannot probe for existence.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import HTTPException, status

from core import db

from . import repository, schemas
from .access import SharedAccess
from .partition import PrivateId, SharedId, classify, is_storable_id

logger = logging.getLogger(__name__)


def _not_authorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authorized.",
    )


def _to_private_config(row: dict) -> dict[str, Any]:
    return {
        "id": int(row["id"]),
        "owner": str(row["owner"]),
        "content": row["content"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _to_shared_config(row: dict, *, with_content: bool) -> dict[str, Any]:
    # Shared configs never expose their owner.
    out: dict[str, Any] = {
        "id": int(row["id"]),
        "shared": True,
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }
    if with_content:
        out["content"] = row["content"]
    return out


async def list_configs(token: str, *, shared_access: SharedAccess) -> list[dict[str, Any]]:
    """
    The caller's private configs (full) followed by the shared configs the
    caller is granted (content withheld).
    """
    owned = await repository.list_configs_by_owner(token)
    configs = [_to_private_config(row) for row in owned]

    shared_ids = sorted(shared_access.shared_config_ids(token))
    if not shared_ids:
        return configs

    shared_rows = await asyncio.gather(
        *(repository.get_shared_config_without_content(config_id) for config_id in shared_ids)
    )
    for config_id, row in zip(shared_ids, shared_rows):
        if row is None:
            logger.warning("shared_config_missing config_id=%s", config_id)
            continue
        configs.append(_to_shared_config(row, with_content=False))

    return configs


async def get_config(token: str, config_id: int, *, shared_access: SharedAccess) -> dict[str, Any]:
    ref = classify(config_id)

    if isinstance(ref, SharedId):
        granted = sorted(shared_access.shared_config_ids(token))
        row = await repository.get_granted_shared_config(ref.id, granted_ids=granted)
        if row is None:
            logger.info("config_access_denied config_id=%s kind=shared", ref.id)
            raise _not_authorized()
        return _to_shared_config(row, with_content=True)

    if not is_storable_id(ref.id):
        logger.info("config_access_denied config_id=%s kind=out_of_range", ref.id)
        raise _not_authorized()

    row = await repository.get_config_by_id_and_owner(ref.id, owner=token)
    if row is None:
        logger.info("config_access_denied config_id=%s kind=private", ref.id)
        raise _not_authorized()
    return _to_private_config(row)


async def create_config(token: str, payload: schemas.NewConfigRequest) -> int:
    row = await repository.insert_config(owner=token, content=payload.content)
    ref = classify(int(row["id"]))
    if not isinstance(ref, PrivateId):
        raise db.StorageError(f"Storage assigned reserved shared id {ref.id} to a new config.")
    logger.info("config_created config_id=%s", ref.id)
    return ref.id


async def update_config(token: str, config_id: int, payload: schemas.UpdateConfigRequest) -> None:
    ref = classify(config_id)

    if isinstance(ref, SharedId):
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Updating shared configs is not supported.",
        )

    if not is_storable_id(ref.id):
        logger.info("config_update_denied config_id=%s kind=out_of_range", ref.id)
        raise _not_authorized()

    # Re-check ownership before writing; the id's range alone proves nothing.
    existing = await repository.get_config_by_id_and_owner(ref.id, owner=token)
    if existing is None:
        logger.info("config_update_denied config_id=%s", ref.id)
        raise _not_authorized()

    await repository.update_config_content(ref.id, owner=token, content=payload.content)
    logger.info("config_updated config_id=%s", ref.id)

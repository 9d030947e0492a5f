"""
Config API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from auth import dependencies as auth_dependencies

from . import schemas, service
from .access import SharedAccess, get_shared_access

router = APIRouter()


@router.get("/configs")
async def list_configs(
    token: str = Depends(auth_dependencies.get_bearer_token),
    shared_access: SharedAccess = Depends(get_shared_access),
) -> dict:
    configs = await service.list_configs(token, shared_access=shared_access)
    return {"configs": configs, "count": len(configs)}


@router.post("/configs")
async def create_config(
    request: schemas.NewConfigRequest,
    token: str = Depends(auth_dependencies.get_bearer_token),
) -> dict:
    config_id = await service.create_config(token, request)
    return {"ok": True, "id": config_id}


@router.get("/configs/{config_id}")
async def get_config(
    config_id: int,
    token: str = Depends(auth_dependencies.get_bearer_token),
    shared_access: SharedAccess = Depends(get_shared_access),
) -> dict:
    return await service.get_config(token, config_id, shared_access=shared_access)


@router.patch("/configs/{config_id}")
async def update_config(
    config_id: int,
    request: schemas.UpdateConfigRequest,
    token: str = Depends(auth_dependencies.get_bearer_token),
) -> dict:
    await service.update_config(token, config_id, request)
    return {"ok": True, "id": config_id}

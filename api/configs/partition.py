"""
Identifier partitioning for configs.

Ids in `[1, MAX_SHARED_CONFIG_ID)` are shared configs; every other id is a
private, user-owned config. The id alone decides which query and which
authorization rule apply, so classification never touches storage.
"""

from __future__ import annotations

from dataclasses import dataclass

MAX_SHARED_CONFIG_ID = 1000

# Bounds of the Postgres `integer` id column.
MIN_STORED_CONFIG_ID = -(2**31)
MAX_STORED_CONFIG_ID = 2**31 - 1


@dataclass(frozen=True)
class SharedId:
    id: int


@dataclass(frozen=True)
class PrivateId:
    id: int


ConfigRef = SharedId | PrivateId


def is_shared_id(config_id: int) -> bool:
    return 1 <= config_id < MAX_SHARED_CONFIG_ID


def is_storable_id(config_id: int) -> bool:
    return MIN_STORED_CONFIG_ID <= config_id <= MAX_STORED_CONFIG_ID


def classify(config_id: int) -> ConfigRef:
    if is_shared_id(config_id):
        return SharedId(config_id)
    return PrivateId(config_id)

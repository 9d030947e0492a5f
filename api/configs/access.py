"""
Static shared-access mapping: which bearer tokens may read which shared configs.

The mapping is loaded once at startup from a JSON file:

    {
        "users": {
            "<token>": {"shared_configs": [1, 5]}
        }
    }

and kept as an immutable `SharedAccess` snapshot on `app.state`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from fastapi import Request

from .partition import MAX_SHARED_CONFIG_ID, is_shared_id

logger = logging.getLogger(__name__)


class AppConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class SharedAccess:
    grants: Mapping[str, frozenset[int]] = field(default_factory=lambda: MappingProxyType({}))

    def shared_config_ids(self, token: str) -> frozenset[int]:
        # Tokens missing from the mapping simply see no shared configs.
        return self.grants.get(token, frozenset())

    def token_count(self) -> int:
        return len(self.grants)


def _parse_shared_ids(token: str, raw_ids: Any) -> frozenset[int]:
    if not isinstance(raw_ids, list):
        raise AppConfigError(f"users.<token>.shared_configs must be a list (token #{token[:4]}...).")

    seen: set[int] = set()
    for raw in raw_ids:
        # bool is an int subclass; reject it explicitly.
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise AppConfigError(f"Shared config id must be an integer, got {raw!r}.")
        if not is_shared_id(raw):
            raise AppConfigError(
                f"Shared config id {raw} is outside the reserved range [1, {MAX_SHARED_CONFIG_ID})."
            )
        if raw in seen:
            raise AppConfigError(f"The following data is not unique in configuration: shared config {raw}")
        seen.add(raw)
    return frozenset(seen)


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in pairs:
        if key in out:
            raise AppConfigError(f"The following data is not unique in configuration: key {key[:4]}...")
        out[key] = value
    return out


def parse_shared_access(data: Any) -> SharedAccess:
    if not isinstance(data, dict):
        raise AppConfigError("App config root must be an object.")

    users = data.get("users", {})
    if not isinstance(users, dict):
        raise AppConfigError("App config 'users' must be an object keyed by token.")

    grants: dict[str, frozenset[int]] = {}
    for token, entry in users.items():
        token = str(token).strip()
        if not token:
            raise AppConfigError("App config contains an empty token.")
        if token in grants:
            raise AppConfigError("The following data is not unique in configuration: token")
        if not isinstance(entry, dict):
            raise AppConfigError("Each users.<token> entry must be an object.")
        grants[token] = _parse_shared_ids(token, entry.get("shared_configs", []))

    return SharedAccess(grants=MappingProxyType(grants))


def load_shared_access(path: Path) -> SharedAccess:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AppConfigError(f"Failed to read app config {path}: {exc}") from exc

    try:
        data = json.loads(raw, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as exc:
        raise AppConfigError(f"App config {path} is not valid JSON: {exc}") from exc

    access = parse_shared_access(data)
    logger.info("app_config_loaded path=%s tokens=%s", path, access.token_count())
    return access


def get_shared_access(request: Request) -> SharedAccess:
    access = getattr(request.app.state, "shared_access", None)
    if access is None:
        raise RuntimeError("Shared access mapping is not loaded. Load it on startup.")
    return access

"""
Config API schemas (request models).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class NewConfigRequest(BaseModel):
    # Unknown fields (e.g. an "owner" sent by the client) are dropped.
    model_config = ConfigDict(extra="ignore")

    content: Any


class UpdateConfigRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: Any

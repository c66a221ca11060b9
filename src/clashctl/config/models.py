"""Sections of ``clashctl.toml``, with their defaults.

The file is sparse: it only holds overrides, and a fresh data root needs
none at all. Unknown keys are rejected so a typo does not silently fall
back to the default.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True, "extra": "forbid"}

    dirname: str = ".clashctl"
    filename: str = "clashctl.db"


class FetchConfig(BaseModel):
    """[fetch] section: how remote base configs are downloaded."""

    model_config = {"frozen": True, "extra": "forbid"}

    timeout: float = Field(default=30.0, gt=0)
    # Subscription services pick the response format from the User-Agent.
    user_agent: str = "clash"
    follow_redirects: bool = True


class ExportConfig(BaseModel):
    """[export] section."""

    model_config = {"frozen": True, "extra": "forbid"}

    filename_template: str = "clash-config-{id}.yaml"

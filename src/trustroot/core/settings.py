"""
Central configuration for trustroot.

This module provides a single, typed configuration object that reads from
environment variables (12-factor style) using pydantic-settings.

Usage:

    from trustroot.core.settings import get_settings

    settings = get_settings()
    depth = settings.tree.depth
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TreeSettings(BaseSettings):
    depth: int = Field(
        default=8,
        ge=1,
        le=32,
        description="Fixed tree depth. Must match the verification circuit (2**depth leaves).",
    )
    workers: int = Field(
        default=1,
        ge=1,
        description="Worker threads hashing pairs within one layer (1 = serial).",
    )

    model_config = SettingsConfigDict(env_prefix="TRUSTROOT_TREE_")


class StoreSettings(BaseSettings):
    base_dir: str = Field(
        default="out",
        description="Root directory holding one proof store per (source, mode).",
    )

    model_config = SettingsConfigDict(env_prefix="TRUSTROOT_STORE_")


class BackendSettings(BaseSettings):
    """
    Proving-backend settings (Barretenberg helper process, bb CLI, timeouts).
    """

    hash_command: Optional[str] = Field(
        default=None,
        description="Command starting the JSON-lines Barretenberg hashing helper.",
    )
    bb_binary: str = Field(
        default="bb",
        description="Barretenberg CLI used for proof verification.",
    )
    verification_key: Optional[str] = Field(
        default=None,
        description="Path to the circuit verification key.",
    )
    timeout: float = Field(
        default=300.0,
        gt=0,
        description="Seconds allowed for a single external proof-system call.",
    )
    hash_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for one hash helper reply before giving up on the helper.",
    )
    pedersen_golden: Optional[str] = Field(
        default=None,
        description="Expected pedersen_hash([1, 1], 0) as hex; unset uses the built-in Barretenberg vector.",
    )

    @field_validator("pedersen_golden")
    @classmethod
    def _strip_prefix(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        v = v.strip().lower()
        return v[2:] if v.startswith("0x") else v

    model_config = SettingsConfigDict(env_prefix="TRUSTROOT_BACKEND_")


class RuntimeSettings(BaseSettings):
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG/INFO/WARNING/ERROR).",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        v = (v or "INFO").upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return "INFO"
        return v

    model_config = SettingsConfigDict(env_prefix="TRUSTROOT_")


class TrustRootSettings(BaseSettings):
    """
    Root configuration object.

    Aggregates:
      - Tree
      - Store
      - Backend
      - Runtime
    """

    tree: TreeSettings = Field(default_factory=TreeSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)

    model_config = SettingsConfigDict(env_prefix="TRUSTROOT_SETTINGS_")


@lru_cache(maxsize=1)
def get_settings() -> TrustRootSettings:
    """
    Cached accessor for TrustRootSettings.

    Usage:
        from trustroot.core.settings import get_settings
        settings = get_settings()
    """
    return TrustRootSettings()

"""Pydantic schema for folio configuration validation.

Mirrors the YAML structure in config/default.yaml. Used when
``validate=True`` is passed to ``FolioConfig.load()``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Leaf models
# ---------------------------------------------------------------------------


class SystemConfig(BaseModel):
    name: str = "folio"
    version: str = "0.1.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    validate_config: bool = False
    log_file: str | None = None
    log_json: bool = False


class TimeConfig(BaseModel):
    mode: Literal["realtime", "simulated"] = "realtime"
    start_epoch: float = Field(default=1_000_000.0, ge=0)


class PersistenceSchema(BaseModel):
    enabled: bool = False
    backend: Literal["memory", "file"] = "file"
    key: str = Field(default="document-history", min_length=1)
    version: int = Field(default=1, ge=0)
    directory: str = "data/history"
    format: Literal["json", "msgpack"] = "json"
    compression: bool = False


class HistorySchema(BaseModel):
    max_size: int = Field(default=0, ge=0)
    equality: Literal["identity", "structural"] = "identity"
    clear_future_by_default: bool = True
    throttle_ms: float = Field(default=0.0, ge=0)
    persistence: PersistenceSchema = Field(default_factory=PersistenceSchema)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class FolioRootConfig(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    time: TimeConfig = Field(default_factory=TimeConfig)
    history: HistorySchema = Field(default_factory=HistorySchema)

    model_config = {"extra": "allow"}


class FolioConfigSchema(BaseModel):
    """Top-level wrapper matching YAML root key ``folio:``."""

    folio: FolioRootConfig

    model_config = {"extra": "allow"}


def validate_config(cfg_dict: dict) -> FolioConfigSchema:
    """Validate a raw config dict (e.g. from OmegaConf) against the schema.

    Raises ``pydantic.ValidationError`` on invalid config.
    """
    return FolioConfigSchema.model_validate(cfg_dict)

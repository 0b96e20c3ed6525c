"""History controller configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class PersistenceConfig:
    """Where and how a controller persists its timeline."""

    enabled: bool = False
    backend: str = "file"  # "memory" or "file"
    key: str = "document-history"
    version: int = 1
    directory: str = "data/history"
    format: str = "json"  # "json" or "msgpack"
    compression: bool = False


@dataclass
class HistoryConfig:
    """Undo/redo history configuration."""

    max_size: int = 0  # 0 = unbounded
    equality: str = "identity"  # "identity" or "structural"
    clear_future_by_default: bool = True
    throttle_ms: float = 0.0
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)

    @classmethod
    def from_omegaconf(cls, cfg: Any) -> HistoryConfig:
        """Build from OmegaConf dict or plain dict."""
        if cfg is None:
            return cls()

        from omegaconf import OmegaConf

        if OmegaConf.is_config(cfg):
            cfg = OmegaConf.to_container(cfg, resolve=True)

        if not isinstance(cfg, dict):
            cfg = dict(cfg)

        persistence = cfg.get("persistence", {}) or {}

        max_size = cfg.get("max_size", 0)
        return cls(
            max_size=max(0, int(max_size)) if max_size is not None else 0,
            equality=str(cfg.get("equality", "identity")),
            clear_future_by_default=bool(cfg.get("clear_future_by_default", True)),
            throttle_ms=max(0.0, float(cfg.get("throttle_ms", 0.0))),
            persistence=PersistenceConfig(
                enabled=bool(persistence.get("enabled", False)),
                backend=str(persistence.get("backend", "file")),
                key=str(persistence.get("key", "document-history")),
                version=int(persistence.get("version", 1)),
                directory=str(persistence.get("directory", "data/history")),
                format=str(persistence.get("format", "json")),
                compression=bool(persistence.get("compression", False)),
            ),
        )

"""YAML configuration for folio, layered with OmegaConf.

Layers, later wins:

1. ``config/default.yaml``
2. every ``config/history/*.yaml`` next to it, in name order
3. ``key=value`` dotlist overrides passed to :meth:`FolioConfig.load`
4. :meth:`FolioConfig.override` calls after loading
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from omegaconf import DictConfig, OmegaConf

from folio.core.clock import SimClock, SystemClock, create_clock

if TYPE_CHECKING:
    from folio.history.config import HistoryConfig

OVERLAY_DIRS = ("history",)


class FolioConfig:
    def __init__(self, config_path: str | Path = "config/default.yaml"):
        self._config_path = Path(config_path)
        self._config: DictConfig | None = None

    @property
    def path(self) -> Path:
        return self._config_path

    def _overlays(self) -> list[Path]:
        root = self._config_path.parent
        found: list[Path] = []
        for name in OVERLAY_DIRS:
            if (root / name).is_dir():
                found.extend(sorted((root / name).glob("*.yaml")))
        return found

    def load(self, validate: bool = False, overrides: list[str] | None = None) -> DictConfig:
        """Read and merge every layer.

        Args:
            validate: Check the result against
                :class:`~folio.core.config_schema.FolioConfigSchema`.  Also
                enabled by ``folio.system.validate_config: true``.
            overrides: Dotlist entries such as ``folio.history.max_size=50``.

        Raises:
            FileNotFoundError: If the base file is missing.
            pydantic.ValidationError: If validation is on and fails.
        """
        if not self._config_path.is_file():
            raise FileNotFoundError(f"Config not found: {self._config_path}")

        layers = [OmegaConf.load(self._config_path)]
        layers.extend(OmegaConf.load(p) for p in self._overlays())
        if overrides:
            layers.append(OmegaConf.from_dotlist(list(overrides)))
        merged = OmegaConf.merge(*layers)
        assert isinstance(merged, DictConfig)

        if validate or OmegaConf.select(merged, "folio.system.validate_config", default=False):
            from folio.core.config_schema import validate_config

            validate_config(OmegaConf.to_container(merged, resolve=True))

        self._config = merged
        return merged

    @property
    def cfg(self) -> DictConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded yet. Call load() first.")
        return self._config

    def override(self, dotpath: str, value: Any) -> None:
        """Set one value by dot path, e.g. ``override("folio.history.max_size", 50)``."""
        OmegaConf.update(self.cfg, dotpath, value)

    def history(self) -> HistoryConfig:
        """The ``folio.history`` section as a :class:`HistoryConfig`."""
        from folio.history.config import HistoryConfig

        return HistoryConfig.from_omegaconf(OmegaConf.select(self.cfg, "folio.history"))

    def clock(self) -> SystemClock | SimClock:
        """Clock described by ``folio.time`` (``mode: simulated`` gives a :class:`SimClock`)."""
        return create_clock(OmegaConf.select(self.cfg, "folio.time"))

"""
Configuration for the dank.io module.

Defines StoreSettings, a frozen dataclass carrying runtime configuration for the table
store. Defaults are sourced from dank.core.constants (the single source of truth).
Table files are always UTF-8.

Source of truth
- dank.core.constants.DEFAULT_CACHE_CAPACITY, DEFAULT_SEPARATOR
- Separator rules come from dank.core.schema.validate_separator

Import DAG discipline
- Depends only on stdlib and dank.core.

Notes
- Precedence when loading: environment > TOML > defaults.
- Values that fail validation while loading are ignored and the previous layer wins;
  constructing StoreSettings directly with bad values raises IoConfigError.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from dank.core.constants import DEFAULT_CACHE_CAPACITY, DEFAULT_SEPARATOR
from dank.core.errors import InvalidSchema
from dank.core.schema import validate_separator

from .errors import IoConfigError


@dataclass(frozen=True)
class StoreSettings:
    """
    Runtime settings for the dank.io layer.

    Attributes:
        cache_capacity (int): Number of decoded tables kept by the default TableCache (>= 1).
        separator (str): Delimiter stamped into tables created by the store.
        fsync (bool): fsync temporary files before the atomic rename.

    Raises:
        IoConfigError: If a value is out of range or unknown.

    Examples:
        >>> from dank.io import StoreSettings
        >>> StoreSettings(cache_capacity=10)  # doctest: +ELLIPSIS
        StoreSettings(...)
    """

    cache_capacity: int = DEFAULT_CACHE_CAPACITY
    separator: str = DEFAULT_SEPARATOR
    fsync: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.cache_capacity, int) or self.cache_capacity < 1:
            raise IoConfigError(f"cache_capacity must be >= 1, got {self.cache_capacity!r}")
        try:
            validate_separator(self.separator)
        except InvalidSchema as exc:
            raise IoConfigError(str(exc)) from exc

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: StoreSettings, cfg: dict[str, Any] | None) -> StoreSettings:
        """Apply a loose config mapping onto StoreSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        def _bool(v: Any) -> bool:
            if isinstance(v, bool):
                return v
            if isinstance(v, (int, float)):
                return bool(v)
            if isinstance(v, str):
                return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
            return False

        def _try(**changes: Any) -> StoreSettings:
            try:
                return replace(s, **changes)
            except IoConfigError:
                return s

        if "cache_capacity" in cfg:
            try:
                s = _try(cache_capacity=int(cfg["cache_capacity"]))
            except (TypeError, ValueError):
                pass

        if "separator" in cfg and isinstance(cfg["separator"], str):
            s = _try(separator=cfg["separator"])

        if "fsync" in cfg:
            s = _try(fsync=_bool(cfg["fsync"]))

        return s

    @classmethod
    def from_env(
        cls, base: StoreSettings | None = None, prefix: str = "DANK_"
    ) -> StoreSettings:
        """
        Build StoreSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - DANK_CACHE_CAPACITY
            - DANK_SEPARATOR
            - DANK_FSYNC (1/0/true/false/yes/no/on/off)
        """
        s = base or cls()

        mapping: dict[str, Any] = {}
        for key in ("cache_capacity", "separator", "fsync"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v

        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> StoreSettings:
        """
        Build StoreSettings from a TOML file.

        Search order when `path` is None:
            1) ./dank.toml (with either a [store] table or direct keys)
            2) ./pyproject.toml under [tool.dank.store]

        Returns defaults if no file is present or it cannot be parsed.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cfg: dict[str, Any] | None = None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "dank.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("dank", {}).get("store", {}) if isinstance(tool, dict) else None
            elif isinstance(data.get("store"), dict):
                cfg = data["store"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> StoreSettings:
        """
        Load StoreSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (dank.toml, pyproject.toml).

        Returns:
            StoreSettings
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s

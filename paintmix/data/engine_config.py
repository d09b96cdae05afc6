# paintmix/data/engine_config.py
"""
Engine configuration management.

Holds the policy knobs the pure engine functions take as parameters:
- unit families and multipliers used by ratio signatures
- the drop-to-gram approximation used for formula totals
- per-category fallback colors used by nearest-color matching
- default match limit and delta E method

Persisted to paintmix_config.yaml in the data root. A missing file is created
with the defaults; malformed sections are logged and replaced by defaults.
"""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Tuple

import yaml

from paintmix.formula.units import (
    DEFAULT_UNIT_FAMILIES,
    DEFAULT_UNIT_TABLE,
    DROP_TO_GRAM,
    UnitTable,
    build_unit_table,
)
from .delta_e import METHOD_CIE76, normalize_method

_log = logging.getLogger("paintmix.data.engine_config")

# Category id -> representative color, used when a record has neither RGB
# nor HEX filled in
CATEGORY_FALLBACK_RGB: Dict[int, Tuple[int, int, int]] = {
    1: (70, 130, 180),
    2: (255, 215, 0),
    3: (220, 20, 60),
    4: (34, 139, 34),
    5: (128, 0, 128),
    6: (139, 69, 19),
    7: (255, 140, 0),
}

DEFAULT_MATCH_LIMIT = 10


class EngineConfigStore:
    """
    Thread-safe singleton store for engine configuration.
    """
    _instance: Optional["EngineConfigStore"] = None
    _lock = Lock()

    def __new__(cls, config_path: Optional[Path] = None) -> "EngineConfigStore":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self, config_path: Optional[Path] = None):
        if self._initialized:
            return
        self._initialized = True

        if config_path is None:
            from paintmix.data.app_paths import config_path as default_config_path
            config_path = default_config_path()
        self._config_path: Path = Path(config_path)

        self._unit_families: Dict[str, Dict[str, Any]] = {}
        self._unit_table: UnitTable = DEFAULT_UNIT_TABLE
        self._drop_to_gram: float = DROP_TO_GRAM
        self._category_fallback: Dict[int, Tuple[int, int, int]] = {}
        self._match_limit: int = DEFAULT_MATCH_LIMIT
        self._delta_e_method: str = METHOD_CIE76

        self._load_or_initialize()

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the singleton (tests, or after changing PAINTMIX_DATA_ROOT)."""
        with cls._lock:
            cls._instance = None

    def _load_or_initialize(self) -> None:
        self._apply_defaults()
        if self._config_path.exists():
            self._load_from_file()
        else:
            _log.info("No config at %s, writing defaults", self._config_path)
            self._save_to_file()

    def _apply_defaults(self) -> None:
        self._unit_families = copy.deepcopy(DEFAULT_UNIT_FAMILIES)
        self._unit_table = DEFAULT_UNIT_TABLE
        self._drop_to_gram = DROP_TO_GRAM
        self._category_fallback = dict(CATEGORY_FALLBACK_RGB)
        self._match_limit = DEFAULT_MATCH_LIMIT
        self._delta_e_method = METHOD_CIE76

    def _load_from_file(self) -> None:
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            _log.warning("Failed to load config %s: %s. Using defaults.", self._config_path, e)
            return

        if not isinstance(data, dict):
            _log.warning("Config %s is not a mapping. Using defaults.", self._config_path)
            return

        units = data.get("units")
        if units is not None:
            try:
                self._unit_table = build_unit_table(units)
                self._unit_families = units
            except (AttributeError, TypeError, ValueError) as e:
                _log.warning("Invalid 'units' section: %s. Using default unit families.", e)

        if "drop_to_gram" in data:
            try:
                value = float(data["drop_to_gram"])
                if value <= 0:
                    raise ValueError("must be positive")
                self._drop_to_gram = value
            except (TypeError, ValueError) as e:
                _log.warning("Invalid drop_to_gram %r: %s", data["drop_to_gram"], e)

        fallback = data.get("category_fallback_rgb")
        if fallback is not None:
            parsed: Dict[int, Tuple[int, int, int]] = {}
            try:
                for cat_id, rgb in fallback.items():
                    r, g, b = (int(v) for v in rgb)
                    if not all(0 <= v <= 255 for v in (r, g, b)):
                        raise ValueError(f"category {cat_id} rgb {rgb} outside 0-255")
                    parsed[int(cat_id)] = (r, g, b)
                self._category_fallback = parsed
            except (AttributeError, TypeError, ValueError) as e:
                _log.warning("Invalid category_fallback_rgb: %s. Using defaults.", e)

        if "match_limit" in data:
            try:
                self._match_limit = max(1, int(data["match_limit"]))
            except (TypeError, ValueError) as e:
                _log.warning("Invalid match_limit %r: %s", data["match_limit"], e)

        if "delta_e_method" in data:
            try:
                self._delta_e_method = normalize_method(data["delta_e_method"])
            except ValueError as e:
                _log.warning("%s", e)

        _log.info(
            "Loaded config from %s (units=%d categories=%d method=%s)",
            self._config_path, len(self._unit_table), len(self._category_fallback),
            self._delta_e_method,
        )

    def _save_to_file(self) -> None:
        data = {
            "units": self._unit_families,
            "drop_to_gram": self._drop_to_gram,
            "category_fallback_rgb": {k: list(v) for k, v in sorted(self._category_fallback.items())},
            "match_limit": self._match_limit,
            "delta_e_method": self._delta_e_method,
        }
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._config_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
            _log.info("Saved config to %s", self._config_path)
        except OSError as e:
            _log.error("Failed to save config %s: %s", self._config_path, e)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._config_path

    def unit_table(self) -> UnitTable:
        return self._unit_table

    def drop_to_gram(self) -> float:
        return self._drop_to_gram

    def category_fallback_rgb(self) -> Dict[int, Tuple[int, int, int]]:
        return dict(self._category_fallback)

    def match_limit(self) -> int:
        return self._match_limit

    def delta_e_method(self) -> str:
        return self._delta_e_method

    def reload(self) -> None:
        self._load_or_initialize()


def get_engine_config(config_path: Optional[Path] = None) -> EngineConfigStore:
    """Get the singleton engine config store instance."""
    return EngineConfigStore(config_path)

"""
cadence.config — YAML Configuration Loader
============================================

Reads ``config.yaml`` for soft settings (prefix, XP range, leaderboard
size, scheduler interval, level role tiers).  Secrets (``DISCORD_TOKEN``,
``DATABASE_URL``) come from the environment / ``.env``.

Role tiers are read from the ``role_tiers`` list when present::

    role_tiers:
      - {min_level: 1, role_id: 111}
      - {min_level: 6, role_id: 222}
      ...

Otherwise from ``T1_ROLE_ID`` … ``T7_ROLE_ID`` with the default bounds.

Any missing or invalid required value raises :class:`ConfigError`; the
bot refuses to start half-configured.

Usage::

    from cadence.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    cfg.role_tiers.tier_for_level(12)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml

from cadence.engine.tiers import DEFAULT_TIER_MIN_LEVELS, TIER_COUNT, RoleTierTable


class ConfigError(ValueError):
    """Configuration is missing or invalid.  Fatal at startup."""


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class CadenceConfig:
    """Immutable configuration built once at startup and handed to the bot."""

    role_tiers: RoleTierTable

    bot_prefix: str = "!"

    # XP per qualifying message, inclusive range
    xp_gain_min: int = 5
    xp_gain_max: int = 10

    leaderboard_size: int = 10
    reminder_interval_seconds: float = 60.0
    thanks_enabled: bool = True


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def _parse_id(value: object, name: str) -> int:
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid {name}: {value!r} is not an integer") from None
    if parsed <= 0:
        raise ConfigError(f"Invalid {name}: {parsed} is not a Discord id")
    return parsed


def _tiers_from_yaml(entries: object) -> RoleTierTable:
    if not isinstance(entries, list):
        raise ConfigError("role_tiers must be a list of {min_level, role_id} entries")
    role_ids: list[int] = []
    min_levels: list[int] = []
    for i, entry in enumerate(entries, 1):
        if not isinstance(entry, Mapping) or "min_level" not in entry or "role_id" not in entry:
            raise ConfigError(f"role_tiers[{i}] needs min_level and role_id")
        try:
            min_levels.append(int(entry["min_level"]))
        except (TypeError, ValueError):
            raise ConfigError(f"role_tiers[{i}].min_level is not an integer") from None
        role_ids.append(_parse_id(entry["role_id"], f"role_tiers[{i}].role_id"))
    return _build_table(role_ids, min_levels)


def _tiers_from_env(env: Mapping[str, str]) -> RoleTierTable:
    role_ids = []
    for n in range(1, TIER_COUNT + 1):
        var = f"T{n}_ROLE_ID"
        raw = env.get(var)
        if not raw:
            raise ConfigError(f"Missing env {var} (and no role_tiers in config.yaml)")
        role_ids.append(_parse_id(raw, var))
    return _build_table(role_ids, list(DEFAULT_TIER_MIN_LEVELS))


def _build_table(role_ids: list[int], min_levels: list[int]) -> RoleTierTable:
    try:
        return RoleTierTable.from_bounds(role_ids, min_levels)
    except ValueError as exc:
        raise ConfigError(f"Invalid role tiers: {exc}") from exc


def _positive_int(raw: Mapping, key: str, default: int) -> int:
    value = raw.get(key, default)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    if parsed <= 0:
        raise ConfigError(f"{key} must be positive, got {parsed}")
    return parsed


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_config(raw: Mapping | None, env: Mapping[str, str] | None = None) -> CadenceConfig:
    """Build a :class:`CadenceConfig` from already-loaded YAML data."""
    raw = raw or {}
    if not isinstance(raw, Mapping):
        raise ConfigError("config.yaml must contain a mapping at the top level")
    env = os.environ if env is None else env

    if "role_tiers" in raw:
        tiers = _tiers_from_yaml(raw["role_tiers"])
    else:
        tiers = _tiers_from_env(env)

    xp_min = _positive_int(raw, "xp_gain_min", 5)
    xp_max = _positive_int(raw, "xp_gain_max", 10)
    if xp_min > xp_max:
        raise ConfigError(f"xp_gain_min ({xp_min}) is larger than xp_gain_max ({xp_max})")

    prefix = str(raw.get("bot_prefix", "!"))
    if not prefix.strip():
        raise ConfigError("bot_prefix must not be empty")

    return CadenceConfig(
        role_tiers=tiers,
        bot_prefix=prefix,
        xp_gain_min=xp_min,
        xp_gain_max=xp_max,
        leaderboard_size=_positive_int(raw, "leaderboard_size", 10),
        reminder_interval_seconds=float(_positive_int(raw, "reminder_interval_seconds", 60)),
        thanks_enabled=bool(raw.get("thanks_enabled", True)),
    )


def load_config(path: str | Path = "config.yaml") -> CadenceConfig:
    """Read *path* and return a :class:`CadenceConfig` instance.

    A missing file is allowed as long as the tier role ids are in the
    environment.

    Raises
    ------
    ConfigError
        If a required value is missing or invalid.
    """
    config_path = Path(path)
    raw: dict = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as fh:
            try:
                raw = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Could not parse {config_path}: {exc}") from exc
    return parse_config(raw)

"""
QBot - Configuration Module
===========================

Environment configuration for the Discord <-> Roblox rank bridge.

Every value is read from the process environment (populated from ``.env``
by ``main.py``). Nothing here raises at import time; missing required
values are reported by ``validate_and_log_config()`` during startup.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Optional

from src.core.logger import logger
from src.models import RankTableEntry


# =============================================================================
# Configuration Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    valid: bool
    missing_required: list[str] = field(default_factory=list)
    missing_optional: list[str] = field(default_factory=list)
    invalid_format: list[tuple[str, str]] = field(default_factory=list)  # (var_name, reason)


# Required environment variables (bot won't start without these)
REQUIRED_ENV_VARS: list[str] = [
    "DISCORD_TOKEN",
    "ROBLOX_COOKIE",
    "ROBLOX_GROUP_ID",
]

# Optional environment variables with their descriptions
OPTIONAL_ENV_VARS: dict[str, str] = {
    "GUILD_ID": "Guild used for command sync",
    "PROMOTION_CHANNEL_ID": "Pending promotions channel",
    "ACTION_LOG_CHANNEL_ID": "Rank/XP audit log channel",
    "RANKING_ROLE_IDS": "Roles allowed to run promotions and XP commands",
    "ADMIN_ROLE_IDS": "Roles allowed to manage binds and links",
    "XP_RANK_TABLE": "Custom XP -> rank thresholds",
}

# Variables that must hold a numeric snowflake / id when set
NUMERIC_ENV_VARS: list[str] = [
    "ROBLOX_GROUP_ID",
    "GUILD_ID",
    "PROMOTION_CHANNEL_ID",
    "ACTION_LOG_CHANNEL_ID",
]


def validate_config() -> ConfigValidationResult:
    """
    Validate all environment variables at startup.

    Required vars missing -> invalid. Optional vars missing -> reported only.
    Numeric ids, id lists and the rank table are format-checked.
    """
    result = ConfigValidationResult(valid=True)

    for var in REQUIRED_ENV_VARS:
        if not os.getenv(var):
            result.missing_required.append(var)
            result.valid = False

    for var in OPTIONAL_ENV_VARS:
        if not os.getenv(var):
            result.missing_optional.append(var)

    for var in NUMERIC_ENV_VARS:
        value = os.getenv(var)
        if value and not value.strip().isdigit():
            result.invalid_format.append((var, "Must be a numeric ID"))
            result.valid = False

    for var in ("RANKING_ROLE_IDS", "ADMIN_ROLE_IDS"):
        try:
            _parse_id_list(os.getenv(var, ""))
        except ValueError:
            result.invalid_format.append((var, "Must be comma-separated numeric role IDs"))
            result.valid = False

    try:
        parse_rank_table(os.getenv("XP_RANK_TABLE", ""))
    except ConfigValidationError as e:
        result.invalid_format.append(("XP_RANK_TABLE", str(e)))
        result.valid = False

    return result


def validate_and_log_config() -> None:
    """
    Validate configuration and log results.

    Raises:
        ConfigValidationError: If required configuration is missing or malformed.
    """
    result = validate_config()

    for var in result.missing_required:
        logger.error("Missing Required Configuration", [
            ("Variable", var),
            ("Action", f"Add {var}=<value> to your .env file"),
        ])

    for var, reason in result.invalid_format:
        logger.error("Invalid Configuration Format", [
            ("Variable", var),
            ("Reason", reason),
        ])

    if result.missing_optional:
        features = [f"{var} ({OPTIONAL_ENV_VARS[var]})" for var in result.missing_optional]
        logger.info("Optional Features Disabled", [
            ("Variables", ", ".join(result.missing_optional)),
            ("Features", ", ".join(features[:3]) + ("..." if len(features) > 3 else "")),
        ])

    if not result.valid:
        raise ConfigValidationError(
            f"Missing required config: {', '.join(result.missing_required) or 'none'}"
            + (f"; Invalid format: {', '.join(v for v, _ in result.invalid_format)}" if result.invalid_format else "")
        )

    logger.info("Configuration Validated Successfully", [
        ("Required", f"{len(REQUIRED_ENV_VARS)} OK"),
        ("Optional", f"{len(OPTIONAL_ENV_VARS) - len(result.missing_optional)}/{len(OPTIONAL_ENV_VARS)} configured"),
        ("Rank Table", f"{len(XP_RANK_TABLE)} entries"),
    ])


# =============================================================================
# Time Constants
# =============================================================================

SECONDS_PER_MINUTE: int = 60
SECONDS_PER_HOUR: int = 3600
SECONDS_PER_DAY: int = 86400


# =============================================================================
# Loaders
# =============================================================================

def _load_optional_id(env_var: str) -> Optional[int]:
    """Load an optional numeric ID. Returns None if unset or malformed."""
    value = os.getenv(env_var, "").strip()
    if not value or not value.isdigit():
        return None
    return int(value)


def _parse_id_list(raw: str) -> list[int]:
    """Parse ``"1, 2,3"`` into ``[1, 2, 3]``. Raises ValueError on junk."""
    return [int(part.strip()) for part in raw.split(",") if part.strip()]


def _load_id_list(env_var: str) -> list[int]:
    try:
        return _parse_id_list(os.getenv(env_var, ""))
    except ValueError:
        logger.warning("Invalid ID List In Config", [
            ("Variable", env_var),
            ("Expected", "comma-separated integers"),
        ])
        return []


def _load_float(env_var: str, default: float) -> float:
    value = os.getenv(env_var)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid Number In Config", [
            ("Variable", env_var),
            ("Value", value),
            ("Using", default),
        ])
        return default


def _load_int(env_var: str, default: int) -> int:
    return int(_load_float(env_var, float(default)))


def load_channel_id(env_var: str) -> Optional[int]:
    """Load a channel ID from an environment variable (None if not configured)."""
    return _load_optional_id(env_var)


# =============================================================================
# Rank Table
# =============================================================================

DEFAULT_RANK_TABLE: list[RankTableEntry] = [
    RankTableEntry(rank=5, xp=40),
    RankTableEntry(rank=10, xp=100),
    RankTableEntry(rank=15, xp=150),
    RankTableEntry(rank=20, xp=300),
    RankTableEntry(rank=25, xp=500),
    RankTableEntry(rank=40, xp=1000),
]


def parse_rank_table(raw: str) -> list[RankTableEntry]:
    """
    Parse the XP_RANK_TABLE JSON value.

    Expected format: ``[{"rank": 5, "xp": 40}, {"rank": 10, "xp": 100}]``.
    An empty value yields the default table. Entries are returned sorted by
    xp ascending.

    Raises:
        ConfigValidationError: On invalid JSON or malformed entries.
    """
    if not raw or not raw.strip():
        return list(DEFAULT_RANK_TABLE)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigValidationError(f"XP_RANK_TABLE contains invalid JSON: {e}")
    if not isinstance(data, list):
        raise ConfigValidationError("XP_RANK_TABLE must be a JSON list")

    entries: list[RankTableEntry] = []
    for item in data:
        if not isinstance(item, dict) or "rank" not in item or "xp" not in item:
            raise ConfigValidationError("XP_RANK_TABLE entries need 'rank' and 'xp'")
        try:
            rank, xp = int(item["rank"]), int(item["xp"])
        except (TypeError, ValueError):
            raise ConfigValidationError("XP_RANK_TABLE 'rank' and 'xp' must be integers")
        if not 1 <= rank <= 255:
            raise ConfigValidationError(f"XP_RANK_TABLE rank {rank} is outside 1-255")
        if xp < 0:
            raise ConfigValidationError(f"XP_RANK_TABLE xp {xp} is negative")
        entries.append(RankTableEntry(rank=rank, xp=xp))

    return sorted(entries, key=lambda e: e.xp)


def _load_rank_table() -> list[RankTableEntry]:
    try:
        return parse_rank_table(os.getenv("XP_RANK_TABLE", ""))
    except ConfigValidationError as e:
        logger.warning("Rank Table Invalid, Using Default", [
            ("Error", str(e)),
        ])
        return list(DEFAULT_RANK_TABLE)


XP_RANK_TABLE: list[RankTableEntry] = _load_rank_table()


# =============================================================================
# Roblox
# =============================================================================

ROBLOX_GROUP_ID: Optional[int] = _load_optional_id("ROBLOX_GROUP_ID")
ROBLOX_REQUEST_TIMEOUT: float = _load_float("ROBLOX_REQUEST_TIMEOUT", 30.0)
ROBLOX_PROFILE_URL: str = "https://www.roblox.com/users/{user_id}/profile"


def get_roblox_cookie() -> Optional[str]:
    """Read the .ROBLOSECURITY cookie lazily so it never sits in a module global."""
    return os.getenv("ROBLOX_COOKIE") or None


# =============================================================================
# Discord IDs
# =============================================================================

GUILD_ID: Optional[int] = _load_optional_id("GUILD_ID")
PROMOTION_CHANNEL_ID: Optional[int] = load_channel_id("PROMOTION_CHANNEL_ID")
ACTION_LOG_CHANNEL_ID: Optional[int] = load_channel_id("ACTION_LOG_CHANNEL_ID")
RANKING_ROLE_IDS: list[int] = _load_id_list("RANKING_ROLE_IDS")
ADMIN_ROLE_IDS: list[int] = _load_id_list("ADMIN_ROLE_IDS")


# =============================================================================
# Promotion Scheduling
# =============================================================================

PROMOTION_CHECK_INTERVAL: float = _load_float("PROMOTION_CHECK_INTERVAL", 24 * SECONDS_PER_HOUR)
PROMOTION_REFRESH_INTERVAL: float = _load_float("PROMOTION_REFRESH_INTERVAL", 6 * SECONDS_PER_HOUR)
PROMOTION_INIT_RETRIES: int = _load_int("PROMOTION_INIT_RETRIES", 3)
PROMOTION_INIT_RETRY_DELAY: float = _load_float("PROMOTION_INIT_RETRY_DELAY", 10.0)


# =============================================================================
# Misc
# =============================================================================

DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/qbot.db")
DATABASE_TIMEOUT: float = 30.0
UPDATE_COOLDOWN_SECONDS: float = _load_float("UPDATE_COOLDOWN_SECONDS", 30.0)
ROLES_CACHE_TTL: float = _load_float("ROLES_CACHE_TTL", 5 * SECONDS_PER_MINUTE)
DEFAULT_NICKNAME_FORMAT: str = "{robloxUsername}"


# =============================================================================
# Role Check Helpers
# =============================================================================

def _has_any_role(member, role_ids: list[int]) -> bool:
    import discord

    if not isinstance(member, discord.Member):
        return False
    if member.guild_permissions.administrator:
        return True
    if not role_ids:
        return False
    return any(role.id in role_ids for role in member.roles)


def has_ranking_role(member) -> bool:
    """Ranking staff (or admins) may run promotions and grant XP."""
    return _has_any_role(member, RANKING_ROLE_IDS) or _has_any_role(member, ADMIN_ROLE_IDS)


def has_admin_role(member) -> bool:
    """Admins manage bindings, links and can update other members."""
    return _has_any_role(member, ADMIN_ROLE_IDS)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Validation
    "ConfigValidationError",
    "ConfigValidationResult",
    "validate_config",
    "validate_and_log_config",
    # Time
    "SECONDS_PER_MINUTE",
    "SECONDS_PER_HOUR",
    "SECONDS_PER_DAY",
    # Rank table
    "DEFAULT_RANK_TABLE",
    "XP_RANK_TABLE",
    "parse_rank_table",
    # Roblox
    "ROBLOX_GROUP_ID",
    "ROBLOX_REQUEST_TIMEOUT",
    "ROBLOX_PROFILE_URL",
    "get_roblox_cookie",
    # Discord IDs
    "GUILD_ID",
    "PROMOTION_CHANNEL_ID",
    "ACTION_LOG_CHANNEL_ID",
    "RANKING_ROLE_IDS",
    "ADMIN_ROLE_IDS",
    "load_channel_id",
    # Scheduling
    "PROMOTION_CHECK_INTERVAL",
    "PROMOTION_REFRESH_INTERVAL",
    "PROMOTION_INIT_RETRIES",
    "PROMOTION_INIT_RETRY_DELAY",
    # Misc
    "DATABASE_PATH",
    "DATABASE_TIMEOUT",
    "UPDATE_COOLDOWN_SECONDS",
    "ROLES_CACHE_TTL",
    "DEFAULT_NICKNAME_FORMAT",
    # Role checks
    "has_ranking_role",
    "has_admin_role",
]

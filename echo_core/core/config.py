import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Dict, List, Optional


# -1 = unlimited. Keys are plan ids, inner keys are quota names.
DEFAULT_PLAN_LIMITS: Dict[str, Dict[str, int]] = {
    "FREE": {"swipes": 50, "super_likes": 0, "rewinds": 0, "boosts": 0},
    "PLUS": {"swipes": -1, "super_likes": 1, "rewinds": 1, "boosts": 0},
    "GOLD": {"swipes": -1, "super_likes": 5, "rewinds": -1, "boosts": 1},
    "PLATINUM": {"swipes": -1, "super_likes": -1, "rewinds": -1, "boosts": 1},
}


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Echo freshness
    ECHO_FRESHNESS_DAYS: int = 7
    ECHO_WARNING_DAYS: int = 2

    # Matches
    MATCH_TTL_HOURS: int = 48
    SWIPE_HISTORY_MAX: int = 100

    # Plans (JSON in env, e.g. PLAN_LIMITS='{"FREE": {"swipes": 30, ...}}')
    PLAN_LIMITS: Dict[str, Dict[str, int]] = DEFAULT_PLAN_LIMITS

    # Abuse rate limits (per reporter)
    REPORT_RATE_LIMIT: int = 5
    REPORT_RATE_WINDOW_SECONDS: int = 24 * 60 * 60
    BLOCK_RATE_LIMIT: int = 20
    BLOCK_RATE_WINDOW_SECONDS: int = 60 * 60
    RATE_LIMIT_GC_EVERY: int = 1000

    # App
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


REQUIRED_PLANS = ("FREE", "PLUS", "GOLD", "PLATINUM")
REQUIRED_QUOTAS = ("swipes", "super_likes", "rewinds", "boosts")


def config_problems(cfg: Settings) -> List[str]:
    problems: List[str] = []
    if not 0 < cfg.ECHO_WARNING_DAYS < cfg.ECHO_FRESHNESS_DAYS:
        problems.append("ECHO_WARNING_DAYS must be between 0 and ECHO_FRESHNESS_DAYS")
    if cfg.MATCH_TTL_HOURS <= 0:
        problems.append("MATCH_TTL_HOURS must be positive")
    for name in ("REPORT_RATE_LIMIT", "REPORT_RATE_WINDOW_SECONDS", "BLOCK_RATE_LIMIT", "BLOCK_RATE_WINDOW_SECONDS"):
        if getattr(cfg, name) <= 0:
            problems.append(f"{name} must be positive")
    for plan in REQUIRED_PLANS:
        limits = cfg.PLAN_LIMITS.get(plan)
        if limits is None:
            problems.append(f"PLAN_LIMITS missing plan {plan}")
            continue
        for quota in REQUIRED_QUOTAS:
            value = limits.get(quota)
            if value is None:
                problems.append(f"PLAN_LIMITS[{plan}] missing {quota}")
            elif value < -1:
                problems.append(f"PLAN_LIMITS[{plan}][{quota}] must be >= -1")
    return problems


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate engine configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Returns False when problems were found and only warned about.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("echo")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = config_problems(cfg)
    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True

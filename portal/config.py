"""Configuration loading for the student portal service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .models import Course

DEFAULT_SESSION_TTL_HOURS = 4
DEFAULT_REMEMBER_TTL_DAYS = 30

DEFAULT_SEED_COURSES: Tuple[Course, ...] = (
    Course("CSE101", "Intro to Computer Science", "Dr. Priya Rao", "Mon & Wed 10:00-11:30", 3, 20),
    Course("MTH201", "Calculus II", "Prof. R. Menon", "Tue & Thu 09:00-10:30", 4, 15),
    Course("PHY150", "Physics for Engineers", "Dr. G. Sharma", "Mon & Wed 14:00-15:30", 3, 10),
    Course("ENG210", "Technical Communication", "Ms. S. Iyer", "Fri 10:00-13:00", 2, 25),
)


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by the storage layer, sessions and HTTP app."""

    data_dir: Path
    session_ttl: timedelta = timedelta(hours=DEFAULT_SESSION_TTL_HOURS)
    remember_ttl: timedelta = timedelta(days=DEFAULT_REMEMBER_TTL_DAYS)
    secure_cookies: bool = False
    seed_courses: Tuple[Course, ...] = field(default=DEFAULT_SEED_COURSES)


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _flag_value(raw: object, key: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in {"1", "true", "yes", "on", "0", "false", "no", "off"}:
        return _env_flag(raw)
    raise ValueError(f"Configuration value '{key}' must be a boolean")


def _positive_number(raw: object, key: str) -> float:
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Configuration value '{key}' must be a number") from exc
    if value <= 0:
        raise ValueError(f"Configuration value '{key}' must be greater than zero")
    return value


def _seed_course_from_dict(data: Mapping[str, Any]) -> Course:
    required_fields = {"code", "title", "instructor", "schedule", "credits", "availability"}
    missing = required_fields - data.keys()
    if missing:
        raise ValueError(f"Missing required seed course fields: {', '.join(sorted(missing))}")
    credits = int(data["credits"])
    availability = int(data["availability"])
    if credits <= 0:
        raise ValueError(f"Seed course {data['code']} must have positive credits")
    if availability < 0:
        raise ValueError(f"Seed course {data['code']} must not have negative availability")
    return Course(
        code=str(data["code"]),
        title=str(data["title"]),
        instructor=str(data["instructor"]),
        schedule=str(data["schedule"]),
        credits=credits,
        availability=availability,
    )


def default_data_dir() -> Path:
    return (Path(__file__).resolve().parent.parent / "data").resolve(strict=False)


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    """Resolve the optional YAML configuration file path."""
    if not env_value:
        return None
    return Path(env_value).expanduser().resolve(strict=False)


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    return raw


def load_settings(
    config_path: Optional[Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from defaults, an optional YAML file and the environment.

    Environment variables take precedence over the file, which takes
    precedence over the built-in defaults.
    """
    environ = os.environ if env is None else env
    if config_path is None:
        config_path = resolve_config_path(environ.get("PORTAL_CONFIG"))

    raw: Dict[str, Any] = {}
    base_path: Optional[Path] = None
    if config_path is not None:
        raw = _load_yaml(config_path)
        base_path = config_path.parent

    data_dir = default_data_dir()
    if raw.get("data_dir"):
        candidate = Path(str(raw["data_dir"])).expanduser()
        if not candidate.is_absolute() and base_path is not None:
            candidate = base_path / candidate
        data_dir = candidate.resolve(strict=False)
    if environ.get("PORTAL_DATA_DIR"):
        data_dir = Path(environ["PORTAL_DATA_DIR"]).expanduser().resolve(strict=False)

    ttl_hours: object = raw.get("session_ttl_hours", DEFAULT_SESSION_TTL_HOURS)
    ttl_hours = environ.get("PORTAL_SESSION_TTL_HOURS", ttl_hours)
    remember_days: object = raw.get("remember_ttl_days", DEFAULT_REMEMBER_TTL_DAYS)
    remember_days = environ.get("PORTAL_REMEMBER_TTL_DAYS", remember_days)

    secure_cookies = _flag_value(raw.get("secure_cookies", False), "secure_cookies")
    if "PORTAL_SESSION_SECURE" in environ:
        secure_cookies = _env_flag(environ.get("PORTAL_SESSION_SECURE"))

    seed_courses = DEFAULT_SEED_COURSES
    if raw.get("seed_courses"):
        seed_courses = tuple(_seed_course_from_dict(item) for item in raw["seed_courses"])
        codes = [course.code for course in seed_courses]
        if len(set(codes)) != len(codes):
            raise ValueError("Configuration value 'seed_courses' contains duplicate codes")

    return Settings(
        data_dir=data_dir,
        session_ttl=timedelta(hours=_positive_number(ttl_hours, "session_ttl_hours")),
        remember_ttl=timedelta(days=_positive_number(remember_days, "remember_ttl_days")),
        secure_cookies=secure_cookies,
        seed_courses=seed_courses,
    )


__all__ = [
    "DEFAULT_SEED_COURSES",
    "Settings",
    "default_data_dir",
    "load_settings",
    "resolve_config_path",
]

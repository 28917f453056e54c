"""Runtime configuration loaded from config.toml and BG_* environment variables."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any


OSDR_BASE_URL = "https://osdr.nasa.gov/osdr/data/"
OSDR_API_URL = "https://osdr.nasa.gov/geode-py/ws/api/"
ENV_PREFIX = "BG_"


@dataclass
class Settings:
    """Tunables for the repository client, crawl and caches."""

    base_url: str = OSDR_BASE_URL
    api_url: str = OSDR_API_URL
    page_size: int = 50
    max_pages_per_term: int = 10
    max_concurrent: int = 3
    max_retries: int = 3
    target_study_count: int = 100
    pacing_s: float = 0.2
    backoff_base_s: float = 1.0
    studies_ttl_s: float = 24 * 60 * 60
    stats_ttl_s: float = 6 * 60 * 60
    search_limit: int = 30
    timeout_s: float = 30.0
    connect_timeout_s: float = 10.0
    data_dir: Path = field(default_factory=lambda: Path("data"))

    @property
    def curated_path(self) -> Path:
        return self.data_dir / "curated_research.json"

    @property
    def search_log_path(self) -> Path:
        return self.data_dir / "cache" / "search_history.jsonl"


def _coerce(raw: Any, default: Any) -> Any:
    if isinstance(default, Path):
        return Path(str(raw))
    if isinstance(default, bool):
        return str(raw).strip().lower() in {"1", "true", "yes"}
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)


def load_settings(
    config_paths: list[Path] | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load settings from the [osdr] table of config.toml, then the environment."""

    paths = config_paths or [Path("config.toml"), Path("config.example.toml")]
    env = os.environ if environ is None else environ
    defaults = Settings()
    values: dict[str, Any] = {}

    for path in paths:
        if path.exists():
            with path.open("rb") as handle:
                data: dict[str, Any] = tomllib.load(handle)
            section = data.get("osdr", {}) if isinstance(data, dict) else {}
            if isinstance(section, dict):
                values.update(section)
            break

    for item in fields(Settings):
        env_value = env.get(f"{ENV_PREFIX}{item.name.upper()}")
        if env_value not in (None, ""):
            values[item.name] = env_value

    resolved: dict[str, Any] = {}
    for item in fields(Settings):
        if item.name in values:
            default = getattr(defaults, item.name)
            resolved[item.name] = _coerce(values[item.name], default)
    settings = Settings(**resolved)
    if settings.max_concurrent < 1:
        raise ValueError("max_concurrent must be at least 1")
    return settings


__all__ = ["OSDR_API_URL", "OSDR_BASE_URL", "Settings", "load_settings"]

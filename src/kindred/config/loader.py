"""Configuration loading from TOML files and environment variables.

Lookup order when no explicit path is given: ``./config.toml``, then
``$KINDRED_HOME/config.toml``, then ``/etc/kindred/config.toml``.
"""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from kindred.config.models import KindredConfig, ModelConfig
from kindred.config.paths import get_config_path

# (section, key, environment variable); only fills values the file leaves unset
ENV_SECRETS: tuple[tuple[str, str, str], ...] = (
    ("anthropic", "api_key", "ANTHROPIC_API_KEY"),
    ("openai", "api_key", "OPENAI_API_KEY"),
)


def candidate_config_paths() -> list[Path]:
    return [
        Path("config.toml"),
        get_config_path(),
        Path("/etc/kindred/config.toml"),
    ]


def find_config_file(path: Path | None = None) -> Path:
    """Return the config file to read.

    Raises:
        FileNotFoundError: If the explicit path is missing, or no candidate
            location holds a config file.
    """
    if path is not None:
        explicit = Path(path).expanduser()
        if not explicit.exists():
            raise FileNotFoundError(f"Config file not found: {explicit}")
        return explicit

    candidates = [p.expanduser() for p in candidate_config_paths()]
    found = next((p for p in candidates if p.exists()), None)
    if found is None:
        searched = ", ".join(str(p) for p in candidates)
        raise FileNotFoundError(f"No config file found. Searched: {searched}")
    return found


def _resolve_env_secrets(raw: dict[str, Any]) -> dict[str, Any]:
    """Fill provider keys and the database URL from the environment."""
    for section_name, key, env_var in ENV_SECRETS:
        section = raw.get(section_name)
        if not isinstance(section, dict) or section.get(key) is not None:
            continue
        if value := os.environ.get(env_var):
            section[key] = SecretStr(value)

    if database_url := os.environ.get("KINDRED_DATABASE_URL"):
        raw.setdefault("database", {}).setdefault("url", database_url)

    return raw


def load_config(path: Path | None = None) -> KindredConfig:
    """Load and validate configuration.

    Raises:
        FileNotFoundError: If no config file is found.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
        pydantic.ValidationError: If the config file is invalid.
    """
    with find_config_file(path).open("rb") as f:
        raw = tomllib.load(f)
    return KindredConfig.model_validate(_resolve_env_secrets(raw))


def get_default_config() -> KindredConfig:
    """Built-in configuration used when no config file exists."""
    return KindredConfig(
        models={"default": ModelConfig(provider="openai", model="gpt-4o-mini")}
    )

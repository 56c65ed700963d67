"""Where kindred keeps its files.

Everything lives under one home directory, ``~/.kindred`` unless the
KINDRED_HOME environment variable points elsewhere::

    $KINDRED_HOME/config.toml
    $KINDRED_HOME/data/kindred.db
    $KINDRED_HOME/logs/YYYY-MM-DD.jsonl
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "KINDRED_HOME"


@lru_cache(maxsize=1)
def get_kindred_home() -> Path:
    """Home directory, resolved once per process."""
    if override := os.environ.get(ENV_VAR):
        return Path(override).expanduser().resolve()
    return Path.home() / ".kindred"


def get_config_path() -> Path:
    return get_kindred_home() / "config.toml"


def get_database_path() -> Path:
    return get_kindred_home() / "data" / "kindred.db"


def get_logs_path() -> Path:
    return get_kindred_home() / "logs"

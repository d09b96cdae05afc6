from __future__ import annotations

from pathlib import Path
import os

DATA_ROOT_ENV = "PAINTMIX_DATA_ROOT"
CONFIG_FILENAME = "paintmix_config.yaml"


def data_root() -> Path:
    """Root for config, logs and default stores. Override with PAINTMIX_DATA_ROOT."""
    env = os.getenv(DATA_ROOT_ENV)
    if env:
        return Path(env).expanduser()
    return Path.cwd() / "paintmix_data"


def config_path() -> Path:
    return data_root() / CONFIG_FILENAME


def logs_root() -> Path:
    return data_root() / "logs"

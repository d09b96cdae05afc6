import logging

import pytest

from paintmix.data.engine_config import EngineConfigStore


@pytest.fixture(autouse=True)
def isolated_data_root(tmp_path, monkeypatch):
    """Point config/log/store defaults at a per-test directory."""
    root = tmp_path / "paintmix_data"
    monkeypatch.setenv("PAINTMIX_DATA_ROOT", str(root))
    EngineConfigStore.reset_instance()
    yield root
    EngineConfigStore.reset_instance()
    root_logger = logging.getLogger()
    for h in list(root_logger.handlers):
        if getattr(h, "_paintmix_handler", False):
            root_logger.removeHandler(h)
            h.close()

import os

import pytest

from localeforge import configuration


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("HOME", str(home))
    for key in list(os.environ):
        if key.startswith(configuration.ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    configuration.clear_cache()
    yield
    configuration.clear_cache()

import pytest

import logs


@pytest.fixture(autouse=True)
def log_file(tmp_path, monkeypatch):
    path = tmp_path / "logs.json"
    monkeypatch.setattr(logs, "LOG_FILE_PATH", str(path))
    return path

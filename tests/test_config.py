import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))
os.environ.setdefault("DB_URL", "sqlite://")

from terminal_inventory.core.config import AppSettings


def _clear_db_env(monkeypatch):
    for name in ("DB_URL", "DATABASE_URL", "ALLOWED_ORIGINS", "API_KEY", "API_TOKEN"):
        monkeypatch.delenv(name, raising=False)


def test_database_url_defaults_to_sqlite_file_in_data_dir(tmp_path, monkeypatch):
    _clear_db_env(monkeypatch)
    monkeypatch.setenv("DATA_DIR", str(tmp_path))

    config = AppSettings()

    assert config.database_url == f"sqlite:///{tmp_path / 'inventory.db'}"


def test_database_url_alias(monkeypatch):
    _clear_db_env(monkeypatch)
    monkeypatch.setenv("DATABASE_URL", "postgresql://inv@db/inventory")

    assert AppSettings().database_url == "postgresql://inv@db/inventory"


def test_allowed_origins_and_api_token_from_env(monkeypatch):
    _clear_db_env(monkeypatch)
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.example, http://b.example,")
    monkeypatch.setenv("API_TOKEN", "secret")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = AppSettings()

    assert config.ALLOWED_ORIGINS == ["http://a.example", "http://b.example"]
    assert config.API_KEY == "secret"
    assert config.LOG_LEVEL == "DEBUG"

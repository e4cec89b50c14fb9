import json
import re
from datetime import date

import pytest

from routeflow.config import (
    AppConfig,
    Settings,
    default_db_name,
    generate_global_key,
    load_app_config,
    save_app_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ROUTEFLOW_DATA_DIR", "ROUTEFLOW_STORAGE", "ROUTEFLOW_PROJECT", "ROUTEFLOW_AUTOSAVE_DELAY"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:

    def test_global_key_format(self):
        key = generate_global_key(now_ms=1700000000000)
        assert re.fullmatch(r"key_1700000000000_[0-9a-z]{9}", key)

    def test_default_db_name(self):
        assert default_db_name(date(2024, 3, 9)) == "database_2024-03-09"

    def test_defaults(self):
        settings = Settings()
        assert settings.database_type == "mysql"
        assert settings.auth_type == "session"
        assert settings.timezone == "UTC"
        assert (settings.db_host, settings.db_port) == ("localhost", "3306")
        assert (settings.db_user, settings.db_password) == ("root", "root")
        assert settings.global_key.startswith("key_")
        assert settings.db_name.startswith("database_")

    def test_from_dict_overrides_only_given_values(self):
        settings = Settings.from_dict({"databaseType": "postgres", "dbPort": "5432", "timezone": None})
        assert settings.database_type == "postgres"
        assert settings.db_port == "5432"
        assert settings.timezone == "UTC"
        assert settings.auth_type == "session"

    def test_empty_values_are_kept(self):
        settings = Settings.from_dict({"dbPassword": "", "dbHost": "", "timezone": ""})
        assert settings.db_password == ""
        assert settings.db_host == ""
        assert settings.timezone == ""

    def test_round_trip_with_falsy_values(self):
        original = Settings(global_key="key_1_abcdefghi", db_name="database_x",
                            db_password="", db_port="", timezone="")
        assert Settings.from_dict(original.to_dict()) == original

    def test_to_dict_keys(self):
        raw = Settings(global_key="key_1_abcdefghi", db_name="database_x").to_dict()
        assert raw["globalKey"] == "key_1_abcdefghi"
        assert raw["dbName"] == "database_x"
        assert Settings.from_dict(raw) == Settings(global_key="key_1_abcdefghi", db_name="database_x")


class TestLoadAppConfig:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_app_config(tmp_path / "config.json")
        assert config.storage_backend == "json"
        assert config.project == "default"
        assert config.autosave_delay == 1.0

    def test_file_values(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "storage_backend": "memory",
            "data_dir": str(tmp_path / "data"),
            "project": "Shop",
            "autosave_delay": 2.5,
        }))
        config = load_app_config(path)
        assert config.storage_backend == "memory"
        assert config.project_path == tmp_path / "data" / "Shop"
        assert config.autosave_delay == 2.5

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"storage_backend": "memory", "project": "Shop"}))
        monkeypatch.setenv("ROUTEFLOW_STORAGE", "json")
        monkeypatch.setenv("ROUTEFLOW_PROJECT", "Blog")
        monkeypatch.setenv("ROUTEFLOW_DATA_DIR", str(tmp_path / "elsewhere"))
        monkeypatch.setenv("ROUTEFLOW_AUTOSAVE_DELAY", "0.25")
        config = load_app_config(path)
        assert config.storage_backend == "json"
        assert config.project_path == tmp_path / "elsewhere" / "Blog"
        assert config.autosave_delay == 0.25

    @pytest.mark.parametrize("value", ["soon", "-1"])
    def test_bad_delay_falls_back(self, tmp_path, monkeypatch, value):
        monkeypatch.setenv("ROUTEFLOW_AUTOSAVE_DELAY", value)
        assert load_app_config(tmp_path / "config.json").autosave_delay == 1.0

    def test_unreadable_file_is_ignored(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text("{broken")
        config = load_app_config(path)
        assert config.storage_backend == "json"
        assert "Ignoring unreadable config" in caplog.text

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "config.json"
        config = AppConfig(storage_backend="memory", data_dir=tmp_path, project="P", autosave_delay=3.0)
        save_app_config(config, path)
        loaded = load_app_config(path)
        assert loaded.storage_backend == "memory"
        assert loaded.project == "P"
        assert loaded.autosave_delay == 3.0
        assert loaded.settings.global_key == config.settings.global_key

    def test_save_and_reload_keeps_empty_settings(self, tmp_path):
        path = tmp_path / "config.json"
        config = AppConfig(data_dir=tmp_path, settings=Settings(db_password="", timezone=""))
        save_app_config(config, path)
        loaded = load_app_config(path)
        assert loaded.settings == config.settings

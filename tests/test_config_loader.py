import json
from pathlib import Path

import pytest

from varbridge.config.loader import (
    camel_to_snake,
    get_config_path,
    load_config,
    save_config,
    snake_to_camel,
)
from varbridge.config.schema import Config


def test_load_config_reads_camel_case(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "auth": {"token": "secret", "allowNoAuth": False},
                "server": {"port": 19000, "webhookPath": "lights", "maxBodyBytes": 4096},
                "host": {"backend": "symcon", "url": "http://10.0.0.2:3777/api/", "timeoutSeconds": 2.5},
                "registry": {"sqlitePath": str(tmp_path / "r.db")},
                "debugLog": True,
            }
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.auth.token == "secret"
    assert config.server.port == 19000
    assert config.server.webhook_path == "lights"
    assert config.server.max_body_bytes == 4096
    assert config.host.backend == "symcon"
    assert config.host.timeout_seconds == 2.5
    assert config.registry.sqlite_path == str(tmp_path / "r.db")
    assert config.debug_log is True


def test_load_config_defaults() -> None:
    config = Config()

    assert config.server.port == 18800
    assert config.server.webhook_path == "varbridge"
    assert config.server.max_body_bytes == 1024 * 1024
    assert config.auth.token == ""
    assert config.auth.allow_no_auth is False
    assert config.host.backend == "memory"


def test_load_config_falls_back_on_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")

    config = load_config(path)

    assert config.server.port == 18800


def test_load_config_falls_back_on_schema_error(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"server": {"port": "not-a-port"}}), encoding="utf-8")

    config = load_config(path)

    assert config.server.port == 18800


def test_save_config_writes_camel_case(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.json"
    config = Config()
    config.auth.token = "abc"
    config.server.webhook_path = "home"

    save_config(config, path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["auth"]["allowNoAuth"] is False
    assert raw["server"]["webhookPath"] == "home"
    assert raw["registry"]["sqlitePath"]
    assert load_config(path).auth.token == "abc"


def test_config_path_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VARBRIDGE_CONFIG", str(tmp_path / "custom.json"))
    assert get_config_path() == tmp_path / "custom.json"

    monkeypatch.delenv("VARBRIDGE_CONFIG")
    monkeypatch.setenv("VARBRIDGE_DATA_DIR", str(tmp_path / "data"))
    assert get_config_path() == tmp_path / "data" / "config.json"


def test_key_case_helpers() -> None:
    assert camel_to_snake("maxBodyBytes") == "max_body_bytes"
    assert snake_to_camel("allow_no_auth") == "allowNoAuth"

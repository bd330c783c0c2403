from pathlib import Path

import pytest

from keyman.config.keys import DEFAULT_API_BASE_URL
from keyman.config.settings import ConfigurationError, Settings, get_settings


@pytest.mark.unit
def test_defaults(isolated_environment: Path) -> None:
    settings = Settings.from_config()

    assert settings.keys.api_base_url == DEFAULT_API_BASE_URL
    assert settings.keys.prompt_timeout == 30.0
    assert settings.logging.level == "WARNING"
    assert settings.keys.get_storage_path() == isolated_environment / "keyman" / "localdata.json"
    assert settings.keys.get_legacy_path() == isolated_environment / "keyman" / "key.txt"


@pytest.mark.unit
def test_toml_values_are_applied(tmp_path: Path) -> None:
    cfg = tmp_path / "config.toml"
    cfg.write_text(
        """
    [keys]
    api_base_url = "https://keys.internal/"
    prompt_timeout = 5
    storage_dir = "/var/lib/keyman"

    [logging]
    level = "debug"
    """,
        encoding="utf-8",
    )

    settings = Settings.from_config(config_path=cfg)
    assert settings.keys.api_base_url == "https://keys.internal"
    assert settings.keys.prompt_timeout == 5.0
    assert settings.keys.get_storage_path() == Path("/var/lib/keyman/localdata.json")
    assert settings.logging.level == "DEBUG"


@pytest.mark.unit
def test_env_overrides_toml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg = tmp_path / "config.toml"
    cfg.write_text(
        """
    [keys]
    prompt_timeout = 5
    request_timeout = 2
    """,
        encoding="utf-8",
    )

    monkeypatch.setenv("KEYMAN_KEYS__PROMPT_TIMEOUT", "12")

    settings = Settings.from_config(config_path=cfg)
    assert settings.keys.prompt_timeout == 12.0  # env > toml
    assert settings.keys.request_timeout == 2.0


@pytest.mark.unit
def test_kwargs_override_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KEYMAN_LOGGING__LEVEL", "INFO")

    settings = Settings.from_config(config_path=None, logging={"level": "DEBUG"})
    assert settings.logging.level == "DEBUG"


@pytest.mark.unit
def test_config_file_env_var(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg = tmp_path / "elsewhere.toml"
    cfg.write_text("[keys]\nprompt_timeout = 7\n", encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(cfg))

    settings = get_settings()
    assert settings.keys.prompt_timeout == 7.0


@pytest.mark.unit
def test_discovers_config_in_current_directory(tmp_path: Path) -> None:
    (tmp_path / ".keyman.toml").write_text("[keys]\nprompt_timeout = 9\n", encoding="utf-8")

    settings = get_settings()
    assert settings.keys.prompt_timeout == 9.0


@pytest.mark.unit
def test_discovers_config_in_xdg_directory(isolated_environment: Path) -> None:
    config_dir = isolated_environment / "keyman"
    config_dir.mkdir()
    (config_dir / "config.toml").write_text("[logging]\nformat = \"json\"\n", encoding="utf-8")

    settings = get_settings()
    assert settings.logging.format == "json"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("filename", "content"),
    [
        ("config.toml", "[keys\nprompt_timeout = 5"),
        ("config.toml", "[keys]\nprompt_timeout = -1\n"),
        ("config.toml", "[logging]\nlevel = \"LOUD\"\n"),
        ("config.yaml", "keys: {}\n"),
    ],
    ids=["invalid_toml", "out_of_range", "unknown_level", "unsupported_format"],
)
def test_invalid_config_raises_configuration_error(
    tmp_path: Path, filename: str, content: str
) -> None:
    cfg = tmp_path / filename
    cfg.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        get_settings(config_path=cfg)


@pytest.mark.unit
def test_invalid_env_raises_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KEYMAN_KEYS__PROMPT_TIMEOUT", "soon")

    with pytest.raises(ConfigurationError):
        get_settings()

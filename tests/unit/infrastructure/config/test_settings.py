import os
from pathlib import Path

import pytest

from bamboocli.domain.models.config import DEFAULT_BASE_URL_TEMPLATE
from bamboocli.infrastructure.config import settings


@pytest.fixture
def empty_config(tmp_path: Path):
    """Loads an empty configuration; restores it after the test."""
    missing_yaml, missing_env = tmp_path / "absent.yaml", tmp_path / "absent.env"
    settings.load_configuration(config_file=missing_yaml, env_file=missing_env, force=True)
    yield
    settings.load_configuration(config_file=missing_yaml, env_file=missing_env, force=True)


@pytest.fixture
def yaml_config(tmp_path: Path, empty_config):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "bamboo:\n"
        "  api_key: yaml-key\n"
        "  subdomain: acme\n"
        "client:\n"
        "  request_timeout_seconds: 12\n"
        "  coalesce_requests: true\n"
        "resource_classes:\n"
        "  employees:\n"
        "    cache_ttl_seconds: 120\n"
        "  benefits:\n"
        "    max_requests: 5\n"
        "logging:\n"
        "  level: DEBUG\n",
        encoding="utf-8",
    )
    settings.load_configuration(config_file=config_file, env_file=tmp_path / "absent.env", force=True)
    return config_file


def test_defaults_when_nothing_is_configured(empty_config):
    assert settings.get_config("client.max_retry_attempts", 3) == 3
    assert settings.get_api_key() is None


def test_missing_credentials_are_rejected(empty_config):
    with pytest.raises(ValueError, match="API key"):
        settings.build_client_settings()
    settings.set_config_for_testing({"BAMBOO_API_KEY": "k"})
    with pytest.raises(ValueError, match="subdomain"):
        settings.build_client_settings()


def test_yaml_values_are_read_with_dotted_keys(yaml_config):
    assert settings.get_config("logging.level") == "DEBUG"
    assert settings.get_api_key() == "yaml-key"

    client_settings = settings.build_client_settings()
    assert client_settings.subdomain == "acme"
    assert client_settings.request_timeout_seconds == 12
    assert client_settings.coalesce_requests is True
    assert client_settings.effective_base_url == DEFAULT_BASE_URL_TEMPLATE.format(subdomain="acme")


def test_resource_classes_overlay_defaults(yaml_config):
    classes = settings.build_client_settings().resource_classes
    assert classes["employees"].cache_ttl_seconds == 120
    assert classes["employees"].max_requests == 60
    assert classes["company"].cache_ttl_seconds == 3600
    assert classes["benefits"].max_requests == 5
    assert classes["benefits"].cache_ttl_seconds == 300


def test_environment_overrides_yaml_and_is_coerced(yaml_config, monkeypatch):
    monkeypatch.setenv("BAMBOO_API_KEY", "env-key")
    monkeypatch.setenv("CLIENT_MAX_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("RESOURCE_CLASSES_EMPLOYEES_CACHE_TTL_SECONDS", "0")
    monkeypatch.setenv("CLIENT_COALESCE_REQUESTS", "false")

    client_settings = settings.build_client_settings()
    assert client_settings.api_key == "env-key"
    assert client_settings.max_retry_attempts == 5
    assert client_settings.coalesce_requests is False
    assert client_settings.resource_classes["employees"].cache_ttl_seconds == 0


def test_credentials_from_environment_are_not_coerced(empty_config, monkeypatch):
    monkeypatch.setenv("BAMBOO_API_KEY", "000123")
    monkeypatch.setenv("BAMBOO_SUBDOMAIN", "2024")
    assert settings.get_config("BAMBOO_API_KEY") == "000123"
    client_settings = settings.build_client_settings()
    assert client_settings.api_key == "000123"
    assert client_settings.subdomain == "2024"


def test_test_overrides_win_over_everything(yaml_config, monkeypatch):
    monkeypatch.setenv("BAMBOO_SUBDOMAIN", "from-env")
    settings.set_config_for_testing({"BAMBOO_SUBDOMAIN": "from-test"})
    assert settings.get_subdomain() == "from-test"
    settings.clear_test_config()
    assert settings.get_subdomain() == "from-env"


def test_invalid_values_are_rejected(yaml_config):
    settings.set_config_for_testing({"resource_classes.reports.max_requests": 0})
    with pytest.raises(ValueError):
        settings.build_client_settings()


def test_dotenv_file_does_not_override_environment(tmp_path: Path, empty_config, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("BAMBOO_API_KEY=dotenv-key\nBAMBOO_SUBDOMAIN=dotenv-co\n", encoding="utf-8")
    monkeypatch.setenv("BAMBOO_API_KEY", "real-key")
    try:
        settings.load_configuration(config_file=tmp_path / "absent.yaml", env_file=env_file, force=True)
        assert settings.get_api_key() == "real-key"
        assert settings.get_subdomain() == "dotenv-co"
    finally:
        os.environ.pop("BAMBOO_SUBDOMAIN", None)


def test_find_dotenv_path_walks_up(tmp_path: Path, monkeypatch):
    (tmp_path / ".env").write_text("X=1\n", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)
    assert settings.find_dotenv_path() == tmp_path / ".env"


def test_env_var_name():
    assert settings.env_var_name("client.request_timeout_seconds") == "CLIENT_REQUEST_TIMEOUT_SECONDS"
    assert settings.env_var_name("BAMBOO_API_KEY") == "BAMBOO_API_KEY"

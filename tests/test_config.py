import pytest

from core.exceptions import ConfigurationError
from utils.config import Config

PSA_VARS = {
    "PSA_COMPANY_IDENTIFIER": "Acme",
    "PSA_COMPANY_ID": "acme",
    "PSA_PUBLIC_KEY": "pub",
    "PSA_PRIVATE_KEY": "priv",
    "PSA_CLIENT_ID": "client-123",
    "PSA_BASE_URL": "https://api-na.myconnectwise.net/v4_6_release/apis/3.0",
    "PSA_API_VERSION": "application/vnd.connectwise.com+json; version=2022.1",
}


@pytest.fixture
def env(monkeypatch, tmp_path):
    # Keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("utils.config.load_dotenv", lambda: None)
    for name, value in PSA_VARS.items():
        monkeypatch.setenv(name, value)
    for name in ("PSA_PAGE_SIZE", "PSA_TIMEOUT", "RECONCILE_WORK_DIR"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_complete_config_validates(env):
    config = Config()
    assert config.validate_psa_config() is True
    assert config.get_missing_psa_vars() == []
    assert config.page_size == 100
    assert config.timeout == 30.0
    assert config.work_dir == "work"


def test_missing_vars_are_listed(env):
    env.delenv("PSA_PRIVATE_KEY")
    env.setenv("PSA_CLIENT_ID", "")
    config = Config()
    assert config.validate_psa_config() is False
    assert config.get_missing_psa_vars() == ["PSA_PRIVATE_KEY", "PSA_CLIENT_ID"]


def test_overrides_from_environment(env):
    env.setenv("PSA_PAGE_SIZE", "250")
    env.setenv("RECONCILE_WORK_DIR", "/tmp/reconcile")
    config = Config()
    assert config.page_size == 250
    assert config.work_dir == "/tmp/reconcile"


def test_known_host_passes(env, caplog):
    assert Config().check_base_url() is True
    assert "not a known API host" not in caplog.text


def test_unknown_host_only_warns(env, caplog):
    env.setenv("PSA_BASE_URL", "http://localhost:8080/apis/3.0")
    assert Config().check_base_url() is False
    assert "not a known API host" in caplog.text


@pytest.mark.parametrize("value", ["0", "-1", "many"])
def test_invalid_page_size_is_a_configuration_error(env, value):
    env.setenv("PSA_PAGE_SIZE", value)
    with pytest.raises(ConfigurationError, match="PSA_PAGE_SIZE"):
        Config().page_size

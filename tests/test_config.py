"""Tests for configuration loading and models."""

from pathlib import Path

import pytest
from pydantic import SecretStr, ValidationError

from kindred.config.loader import (
    _resolve_env_secrets,
    find_config_file,
    get_default_config,
    load_config,
)
from kindred.config.models import (
    ConfigError,
    KindredConfig,
    ModelConfig,
    PeopleConfig,
    ProviderConfig,
    ResolutionConfig,
)
from kindred.config.paths import get_database_path, get_kindred_home, get_logs_path


class TestResolutionConfig:
    """Tests for ResolutionConfig model."""

    def test_defaults(self):
        config = ResolutionConfig()
        assert config.exact_name_weight == 6
        assert config.full_alias_weight == 5
        assert config.single_alias_weight == 2
        assert config.match_threshold == 5
        assert config.exclusive_spouse is True

    def test_threshold_bounds(self):
        with pytest.raises(ValidationError):
            ResolutionConfig(fuzzy_name_threshold=1.5)


class TestPeopleConfig:
    """Tests for PeopleConfig model."""

    def test_defaults(self):
        config = PeopleConfig()
        assert config.model == "default"
        assert config.history_limit == 12
        assert config.excerpt_max_chars == 240
        assert config.context_limit == 3
        assert config.context_max_chars == 700
        assert config.summary_max_tokens == 90

    def test_history_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            PeopleConfig(history_limit=0)


class TestKindredConfig:
    """Tests for the root config model."""

    def test_requires_default_model(self):
        with pytest.raises(ValidationError, match="default"):
            KindredConfig(models={})

    def test_get_model(self, minimal_config):
        assert minimal_config.get_model("default").model == "gpt-4o-mini"
        assert minimal_config.default_model.provider == "openai"

    def test_unknown_alias(self, minimal_config):
        with pytest.raises(ConfigError, match="Unknown model alias"):
            minimal_config.get_model("missing")

    def test_list_models(self):
        config = KindredConfig(
            models={
                "default": ModelConfig(provider="openai", model="gpt-4o-mini"),
                "fast": ModelConfig(provider="anthropic", model="claude-haiku-4-5"),
            }
        )
        assert config.list_models() == ["default", "fast"]

    def test_resolve_api_key_from_config(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        config = KindredConfig(
            models={"default": ModelConfig(provider="openai", model="gpt-4o-mini")},
            openai=ProviderConfig(api_key=SecretStr("sk-config")),
        )
        assert config.resolve_api_key("default").get_secret_value() == "sk-config"

    def test_resolve_api_key_from_env(self, minimal_config, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert minimal_config.resolve_api_key("default").get_secret_value() == "sk-env"

    def test_resolve_api_key_missing(self, minimal_config, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert minimal_config.resolve_api_key("default") is None


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_file(self, config_file):
        config = load_config(config_file)

        assert config.get_model("fast").max_tokens == 512
        assert config.people.model == "fast"
        assert config.people.context_limit == 5
        assert config.people.resolution.match_threshold == 6

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text('[models.default]\nprovider = "nope"\nmodel = "x"\n')
        with pytest.raises(ValidationError):
            load_config(path)

    def test_env_secrets(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
        monkeypatch.setenv("KINDRED_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

        resolved = _resolve_env_secrets({"anthropic": {}})

        assert resolved["anthropic"]["api_key"].get_secret_value() == "sk-ant-env"
        assert resolved["database"]["url"] == "sqlite+aiosqlite:///:memory:"

    def test_database_path_from_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[models.default]\nprovider = "openai"\nmodel = "gpt-4o-mini"\n'
            f'[database]\npath = "{tmp_path / "people.db"}"\n'
        )
        assert load_config(path).database.path == Path(tmp_path / "people.db")

    def test_find_config_in_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.toml").write_text("")

        assert find_config_file() == Path("config.toml")

    def test_default_config(self):
        config = get_default_config()
        assert config.default_model.provider == "openai"


class TestPaths:
    @pytest.fixture(autouse=True)
    def _fresh_home(self):
        get_kindred_home.cache_clear()
        yield
        get_kindred_home.cache_clear()

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KINDRED_HOME", str(tmp_path))

        assert get_kindred_home() == tmp_path.resolve()
        assert get_database_path() == tmp_path.resolve() / "data" / "kindred.db"
        assert get_logs_path() == tmp_path.resolve() / "logs"

    def test_default_home(self, monkeypatch):
        monkeypatch.delenv("KINDRED_HOME", raising=False)
        assert get_kindred_home() == Path.home() / ".kindred"

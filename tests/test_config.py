"""
Tests for configuration loading, validation and settings construction.
"""

import stat

import pytest
import yaml

from ecomail_sync.config.generator import generate_default_config, save_config_file
from ecomail_sync.config.loader import (
    CONFIG_FILE_ENV_VAR,
    VALID_KEYS,
    ConfigLoader,
    ConfigurationError,
)
from ecomail_sync.config.settings import Settings, build_property_map
from ecomail_sync.sync.contact import PropertyMap

CREDENTIALS_ENV = {
    "NOTION_TOKEN": "secret_t",
    "NOTION_DATABASE_ID": "db1",
    "ECOMAIL_API_KEY": "k3y",
    "ECOMAIL_LIST_ID": "5",
}


class TestConfigLoader:
    """Tests for ConfigLoader file handling."""

    def test_missing_file_is_empty_config(self, tmp_path):
        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.load() == {}

    def test_empty_file(self, tmp_path):
        (tmp_path / "config.yaml").write_text("")
        assert ConfigLoader(config_dir=tmp_path).load() == {}

    def test_loads_yaml(self, tmp_path):
        (tmp_path / "config.yaml").write_text("dry_run: true\npacing_delay: 0.5\n")

        config = ConfigLoader(config_dir=tmp_path).load()

        assert config == {"dry_run": True, "pacing_delay": 0.5}

    def test_env_var_names_file(self, tmp_path, monkeypatch):
        other = tmp_path / "other.yaml"
        other.write_text("verbose: true\n")
        monkeypatch.setenv(CONFIG_FILE_ENV_VAR, str(other))

        assert ConfigLoader(config_dir=tmp_path / "unused").load() == {"verbose": True}

    def test_invalid_yaml_raises(self, tmp_path):
        (tmp_path / "config.yaml").write_text("key: [unclosed\n")

        with pytest.raises(ConfigurationError, match="parse"):
            ConfigLoader(config_dir=tmp_path).load()

    def test_non_dict_raises(self, tmp_path):
        (tmp_path / "config.yaml").write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="dictionary"):
            ConfigLoader(config_dir=tmp_path).load()


class TestConfigValidation:
    """Tests for ConfigLoader.validate()."""

    @pytest.fixture
    def loader(self, tmp_path):
        return ConfigLoader(config_dir=tmp_path)

    def test_valid_config(self, loader):
        loader.validate(
            {
                "dry_run": False,
                "request_timeout": 10,
                "max_attempts": 5,
                "pacing_delay": 0,
                "ecomail_list_id": 3,
                "properties": {"email": "E-mail", "intent_type": "status"},
                "opt_in_values": ["Yes"],
            }
        )

    def test_wrong_type(self, loader):
        with pytest.raises(ConfigurationError, match="max_attempts"):
            loader.validate({"max_attempts": "3"})

    def test_bool_rejected_for_numbers(self, loader):
        with pytest.raises(ConfigurationError, match="got bool"):
            loader.validate({"request_timeout": True})

    def test_unknown_keys_are_ignored(self, loader):
        loader.validate({"something_else": 1})

    @pytest.mark.parametrize(
        "config",
        [
            {"max_attempts": 0},
            {"page_size": 0},
            {"page_size": 101},
            {"request_timeout": 0},
            {"retry_delay": -1},
            {"pacing_delay": -0.1},
        ],
    )
    def test_out_of_range(self, loader, config):
        with pytest.raises(ConfigurationError):
            loader.validate(config)

    def test_unknown_property_key(self, loader):
        with pytest.raises(ConfigurationError, match="properties"):
            loader.validate({"properties": {"phone": "Telefon"}})

    def test_empty_property_name(self, loader):
        with pytest.raises(ConfigurationError, match="non-empty"):
            loader.validate({"properties": {"email": " "}})

    def test_invalid_intent_type(self, loader):
        with pytest.raises(ConfigurationError, match="intent_type"):
            loader.validate({"properties": {"intent_type": "checkbox"}})

    def test_empty_value_list(self, loader):
        with pytest.raises(ConfigurationError, match="opt_out_values"):
            loader.validate({"opt_out_values": []})

    def test_load_and_validate(self, tmp_path):
        (tmp_path / "config.yaml").write_text("max_attempts: 0\n")

        with pytest.raises(ConfigurationError):
            ConfigLoader(config_dir=tmp_path).load_and_validate()


class TestSettings:
    """Tests for Settings.from_sources()."""

    def test_from_environment(self):
        settings = Settings.from_sources({}, CREDENTIALS_ENV)

        assert settings.notion_token == "secret_t"
        assert settings.ecomail_list_id == "5"
        assert settings.request_timeout == 30.0
        assert settings.max_attempts == 3
        assert settings.pacing_delay == 0.1
        assert settings.property_map == PropertyMap()

    def test_missing_credentials_are_all_named(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_sources({}, {"NOTION_TOKEN": "t"})

        message = str(exc_info.value)
        assert "NOTION_DATABASE_ID" in message
        assert "ECOMAIL_API_KEY" in message
        assert "ECOMAIL_LIST_ID" in message
        assert "NOTION_TOKEN" not in message

    def test_blank_credential_counts_as_missing(self):
        env = dict(CREDENTIALS_ENV, ECOMAIL_API_KEY="  ")
        with pytest.raises(ConfigurationError, match="ECOMAIL_API_KEY"):
            Settings.from_sources({}, env)

    def test_credentials_from_file(self):
        config = {
            "notion_token": "t",
            "notion_database_id": "db",
            "ecomail_api_key": "k",
            "ecomail_list_id": 7,
        }
        settings = Settings.from_sources(config, {})
        assert settings.ecomail_list_id == "7"

    def test_environment_wins_over_file(self):
        settings = Settings.from_sources({"ecomail_api_key": "file"}, CREDENTIALS_ENV)
        assert settings.ecomail_api_key == "k3y"

    def test_tuning_options(self):
        settings = Settings.from_sources(
            {"max_attempts": 5, "pacing_delay": 0.5, "resubscribe": False},
            CREDENTIALS_ENV,
        )
        assert settings.max_attempts == 5
        assert settings.pacing_delay == 0.5
        assert settings.resubscribe is False

    def test_settings_are_frozen(self):
        settings = Settings.from_sources({}, CREDENTIALS_ENV)
        with pytest.raises(AttributeError):
            settings.dry_run = True

    def test_repr_hides_secrets(self):
        settings = Settings.from_sources({}, CREDENTIALS_ENV)
        assert "secret_t" not in repr(settings)
        assert "k3y" not in repr(settings)

    def test_property_map_from_config(self):
        pm = build_property_map(
            {
                "properties": {"email": "E-mail ", "intent": "Newsletter"},
                "opt_in_values": ["Yes"],
            }
        )
        assert pm.email == "E-mail"
        assert pm.intent == "Newsletter"
        assert pm.name == "Jméno"
        assert pm.opt_in_values == ("Yes",)
        assert pm.opt_out_values == ("Ne",)


class TestConfigGenerator:
    """Tests for the default configuration file."""

    def test_default_config_is_valid_yaml(self):
        """Everything is commented out, so the file parses to nothing."""
        assert yaml.safe_load(generate_default_config()) is None

    def test_default_config_documents_every_key(self):
        content = generate_default_config()
        for key in VALID_KEYS:
            assert key in content, key

    def test_save_config_file(self, tmp_path):
        path = tmp_path / "sub" / "config.yaml"

        success, error = save_config_file(path)

        assert success
        assert error is None
        assert path.read_text(encoding="utf-8") == generate_default_config()
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_save_refuses_to_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("dry_run: true\n")

        success, error = save_config_file(path)

        assert not success
        assert "already exists" in error
        assert path.read_text() == "dry_run: true\n"

    def test_save_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("dry_run: true\n")

        success, _ = save_config_file(path, overwrite=True)

        assert success
        assert path.read_text(encoding="utf-8") == generate_default_config()

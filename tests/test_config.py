"""Tests for configuration loading."""

from pathlib import Path

import pytest

from hlnotes.amounts import FormatConfig
from hlnotes.config import (
    Config,
    DEFAULT_ACCOUNTS_FILE,
    DEFAULT_CURRENCIES,
    DEFAULT_DATE_FORMAT,
    DEFAULT_LINE_LENGTH,
    DEFAULT_TRANSACTION_HEADER,
    MissingConfigurationError,
    get_xdg_config_home,
    load_config,
    load_config_file,
)


class TestXDGPaths:
    """Tests for XDG path resolution."""

    def test_xdg_config_home_default(self, monkeypatch):
        """Default XDG config home should be ~/.config."""
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        result = get_xdg_config_home()
        assert result == Path.home() / ".config"

    def test_xdg_config_home_custom(self, monkeypatch):
        """Custom XDG_CONFIG_HOME should be respected."""
        monkeypatch.setenv("XDG_CONFIG_HOME", "/custom/config")
        result = get_xdg_config_home()
        assert result == Path("/custom/config")


class TestConfigDefaults:
    """Tests for configuration defaults."""

    def test_config_default_values(self):
        """Config should have correct default values."""
        config = Config()
        assert config.vault_path is None
        assert config.daily_notes_folder == ""
        assert config.daily_notes_date_format == DEFAULT_DATE_FORMAT
        assert config.transaction_header == DEFAULT_TRANSACTION_HEADER
        assert config.journal_date_format == DEFAULT_DATE_FORMAT
        assert config.accounts_file == DEFAULT_ACCOUNTS_FILE
        assert config.currencies == DEFAULT_CURRENCIES
        assert config.include_date is True
        assert config.line_length == DEFAULT_LINE_LENGTH
        assert config.amount_format == "comma-dot"
        assert config.currency_placement == "prepend"
        assert config.currency_spacing is True

    def test_currencies_not_shared(self):
        """Each Config gets its own currency list."""
        first = Config()
        first.currencies.append("CHF")
        assert "CHF" not in Config().currencies

    def test_format_config(self):
        """format_config carries the amount settings."""
        config = Config(
            amount_format="dot-comma",
            currency_placement="append",
            currency_spacing=False,
            line_length=60,
        )
        assert config.format_config() == FormatConfig(
            number_format="dot-comma",
            currency_spacing=False,
            currency_placement="append",
            line_length=60,
        )

    def test_format_config_invalid(self):
        """Invalid amount settings surface as ValueError."""
        with pytest.raises(ValueError):
            Config(amount_format="bogus").format_config()

    def test_default_currency(self):
        """The first configured currency is the default."""
        assert Config(currencies=["€", "$"]).default_currency() == "€"
        assert Config(currencies=[]).default_currency() == "$"


class TestRequiredSettings:
    """Tests for folder requirement checks."""

    def test_require_daily_notes(self):
        """A notes folder is required to add transactions."""
        with pytest.raises(MissingConfigurationError):
            Config().require_daily_notes()
        Config(daily_notes_folder="Daily").require_daily_notes()

    def test_require_folders(self):
        """Export and import need both folders."""
        with pytest.raises(MissingConfigurationError, match="folders"):
            Config(daily_notes_folder="Daily").require_folders()
        with pytest.raises(MissingConfigurationError, match="formats"):
            Config(
                daily_notes_folder="Daily",
                journal_folder="Finance",
                journal_date_format="",
            ).require_folders()
        Config(
            daily_notes_folder="Daily", journal_folder="Finance"
        ).require_folders()


class TestConfigResolution:
    """Tests for vault path resolution."""

    def test_resolve_vault_path_from_config(self, monkeypatch):
        """Vault path set in config should be used."""
        monkeypatch.delenv("HLNOTES_VAULT_PATH", raising=False)
        config = Config(vault_path=Path("/custom/vault"))
        result = config.resolve_vault_path()
        assert result == Path("/custom/vault")

    def test_resolve_vault_path_from_env(self, monkeypatch):
        """HLNOTES_VAULT_PATH should be used as fallback."""
        monkeypatch.setenv("HLNOTES_VAULT_PATH", "/default/vault")
        config = Config()
        result = config.resolve_vault_path()
        assert result == Path("/default/vault")

    def test_resolve_vault_path_config_overrides_env(self, monkeypatch):
        """Config vault_path should override HLNOTES_VAULT_PATH."""
        monkeypatch.setenv("HLNOTES_VAULT_PATH", "/default/vault")
        config = Config(vault_path=Path("/config/vault"))
        result = config.resolve_vault_path()
        assert result == Path("/config/vault")

    def test_resolve_vault_path_none_when_not_configured(self, monkeypatch):
        """None should be returned when no vault is configured."""
        monkeypatch.delenv("HLNOTES_VAULT_PATH", raising=False)
        config = Config()
        result = config.resolve_vault_path()
        assert result is None


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_config_cli_overrides(self):
        """CLI arguments should override defaults."""
        config = load_config(
            vault_path="/cli/vault",
            daily_notes_folder="Days",
            journal_folder="Ledger",
            include_date=False,
            line_length=60,
            amount_format="space-comma",
        )
        assert config.vault_path == Path("/cli/vault")
        assert config.daily_notes_folder == "Days"
        assert config.journal_folder == "Ledger"
        assert config.include_date is False
        assert config.line_length == 60
        assert config.amount_format == "space-comma"

    def test_load_config_partial_overrides(self):
        """Partial CLI args should leave other defaults."""
        config = load_config(line_length=100)
        assert config.line_length == 100
        assert config.include_date is True
        assert config.amount_format == "comma-dot"

    def test_env_vault(self, monkeypatch):
        """HLNOTES_VAULT_PATH sets the vault when no flag is given."""
        monkeypatch.setenv("HLNOTES_VAULT_PATH", "/env/vault")
        assert load_config().vault_path == Path("/env/vault")


class TestLoadConfigFile:
    """Tests for loading config from TOML file."""

    def test_no_config_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        result = load_config_file()
        assert result == {}

    def test_valid_config_file(self, monkeypatch, tmp_path):
        config_dir = tmp_path / "hlnotes"
        config_dir.mkdir()
        config_file = config_dir / "config.toml"
        config_file.write_text(
            'vault = "/path/to/vault"\n'
            "\n"
            "[daily_notes]\n"
            'folder = "Daily"\n'
            'date_format = "YYYY/MM/YYYY-MM-DD"\n'
            "\n"
            "[transactions]\n"
            "line_length = 60\n"
            "include_date = false\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        result = load_config_file()
        assert result["vault"] == "/path/to/vault"
        assert result["daily_notes"]["folder"] == "Daily"
        assert result["daily_notes"]["date_format"] == "YYYY/MM/YYYY-MM-DD"
        assert result["transactions"]["line_length"] == 60
        assert result["transactions"]["include_date"] is False

    def test_invalid_toml_file(self, monkeypatch, tmp_path, capsys):
        config_dir = tmp_path / "hlnotes"
        config_dir.mkdir()
        config_file = config_dir / "config.toml"
        config_file.write_text("this is [not valid toml")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        result = load_config_file()
        assert result == {}
        err = capsys.readouterr().err
        assert "Warning" in err


class TestLoadConfigFromFile:
    """Test that load_config picks up values from a TOML file."""

    def test_full_config_from_file(self, monkeypatch, tmp_path):
        config_dir = tmp_path / "hlnotes"
        config_dir.mkdir()
        config_file = config_dir / "config.toml"
        config_file.write_text(
            'vault = "/file/vault"\n'
            "\n"
            "[daily_notes]\n"
            'folder = "Daily"\n'
            'date_format = "DD.MM.YYYY"\n'
            'header = "## Money"\n'
            "\n"
            "[journal]\n"
            'folder = "Finance"\n'
            'date_format = "YYYY/MM/DD"\n'
            'accounts_file = "chart.journal"\n'
            "\n"
            "[transactions]\n"
            'currencies = [" € ", "CHF"]\n'
            "include_date = false\n"
            "line_length = 72\n"
            'amount_format = "dot-comma"\n'
            'currency_placement = "append"\n'
            "currency_spacing = false\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        config = load_config()
        assert config.vault_path == Path("/file/vault")
        assert config.daily_notes_folder == "Daily"
        assert config.daily_notes_date_format == "DD.MM.YYYY"
        assert config.transaction_header == "## Money"
        assert config.journal_folder == "Finance"
        assert config.journal_date_format == "YYYY/MM/DD"
        assert config.accounts_file == "chart.journal"
        assert config.currencies == ["€", "CHF"]
        assert config.include_date is False
        assert config.line_length == 72
        assert config.amount_format == "dot-comma"
        assert config.currency_placement == "append"
        assert config.currency_spacing is False

    def test_env_overrides_file(self, monkeypatch, tmp_path):
        config_dir = tmp_path / "hlnotes"
        config_dir.mkdir()
        (config_dir / "config.toml").write_text('vault = "/file/vault"\n')
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        monkeypatch.setenv("HLNOTES_VAULT_PATH", "/env/vault")
        assert load_config().vault_path == Path("/env/vault")

    def test_cli_overrides_file(self, monkeypatch, tmp_path):
        config_dir = tmp_path / "hlnotes"
        config_dir.mkdir()
        config_file = config_dir / "config.toml"
        config_file.write_text(
            'vault = "/file/vault"\n' '[journal]\nfolder = "Finance"\n'
        )
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        config = load_config(
            vault_path="/cli/vault",
            journal_folder="Ledger",
        )
        assert config.vault_path == Path("/cli/vault")
        assert config.journal_folder == "Ledger"

    def test_wrong_types_ignored(self, monkeypatch, tmp_path, capsys):
        """Values of the wrong TOML type keep the default, with a warning."""
        config_dir = tmp_path / "hlnotes"
        config_dir.mkdir()
        (config_dir / "config.toml").write_text(
            "vault = 5\n"
            "[daily_notes]\n"
            "folder = 3\n"
            "[transactions]\n"
            'line_length = "80"\n'
            'include_date = "false"\n'
            "currency_spacing = 1\n"
            "currencies = [1, 2]\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        config = load_config()
        assert config.vault_path is None
        assert config.daily_notes_folder == ""
        assert config.line_length == 80
        assert config.include_date is True
        assert config.currency_spacing is True
        assert config.currencies == ["$", "€", "£", "¥", "₹"]
        config.format_config()

        err = capsys.readouterr().err
        assert "transactions.line_length: expected int, got '80'" in err
        assert "transactions.include_date: expected bool" in err
        assert "daily_notes.folder: expected str" in err
        assert "transactions.currencies" in err

    def test_bool_is_not_an_int(self, monkeypatch, tmp_path, capsys):
        """line_length = true is rejected rather than read as 1."""
        config_dir = tmp_path / "hlnotes"
        config_dir.mkdir()
        (config_dir / "config.toml").write_text(
            "[transactions]\nline_length = true\n", encoding="utf-8"
        )
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert load_config().line_length == 80
        assert "line_length" in capsys.readouterr().err

    def test_section_not_a_table(self, monkeypatch, tmp_path, capsys):
        """A section given as a plain value is ignored."""
        config_dir = tmp_path / "hlnotes"
        config_dir.mkdir()
        (config_dir / "config.toml").write_text(
            'journal = "Finance"\n', encoding="utf-8"
        )
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert load_config().journal_folder == ""
        err = capsys.readouterr().err
        assert err.count("Warning") == 1
        assert "journal: expected table" in err

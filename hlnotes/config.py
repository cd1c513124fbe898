"""
Configuration management for hlnotes.

Handles loading configuration from multiple sources with precedence:
1. Command-line arguments (highest)
2. Environment variables (HLNOTES_VAULT_PATH)
3. XDG config file (~/.config/hlnotes/config.toml)
4. Built-in defaults (lowest)
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from hlnotes.amounts import FormatConfig
from hlnotes.formatter import TransactionSettings

# Use tomli for Python < 3.11, tomllib for 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


def get_xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME or default ~/.config"""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


DEFAULT_DATE_FORMAT = "YYYY-MM-DD"
DEFAULT_TRANSACTION_HEADER = "## Transactions"
DEFAULT_CURRENCIES = ["$", "€", "£", "¥", "₹"]
DEFAULT_LINE_LENGTH = 80
DEFAULT_ACCOUNTS_FILE = "accounts.md"


class MissingConfigurationError(Exception):
    """Raised when required folder or format settings are absent."""

    pass


@dataclass
class Config:
    """Configuration container for hlnotes."""

    vault_path: Optional[Path] = None

    # Daily notes
    daily_notes_folder: str = ""
    daily_notes_date_format: str = DEFAULT_DATE_FORMAT
    transaction_header: str = DEFAULT_TRANSACTION_HEADER

    # Journal files
    journal_folder: str = ""
    journal_date_format: str = DEFAULT_DATE_FORMAT
    accounts_file: str = DEFAULT_ACCOUNTS_FILE

    # Transaction formatting
    currencies: list[str] = field(
        default_factory=lambda: list(DEFAULT_CURRENCIES)
    )
    include_date: bool = True
    line_length: int = DEFAULT_LINE_LENGTH
    amount_format: str = "comma-dot"
    currency_placement: str = "prepend"
    currency_spacing: bool = True

    def resolve_vault_path(self) -> Optional[Path]:
        """
        Resolve the vault path using precedence rules.

        Returns the first valid path from:
        1. self.vault_path (set from CLI --vault or config file)
        2. HLNOTES_VAULT_PATH environment variable

        Returns None if no vault is configured.
        """
        if self.vault_path is not None:
            return Path(self.vault_path).expanduser().resolve()

        default_path = os.environ.get("HLNOTES_VAULT_PATH")
        if default_path:
            return Path(default_path).expanduser().resolve()

        return None

    def format_config(self) -> FormatConfig:
        """Amount rendering settings as an immutable value."""
        return FormatConfig(
            number_format=self.amount_format,
            currency_spacing=self.currency_spacing,
            currency_placement=self.currency_placement,
            line_length=self.line_length,
        )

    def transaction_settings(self) -> TransactionSettings:
        return TransactionSettings(
            include_date=self.include_date,
            journal_date_format=self.journal_date_format,
        )

    def default_currency(self) -> str:
        return self.currencies[0] if self.currencies else "$"

    def require_daily_notes(self) -> None:
        """Raise MissingConfigurationError unless daily notes are set up."""
        if not self.daily_notes_folder:
            raise MissingConfigurationError(
                "Please set a daily notes folder in settings"
            )
        if not self.daily_notes_date_format:
            raise MissingConfigurationError(
                "Please set a daily notes date format in settings"
            )

    def require_folders(self) -> None:
        """
        Raise MissingConfigurationError unless export/import can run.

        Both folders and both date formats must be set.
        """
        if not self.daily_notes_folder or not self.journal_folder:
            raise MissingConfigurationError(
                "Please set both daily notes and journal folders in settings"
            )
        if not self.journal_date_format or not self.daily_notes_date_format:
            raise MissingConfigurationError(
                "Please set both journal and daily notes date formats "
                "in settings"
            )


def load_config_file() -> dict:
    """
    Load configuration from XDG config file.

    Returns an empty dict if the file doesn't exist.
    """
    config_file = get_xdg_config_home() / "hlnotes" / "config.toml"
    if not config_file.exists():
        return {}

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        # Log warning but don't fail
        print(
            f"Warning: Could not load config file {config_file}: {e}",
            file=sys.stderr,
        )
        return {}


# (table, key, Config attribute, TOML type)
_FILE_SETTINGS = (
    ("daily_notes", "folder", "daily_notes_folder", str),
    ("daily_notes", "date_format", "daily_notes_date_format", str),
    ("daily_notes", "header", "transaction_header", str),
    ("journal", "folder", "journal_folder", str),
    ("journal", "date_format", "journal_date_format", str),
    ("journal", "accounts_file", "accounts_file", str),
    ("transactions", "include_date", "include_date", bool),
    ("transactions", "line_length", "line_length", int),
    ("transactions", "amount_format", "amount_format", str),
    ("transactions", "currency_placement", "currency_placement", str),
    ("transactions", "currency_spacing", "currency_spacing", bool),
)


def _warn_setting(name: str, expected: str, value) -> None:
    print(
        f"Warning: Ignoring config value {name}: expected {expected}, "
        f"got {value!r}",
        file=sys.stderr,
    )


def _checked(table: dict, key: str, expected: type, section: str = ""):
    """Return table[key] if it has the expected TOML type, else None."""
    value = table[key]
    # bool is an int subclass; TOML values have exact types
    if type(value) is expected:
        return value
    name = f"{section}.{key}" if section else key
    _warn_setting(name, expected.__name__, value)
    return None


def load_config(
    vault_path: Optional[str] = None,
    daily_notes_folder: Optional[str] = None,
    journal_folder: Optional[str] = None,
    include_date: Optional[bool] = None,
    line_length: Optional[int] = None,
    amount_format: Optional[str] = None,
) -> Config:
    """
    Load configuration with CLI overrides.

    CLI arguments take precedence over environment variables,
    which take precedence over config file values.
    """
    file_config = load_config_file()

    # Start with defaults
    config = Config()

    # Apply config file values
    if "vault" in file_config:
        vault = _checked(file_config, "vault", str)
        if vault is not None:
            config.vault_path = Path(vault)

    tables = {}
    for section in ("daily_notes", "journal", "transactions"):
        table = file_config.get(section, {})
        if not isinstance(table, dict):
            _warn_setting(section, "table", table)
            table = {}
        tables[section] = table

    for section, key, attr, expected in _FILE_SETTINGS:
        if key in tables[section]:
            value = _checked(tables[section], key, expected, section)
            if value is not None:
                setattr(config, attr, value)

    tx_config = tables["transactions"]
    if "currencies" in tx_config:
        values = _checked(tx_config, "currencies", list, "transactions")
        if values is not None and all(isinstance(c, str) for c in values):
            config.currencies = [c.strip() for c in values]
        elif values is not None:
            _warn_setting("transactions.currencies", "list of str", values)

    # Apply env var (overrides config file, but CLI overrides env var)
    env_vault = os.environ.get("HLNOTES_VAULT_PATH")
    if env_vault:
        config.vault_path = Path(env_vault)

    # Apply CLI overrides (highest precedence)
    if vault_path is not None:
        config.vault_path = Path(vault_path)
    if daily_notes_folder is not None:
        config.daily_notes_folder = daily_notes_folder
    if journal_folder is not None:
        config.journal_folder = journal_folder
    if include_date is not None:
        config.include_date = include_date
    if line_length is not None:
        config.line_length = line_length
    if amount_format is not None:
        config.amount_format = amount_format

    return config

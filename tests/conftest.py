"""Pytest fixtures for hlnotes tests."""

import pytest

from hlnotes.config import Config
from hlnotes.storage import Vault

NOTE_2024_01_15 = """# Monday

Some thoughts.

## Transactions

```hledger
Lunch
Expenses:Food                                                      $ 12.50
Assets:Cash                                                       $ -12.50

Groceries
Expenses:Groceries                                                 $ 40.00
Assets:Bank                                                       $ -40.00
```
"""

NOTE_2024_01_20 = """## Transactions

```hledger
2024-01-20 Rent
    Expenses:Rent                                              $ 1,000.00
    Assets:Bank                                               $ -1,000.00
```
"""

NOTE_2024_02_01 = """## Transactions

```hledger
Coffee
Expenses:Food                                                       $ 3.00
Assets:Cash                                                        $ -3.00
```
"""

ACCOUNTS = """; chart of accounts
account Assets:Bank
account Assets:Cash  ; wallet
account Expenses:Food
account Expenses:Groceries
account Expenses:Rent
"""


@pytest.fixture
def vault_dir(tmp_path):
    """
    Create a small vault on disk.

    Contains three daily notes (two in January 2024, one in February),
    a note without a transaction fence, a non-Markdown file and an
    accounts file in the journal folder.
    """
    notes = tmp_path / "Daily"
    notes.mkdir()
    (notes / "2024-01-15.md").write_text(NOTE_2024_01_15, encoding="utf-8")
    (notes / "2024-01-20.md").write_text(NOTE_2024_01_20, encoding="utf-8")
    (notes / "2024-02-01.md").write_text(NOTE_2024_02_01, encoding="utf-8")
    (notes / "2024-01-16.md").write_text("Just a note.\n", encoding="utf-8")
    (notes / "image.png").write_bytes(b"\x89PNG")

    journals = tmp_path / "Finance"
    journals.mkdir()
    (journals / "accounts.md").write_text(ACCOUNTS, encoding="utf-8")

    return tmp_path


@pytest.fixture
def vault(vault_dir):
    """A Vault rooted at the populated vault directory."""
    return Vault(vault_dir)


@pytest.fixture
def config(vault_dir):
    """Config pointing at the populated vault, without dates in notes."""
    return Config(
        vault_path=vault_dir,
        daily_notes_folder="Daily",
        journal_folder="Finance",
        include_date=False,
    )


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path_factory, monkeypatch):
    """Keep tests away from the user's config file and vault variable."""
    config_home = tmp_path_factory.mktemp("xdg")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.delenv("HLNOTES_VAULT_PATH", raising=False)
    return config_home

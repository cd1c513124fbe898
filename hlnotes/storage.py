"""
Vault access layer for hlnotes.

A vault is a directory of Markdown notes and journal files. Paths passed
to and returned from Vault are relative to the vault root and use
forward slashes.
"""

from pathlib import Path, PurePosixPath


class StorageError(Exception):
    """Raised when a vault file cannot be read or written."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


def normalize_path(path: str) -> str:
    """Use forward slashes and collapse duplicate separators."""
    normalized = path.replace("\\", "/")
    while "//" in normalized:
        normalized = normalized.replace("//", "/")
    return normalized.strip("/")


class Vault:
    """Read/write access to files below a root directory."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()

    def _full_path(self, path: str) -> Path:
        full = (self.root / normalize_path(path)).resolve()
        if full != self.root and self.root not in full.parents:
            raise StorageError(path, "path escapes the vault")
        return full

    def exists(self, path: str) -> bool:
        return self._full_path(path).exists()

    def read(self, path: str) -> str:
        """Return the UTF-8 text of a file."""
        try:
            return self._full_path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(path, str(e)) from e

    def write(self, path: str, content: str) -> None:
        """Write a file, creating parent folders as needed."""
        full = self._full_path(path)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            full.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StorageError(path, str(e)) from e

    def list_files(self, folder: str) -> list[str]:
        """
        List all files below ``folder``, recursively.

        Returns vault-relative paths in sorted order.

        Raises:
            StorageError: if the folder does not exist or is unreadable
        """
        base = self._full_path(folder)
        if not base.is_dir():
            raise StorageError(folder, "not a folder")
        try:
            files = [p for p in base.rglob("*") if p.is_file()]
        except OSError as e:
            raise StorageError(folder, str(e)) from e
        return sorted(
            str(PurePosixPath(*p.relative_to(self.root).parts)) for p in files
        )

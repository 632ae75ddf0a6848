"""Directory-backed vault: resolves vault-relative paths and reads documents.

Vault paths are always ``/``-separated and relative to the vault root,
whatever the host platform, so they can be compared against the tracking
folder setting and stored in the state file unchanged.
"""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePosixPath

from writepulse.core.defaults import DOCUMENT_SUFFIX


class FileSystemVault:
    """File content provider over a directory tree.

    Args:
        root: Vault root directory.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        """Map a vault-relative path onto the filesystem.

        Raises:
            ValueError: If *path* is absolute or escapes the vault root.
        """
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"Path {path!r} is not inside the vault")
        return self._root.joinpath(*rel.parts)

    def relative(self, fs_path: Path) -> str:
        """Vault-relative ``/``-separated form of a filesystem path."""
        return fs_path.relative_to(self._root).as_posix()

    async def read_text(self, path: str) -> str:
        """Read a document's full text without blocking the event loop.

        Raises:
            FileNotFoundError: If the document does not exist.
            OSError: On any other read failure.
        """
        return await asyncio.to_thread(self.resolve(path).read_text, "utf-8")

    def folder_exists(self, folder: str) -> bool:
        """True if *folder* names an existing directory (``""`` is the root)."""
        return self.resolve(folder).is_dir() if folder else self._root.is_dir()

    def list_documents(self, folder: str, suffix: str = DOCUMENT_SUFFIX) -> list[str]:
        """Vault-relative paths of every *suffix* file under *folder*, sorted."""
        base = self.resolve(folder) if folder else self._root
        if not base.is_dir():
            return []
        return sorted(self.relative(p) for p in base.rglob(f"*{suffix}") if p.is_file())

"""Bookmark service: the operations the browser UI calls."""
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from tinymarks.config import DEFAULT_IMPORT_PREFIX
from tinymarks.legacy_import import (
    LegacyBookmarkParser,
    LegacyImportError,
    decode_export,
    read_export_file,
)
from tinymarks.models import (
    Bookmark,
    BookmarksRoot,
    Folder,
    add_child,
    count_leaves,
    remove_child,
)
from tinymarks.store import get_default_store_path, load_root, save_root


logger = logging.getLogger(__name__)


def default_seed_bookmarks() -> List[Bookmark]:
    """Build the bookmarks installed on first run and after a reset."""
    return [
        Bookmark(name="Google", url="https://www.google.com", tags=["search"]),
        Bookmark(name="GitHub", url="https://github.com", tags=["development"]),
        Bookmark(name="Stack Overflow", url="https://stackoverflow.com", tags=["development", "help"]),
    ]


class BookmarkService:
    """Owns the bookmark tree and keeps it persisted.

    Not thread-safe: the tree is mutated in place and saved synchronously,
    so a service shared between threads must be guarded by the caller.
    """

    def __init__(
        self,
        root: BookmarksRoot,
        store_path: Path,
        import_folder_prefix: str = DEFAULT_IMPORT_PREFIX,
    ):
        """Wrap an already loaded tree.

        Args:
            root: Bookmark tree to manage
            store_path: File the tree is saved to
            import_folder_prefix: Name prefix for folders created by imports
        """
        self._root = root
        self.store_path = store_path
        self.import_folder_prefix = import_folder_prefix
        self.last_save_error: Optional[Exception] = None
        self._parser = LegacyBookmarkParser()

    @classmethod
    def open(
        cls,
        store_path: Optional[Path] = None,
        import_folder_prefix: str = DEFAULT_IMPORT_PREFIX,
    ) -> "BookmarkService":
        """Load the store, bootstrapping it on first use.

        A missing store is seeded with the default bookmarks and written
        once. A corrupt store is replaced with an empty default tree.

        Args:
            store_path: Store file. Defaults to the platform location.
            import_folder_prefix: Name prefix for folders created by imports

        Returns:
            Ready-to-use service
        """
        if store_path is None:
            store_path = get_default_store_path()

        is_new = not store_path.exists()
        root = load_root(store_path) or BookmarksRoot()
        service = cls(root, store_path, import_folder_prefix)

        if is_new:
            logger.info("No bookmarks store at %s, creating one", store_path)
            service._add_default_bookmarks()
            service.save()

        return service

    @property
    def root(self) -> BookmarksRoot:
        """The current bookmark tree (read access for rendering)."""
        return self._root

    def _add_default_bookmarks(self) -> None:
        for bookmark in default_seed_bookmarks():
            add_child(self._root.bookmark_bar, bookmark)

    def save(self) -> bool:
        """Write the tree to the store.

        Write failures are logged and reported, never raised.

        Returns:
            True if the store was written
        """
        try:
            save_root(self._root, self.store_path)
        except (OSError, ValueError, RecursionError) as e:
            logger.error("Failed to save bookmarks to %s: %s", self.store_path, e)
            self.last_save_error = e
            return False

        self.last_save_error = None
        return True

    def add_bookmark_to_bar(
        self,
        name: str,
        url: str,
        tags: Optional[List[str]] = None,
        description: Optional[str] = None,
    ) -> Bookmark:
        """Add a new bookmark at the end of the bookmarks bar.

        Args:
            name: Display name
            url: Bookmark URL (not validated)
            tags: Optional tags
            description: Optional description

        Returns:
            The created bookmark
        """
        bookmark = Bookmark(name=name, url=url, tags=tags or [], description=description)
        add_child(self._root.bookmark_bar, bookmark)
        self.save()
        return bookmark

    def import_legacy(self, source: Union[str, bytes]) -> int:
        """Import a legacy bookmark export into a new bar folder.

        Everything imported is placed in one folder named after the import
        time, appended to the bookmarks bar.

        Args:
            source: Export text, or raw bytes to decode as UTF-8

        Returns:
            Number of bookmarks imported

        Raises:
            LegacyImportError: If bytes cannot be decoded as text, or the
                imported tree cannot be encoded for the store (the import
                is rolled back)
        """
        text = decode_export(source) if isinstance(source, bytes) else source
        imported = self._parser.parse(text)

        stamp = datetime.now().strftime("%Y-%m-%d %H:%M")
        import_folder = Folder(f"{self.import_folder_prefix} - {stamp}")

        import_count = 0
        for node in imported:
            add_child(import_folder, node)
            import_count += count_leaves(node)

        add_child(self._root.bookmark_bar, import_folder)
        if not self.save() and not isinstance(self.last_save_error, OSError):
            # The imported tree cannot be encoded; keeping it would block every later save
            error = self.last_save_error
            remove_child(self._root.bookmark_bar, import_folder.id)
            self.save()
            raise LegacyImportError(f"Imported bookmarks could not be stored: {error}") from error

        logger.info("Imported %d bookmarks into '%s'", import_count, import_folder.name)
        return import_count

    def import_legacy_file(self, path: Union[str, Path]) -> int:
        """Import a legacy bookmark export file.

        Raises:
            LegacyImportError: If the file is missing, unreadable or not text
        """
        return self.import_legacy(read_export_file(path))

    def delete_all(self) -> None:
        """Remove every bookmark and folder, then restore the defaults."""
        self._root.bookmark_bar.children.clear()
        self._root.other_bookmarks.children.clear()

        self._add_default_bookmarks()
        self.save()

        logger.info("All bookmarks deleted and reset to defaults")

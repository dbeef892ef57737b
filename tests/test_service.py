"""Tests for the bookmark service facade."""
import json

import pytest

from tinymarks.legacy_import import LegacyBookmarkParser, LegacyImportError
from tinymarks.models import Bookmark, Folder, iter_nodes
from tinymarks.service import BookmarkService, default_seed_bookmarks
from tinymarks.store import load_root


def _names_urls(folder):
    return [(c.name, c.url) for c in folder.children]


class TestBootstrap:
    def test_first_use_seeds_and_saves(self, store_path, seed_bookmarks):
        assert not store_path.exists()
        service = BookmarkService.open(store_path)
        assert store_path.exists()
        assert _names_urls(service.root.bookmark_bar) == seed_bookmarks
        assert service.root.other_bookmarks.children == []

    def test_existing_store_is_loaded(self, store_path):
        first = BookmarkService.open(store_path)
        bookmark = first.add_bookmark_to_bar("Python", "https://python.org")

        second = BookmarkService.open(store_path)
        assert second.root.bookmark_bar.children[-1].id == bookmark.id
        assert len(second.root.bookmark_bar.children) == 4

    def test_corrupt_store_replaced_without_seeding(self, store_path):
        store_path.parent.mkdir(parents=True)
        store_path.write_text("{not json")
        service = BookmarkService.open(store_path)
        assert service.root.bookmark_bar.children == []
        # Untouched until the next save
        assert store_path.read_text() == "{not json"

    def test_seed_set_contents(self):
        seeds = default_seed_bookmarks()
        assert [b.tags for b in seeds] == [["search"], ["development"], ["development", "help"]]


class TestAddBookmarkToBar:
    def test_appends_and_persists(self, service, store_path):
        bookmark = service.add_bookmark_to_bar("Python", "https://python.org", tags=["lang"])
        assert service.root.bookmark_bar.children[-1] is bookmark
        assert bookmark.tags == ["lang"]

        loaded = load_root(store_path)
        assert loaded.bookmark_bar.children[-1].url == "https://python.org"

    def test_duplicates_allowed(self, service):
        service.add_bookmark_to_bar("Python", "https://python.org")
        service.add_bookmark_to_bar("Python", "https://python.org")
        urls = [c.url for c in service.root.bookmark_bar.children]
        assert urls.count("https://python.org") == 2

    def test_write_failure_is_reported(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        service = BookmarkService.open(blocker / "bookmarks.json")

        assert service.last_save_error is not None
        bookmark = service.add_bookmark_to_bar("Python", "https://python.org")
        assert bookmark in service.root.bookmark_bar.children
        assert isinstance(service.last_save_error, OSError)
        assert service.save() is False


class TestImportLegacy:
    def test_import_text(self, service, sample_export, sample_export_count):
        before = len(service.root.bookmark_bar.children)
        count = service.import_legacy(sample_export)

        assert count == sample_export_count
        assert len(service.root.bookmark_bar.children) == before + 1

        import_folder = service.root.bookmark_bar.children[-1]
        assert isinstance(import_folder, Folder)
        assert import_folder.name.startswith("Imported Bookmarks - ")
        assert [c.name for c in import_folder.children] == ["Favorites", "Intranet"]

    def test_import_bytes(self, service, sample_export, sample_export_count):
        assert service.import_legacy(sample_export.encode("utf-8")) == sample_export_count

    def test_import_undecodable_bytes(self, service):
        before = len(service.root.bookmark_bar.children)
        with pytest.raises(LegacyImportError):
            service.import_legacy(b"\xff\xfe\xfa")
        assert len(service.root.bookmark_bar.children) == before

    def test_import_file(self, service, sample_export_path, sample_export_count):
        assert service.import_legacy_file(sample_export_path) == sample_export_count

    def test_import_missing_file(self, service, tmp_path):
        with pytest.raises(LegacyImportError):
            service.import_legacy_file(tmp_path / "missing.html")

    def test_import_persists(self, service, store_path, sample_export):
        service.import_legacy(sample_export)
        loaded = load_root(store_path)
        assert loaded.bookmark_bar.children[-1].name == service.root.bookmark_bar.children[-1].name

    def test_empty_import_adds_empty_folder(self, service):
        before = len(service.root.bookmark_bar.children)
        assert service.import_legacy("no bookmarks here") == 0
        assert len(service.root.bookmark_bar.children) == before + 1
        assert service.root.bookmark_bar.children[-1].children == []

    def test_custom_prefix(self, store_path, sample_export):
        service = BookmarkService.open(store_path, import_folder_prefix="Safari Import")
        service.import_legacy(sample_export)
        assert service.root.bookmark_bar.children[-1].name.startswith("Safari Import - ")

    def test_ids_unique_after_repeated_imports(self, service, sample_export):
        service.import_legacy(sample_export)
        service.import_legacy(sample_export)
        ids = [n.id for n in iter_nodes(service.root.bookmark_bar)]
        assert len(ids) == len(set(ids))

    def test_deeply_nested_import_is_persisted(self, service, store_path):
        depth = 1500
        text = "<H3>F</H3>\n" * depth + '<A HREF="https://x.com">X</A>\n' + "</DL>\n" * depth

        assert service.import_legacy(text) == 1
        assert service.last_save_error is None

        loaded = load_root(store_path)
        assert loaded is not None
        assert loaded.bookmark_bar.children[-1].name == service.root.bookmark_bar.children[-1].name
        assert any(isinstance(n, Bookmark) and n.url == "https://x.com" for n in iter_nodes(loaded.bookmark_bar))

        service.add_bookmark_to_bar("After", "https://after.example.com")
        assert load_root(store_path).bookmark_bar.children[-1].name == "After"

    def test_unstorable_import_is_rolled_back(self, service, store_path):
        service._parser = LegacyBookmarkParser(max_depth=10000)
        before = [c.id for c in service.root.bookmark_bar.children]
        depth = 1500
        text = "<H3>F</H3>\n" * depth + '<A HREF="https://x.com">X</A>\n'

        with pytest.raises(LegacyImportError, match="could not be stored"):
            service.import_legacy(text)

        assert [c.id for c in service.root.bookmark_bar.children] == before
        assert service.last_save_error is None
        service.add_bookmark_to_bar("After", "https://after.example.com")
        assert load_root(store_path).bookmark_bar.children[-1].name == "After"


class TestDeleteAll:
    def test_resets_to_seed(self, service, store_path, sample_export, seed_bookmarks):
        service.import_legacy(sample_export)
        service.root.other_bookmarks.children.append(default_seed_bookmarks()[0])

        service.delete_all()

        assert _names_urls(service.root.bookmark_bar) == seed_bookmarks
        assert service.root.other_bookmarks.children == []

        data = json.loads(store_path.read_text(encoding="utf-8"))
        assert len(data["bookmarkBar"]["children"]) == len(seed_bookmarks)
        assert data["otherBookmarks"]["children"] == []

    def test_new_ids_after_reset(self, service):
        old_ids = {c.id for c in service.root.bookmark_bar.children}
        service.delete_all()
        new_ids = {c.id for c in service.root.bookmark_bar.children}
        assert old_ids.isdisjoint(new_ids)


class TestSave:
    def test_save_stamps_root(self, service):
        service.root.date_modified = service.root.date_modified.replace(year=2000)
        assert service.save() is True
        assert service.root.date_modified.year != 2000
        assert service.last_save_error is None

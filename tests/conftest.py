"""Shared fixtures for tests."""
import pytest

from tinymarks.service import BookmarkService


SAMPLE_EXPORT = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<HTML>
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<Title>Bookmarks</Title>
<H1>Bookmarks</H1>
<DL><p>
    <DT><H3 FOLDED>Favorites</H3>
    <DL><p>
        <DT><A HREF="https://www.python.org/">Python</A>
        <DT><H3>Tools</H3>
        <DL><p>
            <DT><A HREF="https://github.com/">GitHub</A>
            <DT><A HREF="javascript:void(0)">Bookmarklet</A>
        </DL><p>
        <DT><A HREF="https://docs.python.org/3/">Docs</A>
    </DL><p>
    <DT><A href="/intranet/home.html">Intranet</A>
    <DT><A HREF="">Empty</A>
</DL><p>
</HTML>
"""

# Python, GitHub, Docs, Intranet (Bookmarklet and Empty are skipped)
SAMPLE_EXPORT_COUNT = 4

SEED_BOOKMARKS = [
    ("Google", "https://www.google.com"),
    ("GitHub", "https://github.com"),
    ("Stack Overflow", "https://stackoverflow.com"),
]


@pytest.fixture
def store_path(tmp_path):
    """Return path for a temporary bookmarks store (not yet created)."""
    return tmp_path / "TinyBrowser" / "bookmarks.json"


@pytest.fixture
def service(store_path):
    """A service bootstrapped on a fresh temporary store."""
    return BookmarkService.open(store_path)


@pytest.fixture
def sample_export_path(tmp_path):
    """Create a temporary legacy export file."""
    export_file = tmp_path / "Bookmarks.html"
    export_file.write_text(SAMPLE_EXPORT, encoding="utf-8")
    return export_file


@pytest.fixture
def sample_export():
    """Return the sample export text."""
    return SAMPLE_EXPORT


@pytest.fixture
def sample_export_count():
    """Number of valid bookmarks in the sample export."""
    return SAMPLE_EXPORT_COUNT


@pytest.fixture
def seed_bookmarks():
    """(name, url) pairs of the default bookmarks."""
    return list(SEED_BOOKMARKS)

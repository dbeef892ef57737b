"""Importer for legacy bookmark-export files.

Export files are loosely HTML-shaped: nested definition lists, an ``<H3>``
header for each folder name and one ``<A HREF="...">`` anchor per bookmark,
usually one element per line. Rather than running a markup parser over
them, the text is scanned line by line with an explicit stack of open
folders:

    <DT><H3>Folder</H3>              -> open a folder
    <DL><p>                          -> ignored
        <DT><A HREF="...">Name</A>   -> bookmark in the innermost open folder
    </DL><p>                         -> close the innermost folder

Anything the scanner does not understand is skipped, so malformed or
truncated input degrades to a partial tree instead of failing. Elements
split across lines are not recognized.
"""
import logging
import re
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from tinymarks.models import Bookmark, Folder, Node, add_child


logger = logging.getLogger(__name__)

UNTITLED_FOLDER = "Untitled Folder"

# Deeper folders are flattened into the deepest open one so the tree stays
# within what the JSON store can encode.
MAX_FOLDER_DEPTH = 100

_FOLDER_OPEN_RE = re.compile(r"<H3[\s>]", re.IGNORECASE)
_FOLDER_END_RE = re.compile(r"</H3>", re.IGNORECASE)
_ANCHOR_OPEN_RE = re.compile(r"<A\s+HREF=", re.IGNORECASE)
_ANCHOR_END_RE = re.compile(r"</A>", re.IGNORECASE)
_LIST_END_RE = re.compile(r"</DL>", re.IGNORECASE)
_HREF_RE = re.compile(r'HREF="([^"]*)"', re.IGNORECASE)


class LegacyImportError(Exception):
    """Raised when an export cannot be read or decoded as text."""
    pass


class LineKind(Enum):
    """Classification of a single export line."""
    FOLDER_OPEN = "folder_open"
    BOOKMARK = "bookmark"
    FOLDER_CLOSE = "folder_close"
    IGNORED = "ignored"


def classify_line(line: str) -> LineKind:
    """Classify a trimmed export line.

    Folder headers win over anchors, anchors win over list ends.
    """
    if _FOLDER_OPEN_RE.search(line) and _FOLDER_END_RE.search(line):
        return LineKind.FOLDER_OPEN
    if _ANCHOR_OPEN_RE.search(line) and _ANCHOR_END_RE.search(line):
        return LineKind.BOOKMARK
    if _LIST_END_RE.search(line):
        return LineKind.FOLDER_CLOSE
    return LineKind.IGNORED


def extract_text(line: str, tag: str) -> Optional[str]:
    """Extract the text content of the first ``<tag ...>text</tag>`` on a line.

    Args:
        line: A single export line
        tag: Tag name, e.g. "H3" or "A"

    Returns:
        Stripped text between the opening tag's ``>`` and the closing tag,
        or None if the line does not contain the element
    """
    open_match = re.search(rf"<{tag}(?=[\s>])", line, re.IGNORECASE)
    if not open_match:
        return None

    bracket = line.find(">", open_match.end())
    if bracket == -1:
        return None

    close_match = re.compile(rf"</{tag}>", re.IGNORECASE).search(line, bracket + 1)
    if not close_match:
        return None

    return line[bracket + 1:close_match.start()].strip()


def is_valid_href(url: str) -> bool:
    """Check that an href is absolute (has a scheme) or a relative path."""
    if not url:
        return False
    return "://" in url or url.startswith("/") or url.startswith("./")


def extract_href(line: str) -> Optional[str]:
    """Extract the href attribute value from a line.

    Returns:
        The URL, or None if there is no quoted href or it fails validation
    """
    match = _HREF_RE.search(line)
    if not match:
        return None

    url = match.group(1)
    if not is_valid_href(url):
        return None
    return url


class LegacyBookmarkParser:
    """Line scanner that rebuilds a bookmark forest from an export."""

    def __init__(self, max_depth: int = MAX_FOLDER_DEPTH):
        self.max_depth = max_depth

    def parse(self, text: str) -> List[Node]:
        """Parse export text into top-level nodes.

        Never raises for malformed markup; unrecognized or invalid lines are
        skipped and unclosed folders are closed at end of input. Folders
        nested deeper than max_depth are merged into their deepest allowed
        ancestor.

        Args:
            text: Full export text

        Returns:
            Top-level bookmarks and folders in document order
        """
        nodes: List[Node] = []
        folder_stack: List[Folder] = []
        folder_count = 0
        bookmark_count = 0
        skipped = 0
        # Opens past max_depth whose close markers have not been seen yet
        flattened = 0

        def close_folder() -> None:
            completed = folder_stack.pop()
            if folder_stack:
                add_child(folder_stack[-1], completed)
            else:
                nodes.append(completed)

        for raw_line in text.splitlines():
            line = raw_line.strip()
            kind = classify_line(line)

            if kind is LineKind.FOLDER_OPEN:
                if len(folder_stack) >= self.max_depth:
                    flattened += 1
                    continue

                name = extract_text(line, "H3")
                folder_stack.append(Folder(name if name is not None else UNTITLED_FOLDER))
                folder_count += 1

            elif kind is LineKind.BOOKMARK:
                url = extract_href(line)
                name = extract_text(line, "A")
                if url is None or name is None:
                    logger.debug("Skipping bookmark line: %s", line)
                    skipped += 1
                    continue

                bookmark = Bookmark(name=name, url=url)
                if folder_stack:
                    add_child(folder_stack[-1], bookmark)
                else:
                    nodes.append(bookmark)
                bookmark_count += 1

            elif kind is LineKind.FOLDER_CLOSE:
                if flattened:
                    flattened -= 1
                elif folder_stack:
                    close_folder()

        # Close any folders left open by truncated input
        while folder_stack:
            close_folder()

        logger.info(
            "Parsed legacy export: %d folders, %d bookmarks, %d skipped",
            folder_count, bookmark_count, skipped,
        )
        return nodes


def decode_export(data: bytes) -> str:
    """Decode raw export bytes as UTF-8 text.

    Raises:
        LegacyImportError: If the data is not valid UTF-8
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise LegacyImportError(f"Bookmark export is not valid UTF-8 text: {e}") from e


def read_export_file(path: Union[str, Path]) -> str:
    """Read a bookmark export file as text.

    Args:
        path: Path to the export file

    Returns:
        Decoded file content

    Raises:
        LegacyImportError: If the file is missing, unreadable or not text
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise LegacyImportError(f"Could not read bookmark export {path}: {e}") from e

    return decode_export(data)

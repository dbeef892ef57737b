"""JSON persistence for the bookmark tree."""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from tinymarks.models import (
    Bookmark,
    BookmarksRoot,
    Folder,
    Node,
    NodeType,
    assert_never,
    node_type,
    utc_now,
)


logger = logging.getLogger(__name__)

STORE_FILENAME = "bookmarks.json"

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class StoreDecodeError(ValueError):
    """Raised when a stored document does not have the expected shape."""
    pass


def get_default_store_path() -> Path:
    """Get the default location of the bookmarks store.

    Returns:
        Path to bookmarks.json in the platform's application data directory
    """
    home = Path.home()
    if os.name == "nt":  # Windows
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        store_dir = base / "TinyBrowser"
    elif sys.platform == "darwin":  # macOS
        store_dir = home / "Library" / "Application Support" / "TinyBrowser"
    else:
        xdg_data = os.environ.get("XDG_DATA_HOME")
        base = Path(xdg_data) if xdg_data else home / ".local" / "share"
        store_dir = base / "tinybrowser"

    return store_dir / STORE_FILENAME


# ============================================================================
# Encoding
# ============================================================================

def format_timestamp(value: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def _bookmark_to_dict(bookmark: Bookmark) -> Dict[str, Any]:
    return {
        "id": bookmark.id,
        "name": bookmark.name,
        "url": bookmark.url,
        "dateAdded": format_timestamp(bookmark.date_added),
        "dateModified": format_timestamp(bookmark.date_modified),
        "tags": list(bookmark.tags),
        "description": bookmark.description,
        "favicon": bookmark.favicon,
        "visitCount": bookmark.visit_count,
    }


def _folder_to_dict(folder: Folder) -> Dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "dateAdded": format_timestamp(folder.date_added),
        "dateModified": format_timestamp(folder.date_modified),
        "children": [encode_node(child) for child in folder.children],
    }


def encode_node(node: Node) -> Dict[str, Any]:
    """Encode a node as a {"type", "data"} dict.

    Args:
        node: Bookmark or folder

    Returns:
        JSON-serializable dict
    """
    if isinstance(node, Bookmark):
        data = _bookmark_to_dict(node)
    elif isinstance(node, Folder):
        data = _folder_to_dict(node)
    else:
        assert_never(node)

    return {"type": node_type(node).value, "data": data}


def encode_root(root: BookmarksRoot) -> Dict[str, Any]:
    """Encode the whole tree as a JSON-serializable dict."""
    return {
        "version": root.version,
        "bookmarkBar": _folder_to_dict(root.bookmark_bar),
        "otherBookmarks": _folder_to_dict(root.other_bookmarks),
        "dateModified": format_timestamp(root.date_modified),
    }


def root_to_json(root: BookmarksRoot) -> str:
    """Serialize the tree with stable formatting (sorted keys, indented)."""
    return json.dumps(encode_root(root), sort_keys=True, indent=2, ensure_ascii=False) + "\n"


# ============================================================================
# Decoding
# ============================================================================

def _require(data: Any, key: str, expected: type, nullable: bool = False) -> Any:
    """Fetch a typed field from a decoded JSON object.

    Raises:
        StoreDecodeError: If the field is missing or has the wrong type
    """
    if not isinstance(data, dict):
        raise StoreDecodeError(f"Expected an object, got {type(data).__name__}")
    if key not in data:
        raise StoreDecodeError(f"Missing field: {key}")

    value = data[key]
    if value is None and nullable:
        return None
    # bool is an int subclass, but never a valid count or version
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise StoreDecodeError(f"Field '{key}' should be {expected.__name__}, got {type(value).__name__}")
    return value


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (Z or explicit offset, optional fraction).

    Raises:
        StoreDecodeError: If the value is not a valid timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise StoreDecodeError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _timestamp(data: Dict[str, Any], key: str) -> datetime:
    return parse_timestamp(_require(data, key, str))


def _bookmark_from_dict(data: Dict[str, Any]) -> Bookmark:
    tags = _require(data, "tags", list)
    if not all(isinstance(tag, str) for tag in tags):
        raise StoreDecodeError("Field 'tags' should contain only strings")

    return Bookmark(
        id=_require(data, "id", str),
        name=_require(data, "name", str),
        url=_require(data, "url", str),
        date_added=_timestamp(data, "dateAdded"),
        date_modified=_timestamp(data, "dateModified"),
        tags=tags,
        description=_require(data, "description", str, nullable=True),
        favicon=_require(data, "favicon", str, nullable=True),
        visit_count=_require(data, "visitCount", int),
    )


def _folder_from_dict(data: Dict[str, Any]) -> Folder:
    return Folder(
        id=_require(data, "id", str),
        name=_require(data, "name", str),
        date_added=_timestamp(data, "dateAdded"),
        date_modified=_timestamp(data, "dateModified"),
        children=[decode_node(child) for child in _require(data, "children", list)],
    )


def decode_node(data: Any) -> Node:
    """Decode a {"type", "data"} dict into a node.

    Raises:
        StoreDecodeError: If the tag is unknown or the payload is malformed
    """
    tag = _require(data, "type", str)
    try:
        kind = NodeType(tag)
    except ValueError:
        raise StoreDecodeError(f"Unknown node type: {tag!r}")

    payload = _require(data, "data", dict)
    if kind is NodeType.URL:
        return _bookmark_from_dict(payload)
    if kind is NodeType.FOLDER:
        return _folder_from_dict(payload)
    assert_never(kind)


def decode_root(data: Any) -> BookmarksRoot:
    """Decode a full document into a BookmarksRoot.

    Raises:
        StoreDecodeError: If the document does not have the expected shape
    """
    return BookmarksRoot(
        version=_require(data, "version", int),
        bookmark_bar=_folder_from_dict(_require(data, "bookmarkBar", dict)),
        other_bookmarks=_folder_from_dict(_require(data, "otherBookmarks", dict)),
        date_modified=_timestamp(data, "dateModified"),
    )


def root_from_json(text: str) -> BookmarksRoot:
    """Parse serialized JSON into a BookmarksRoot.

    Raises:
        json.JSONDecodeError: If the text is not JSON
        StoreDecodeError: If the document does not have the expected shape
    """
    return decode_root(json.loads(text))


# ============================================================================
# File operations
# ============================================================================

def load_root(path: Path) -> Optional[BookmarksRoot]:
    """Load the bookmark tree from disk.

    A missing, unreadable or corrupt file is not an error: the caller is
    expected to start over with a fresh default tree.

    Args:
        path: Path to the store file

    Returns:
        Decoded tree, or None if the file could not be loaded
    """
    if not path.exists():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            return root_from_json(f.read())
    except (OSError, UnicodeDecodeError, ValueError, RecursionError) as e:
        # JSONDecodeError and StoreDecodeError are both ValueErrors
        logger.warning("Discarding unreadable bookmarks store %s: %s", path, e)
        return None


def save_root(root: BookmarksRoot, path: Path) -> None:
    """Stamp and write the bookmark tree to disk atomically.

    Args:
        root: Tree to save; its date_modified is updated
        path: Path to the store file

    Raises:
        OSError: If the file cannot be written
    """
    root.date_modified = utc_now()
    content = root_to_json(root)

    path.parent.mkdir(parents=True, exist_ok=True)

    # Write to temp file first
    temp_path = path.with_suffix(".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)

        # Atomic rename
        temp_path.replace(path)
    except OSError:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temporary file %s: %s", temp_path, e)
        raise

    logger.debug("Bookmarks saved to %s", path)

"""Bookmark tree data model."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, List, NoReturn, Optional, Union


CURRENT_VERSION = 1

BOOKMARK_BAR_NAME = "Bookmarks Bar"
OTHER_BOOKMARKS_NAME = "Other Bookmarks"


class NodeType(str, Enum):
    """Wire tag for a node payload."""
    URL = "url"
    FOLDER = "folder"


def utc_now() -> datetime:
    """Current UTC time, truncated to whole seconds.

    The persisted format has second precision, so timestamps are truncated
    at creation to keep them identical across a save/load cycle.
    """
    return datetime.now(timezone.utc).replace(microsecond=0)


def generate_id() -> str:
    """Generate an opaque unique ID for a new bookmark/folder."""
    return str(uuid.uuid4()).upper()


@dataclass
class Bookmark:
    """A single bookmark (leaf node)."""
    name: str
    url: str
    tags: List[str] = field(default_factory=list)
    description: Optional[str] = None
    favicon: Optional[str] = None
    visit_count: int = 0
    id: str = field(default_factory=generate_id)
    date_added: datetime = field(default_factory=utc_now)
    date_modified: Optional[datetime] = None

    def __post_init__(self):
        # Tags are an ordered set
        self.tags = list(dict.fromkeys(self.tags))
        if self.date_modified is None:
            self.date_modified = self.date_added


@dataclass
class Folder:
    """A bookmark folder containing bookmarks and other folders."""
    name: str
    children: List["Node"] = field(default_factory=list)
    id: str = field(default_factory=generate_id)
    date_added: datetime = field(default_factory=utc_now)
    date_modified: Optional[datetime] = None

    def __post_init__(self):
        if self.date_modified is None:
            self.date_modified = self.date_added


Node = Union[Bookmark, Folder]


def assert_never(value: NoReturn) -> NoReturn:
    """Mark a branch that is unreachable once every Node variant is handled.

    Type checkers report a call reachable with a real value as an error, so
    adding a new Node variant flags every dispatch site that misses it.
    """
    raise TypeError(f"Unhandled node type: {type(value).__name__}")


def node_type(node: Node) -> NodeType:
    """Return the wire tag for a node."""
    if isinstance(node, Bookmark):
        return NodeType.URL
    if isinstance(node, Folder):
        return NodeType.FOLDER
    assert_never(node)


@dataclass
class BookmarksRoot:
    """Top-level persisted structure."""
    bookmark_bar: Folder = field(default_factory=lambda: Folder(BOOKMARK_BAR_NAME))
    other_bookmarks: Folder = field(default_factory=lambda: Folder(OTHER_BOOKMARKS_NAME))
    version: int = CURRENT_VERSION
    date_modified: datetime = field(default_factory=utc_now)


# ============================================================================
# Tree operations
# ============================================================================

def add_child(folder: Folder, node: Node) -> None:
    """Append a node to the end of a folder's children.

    Only the folder itself is restamped; ancestors are left untouched.
    Duplicate names and URLs are allowed.

    Args:
        folder: Folder receiving the node
        node: Bookmark or folder to append
    """
    folder.children.append(node)
    folder.date_modified = utc_now()


def remove_child(folder: Folder, node_id: str) -> Optional[Node]:
    """Remove the direct child with the given ID.

    A missing ID is not an error; the folder is restamped either way.

    Args:
        folder: Folder to remove from
        node_id: ID of the child to remove

    Returns:
        The removed node, or None if no child matched
    """
    removed = None
    for i, child in enumerate(folder.children):
        if child.id == node_id:
            removed = folder.children.pop(i)
            break

    folder.date_modified = utc_now()
    return removed


def count_leaves(node: Node) -> int:
    """Count the bookmarks in a node.

    Args:
        node: Bookmark or folder

    Returns:
        1 for a bookmark, otherwise the number of bookmarks anywhere below
        the folder (0 when it is empty)
    """
    if isinstance(node, Bookmark):
        return 1
    if isinstance(node, Folder):
        return sum(1 for child in iter_nodes(node) if isinstance(child, Bookmark))
    assert_never(node)


def iter_nodes(folder: Folder) -> Iterator[Node]:
    """Walk every descendant of a folder in pre-order (display order).

    Args:
        folder: Folder to walk; the folder itself is not yielded
    """
    stack = list(reversed(folder.children))

    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, Folder):
            stack.extend(reversed(current.children))


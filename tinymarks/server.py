"""MCP server exposing the bookmark service."""
import json
import logging
from typing import Any, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from tinymarks.config import Config, get_config
from tinymarks.legacy_import import LegacyImportError
from tinymarks.service import BookmarkService
from tinymarks.store import encode_root


logger = logging.getLogger(__name__)

SERVER_NAME = "tinymarks"


def _text(text: str) -> List[TextContent]:
    return [TextContent(type="text", text=text)]


def _save_status(service: BookmarkService) -> str:
    if service.last_save_error is None:
        return "saved"
    return f"not saved ({service.last_save_error})"


async def list_bookmarks_tool(service: BookmarkService) -> List[TextContent]:
    """Tool handler for list_bookmarks.

    Returns:
        The whole tree in its persisted JSON shape
    """
    return _text(json.dumps(encode_root(service.root), indent=2, sort_keys=True, ensure_ascii=False))


def _tags_argument(value: Any) -> Optional[List[str]]:
    """Normalize the tags argument; a single string is one tag."""
    if value is None or isinstance(value, list) and all(isinstance(tag, str) for tag in value):
        return value
    if isinstance(value, str):
        return [value]
    raise ValueError("'tags' must be a list of strings")


async def add_bookmark_tool(
    service: BookmarkService,
    name: str,
    url: str,
    tags: Any = None,
    description: Optional[str] = None,
) -> List[TextContent]:
    """Tool handler for add_bookmark_to_bar."""
    try:
        tags = _tags_argument(tags)
    except ValueError as e:
        return _text(f"Error: {e}")

    bookmark = service.add_bookmark_to_bar(name, url, tags=tags, description=description)
    return _text(json.dumps({
        "id": bookmark.id,
        "name": bookmark.name,
        "url": bookmark.url,
        "status": _save_status(service),
    }, indent=2))


async def import_legacy_tool(service: BookmarkService, path: str) -> List[TextContent]:
    """Tool handler for import_legacy_bookmarks.

    Args:
        service: Bookmark service
        path: Path to the export file
    """
    try:
        count = service.import_legacy_file(path)
    except LegacyImportError as e:
        return _text(f"Error: {e}")

    import_folder = service.root.bookmark_bar.children[-1]
    return _text(json.dumps({
        "imported": count,
        "folder": import_folder.name,
        "status": _save_status(service),
    }, indent=2))


async def delete_all_tool(service: BookmarkService) -> List[TextContent]:
    """Tool handler for delete_all_bookmarks."""
    service.delete_all()
    return _text(f"All bookmarks deleted and reset to defaults; {_save_status(service)}")


async def save_tool(service: BookmarkService) -> List[TextContent]:
    """Tool handler for save_bookmarks."""
    if service.save():
        return _text(f"Bookmarks saved to {service.store_path}")
    return _text(f"Error: could not save bookmarks: {service.last_save_error}")


def create_server(service: BookmarkService) -> Server:
    """Create and configure the MCP server.

    Args:
        service: Bookmark service the tools operate on

    Returns:
        Configured Server instance
    """
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return [
            Tool(
                name="list_bookmarks",
                description="Return the full bookmark tree (bookmarks bar and other bookmarks) as JSON.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="add_bookmark_to_bar",
                description="Add a bookmark to the end of the bookmarks bar.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "Display name"},
                        "url": {"type": "string", "description": "Bookmark URL"},
                        "tags": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Optional tags",
                        },
                        "description": {"type": "string", "description": "Optional description"},
                    },
                    "required": ["name", "url"],
                },
            ),
            Tool(
                name="import_legacy_bookmarks",
                description="Import a legacy HTML bookmark export into a new folder on the bookmarks bar. Returns the number of bookmarks imported.",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "path": {"type": "string", "description": "Path to the export file"},
                    },
                    "required": ["path"],
                },
            ),
            Tool(
                name="delete_all_bookmarks",
                description="Delete every bookmark and folder and restore the default bookmarks.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="save_bookmarks",
                description="Write the bookmark tree to disk.",
                inputSchema={"type": "object", "properties": {}},
            ),
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle tool calls."""
        arguments = arguments or {}

        if name == "list_bookmarks":
            return await list_bookmarks_tool(service)
        elif name == "add_bookmark_to_bar":
            bookmark_name = arguments.get("name", "")
            url = arguments.get("url", "")
            if not bookmark_name or not url:
                return _text("Error: 'name' and 'url' parameters are required")
            return await add_bookmark_tool(
                service,
                bookmark_name,
                url,
                tags=arguments.get("tags"),
                description=arguments.get("description"),
            )
        elif name == "import_legacy_bookmarks":
            path = arguments.get("path", "")
            if not path:
                return _text("Error: 'path' parameter is required")
            return await import_legacy_tool(service, path)
        elif name == "delete_all_bookmarks":
            return await delete_all_tool(service)
        elif name == "save_bookmarks":
            return await save_tool(service)
        else:
            raise ValueError(f"Unknown tool: {name}")

    return server


async def main(config: Optional[Config] = None):
    """Main entry point for the MCP server."""
    if config is None:
        config = get_config()

    service = BookmarkService.open(config.store_path, config.import_folder_prefix)
    logger.info("Serving bookmarks from %s", service.store_path)

    server = create_server(service)

    async with stdio_server() as (read_stream, write_stream):
        initialization_options = server.create_initialization_options()
        await server.run(read_stream, write_stream, initialization_options)

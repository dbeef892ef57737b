"""Main entry point for the tinymarks MCP server."""
import asyncio
import logging
import sys

from tinymarks.config import get_config
from tinymarks.server import main


def run() -> None:
    """Configure logging and serve over stdio."""
    config = get_config()

    # stdout carries the MCP protocol
    logging.basicConfig(
        stream=sys.stderr,
        level=config.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    asyncio.run(main(config))


if __name__ == "__main__":
    run()

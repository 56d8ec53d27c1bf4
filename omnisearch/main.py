"""Main entry point for the omnisearch MCP server."""
import asyncio

from omnisearch.server import main


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

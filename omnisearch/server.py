"""MCP server exposing browser search over bookmarks, tabs and history."""
import json
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from omnisearch.chrome_bridge import get_bridge
from omnisearch.config import get_config
from omnisearch.entries import Entry, SearchResult
from omnisearch.search import SearchContext, SearchOrchestrator
from omnisearch.search_data import load_search_data


# Global state
_orchestrator: Optional[SearchOrchestrator] = None


async def get_active_tab() -> Optional[Entry]:
    """Active tab lookup for default results; None without the extension."""
    bridge = get_bridge()
    if not bridge.is_connected:
        return None
    return await bridge.get_active_tab()


def get_orchestrator() -> SearchOrchestrator:
    """Get or create the global search orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SearchOrchestrator(SearchContext(
            options=get_config().options,
            get_active_tab=get_active_tab,
        ))
    return _orchestrator


async def ensure_search_data(reload: bool = False) -> SearchOrchestrator:
    """Load the corpus on first use, or again when reload is set."""
    orchestrator = get_orchestrator()
    if reload or not orchestrator.initialized:
        orchestrator.set_data(await load_search_data(get_config(), get_bridge()))
    return orchestrator


def format_result(result: SearchResult) -> Dict[str, Any]:
    return {
        "type": result.type,
        "title": result.title,
        "url": result.original_url,
        "score": round(result.score, 2) if result.score is not None else None,
        "tags": result.tags_array,
        "folder": result.folder_array,
        "group": result.group,
        "open_tab": result.tab or result.type == "tab",
        "search_approach": result.search_approach,
        "highlighted_title": result.highlighted_title,
    }


def _text(text: str) -> List[TextContent]:
    return [TextContent(type="text", text=text)]


async def search_browser_tool(query: str) -> List[TextContent]:
    """Tool handler for search_browser.

    Args:
        query: Search box input, including mode prefixes like "b " or "#"

    Returns:
        List of TextContent with the ranked results as JSON
    """
    orchestrator = await ensure_search_data()
    results = await orchestrator.search(query)

    if not results:
        return _text(f"No results found for query: {query}")
    return _text(json.dumps([format_result(r) for r in results], indent=2))


async def taxonomy_tool(kind: str) -> List[TextContent]:
    """Tool handler for list_tags, list_folders and list_groups."""
    orchestrator = await ensure_search_data()
    if kind == "tags":
        index = orchestrator.unique_tags()
    elif kind == "folders":
        index = orchestrator.unique_folders()
    else:
        index = orchestrator.unique_groups()
    counts = {name: len(ids) for name, ids in sorted(index.items(), key=lambda kv: kv[0].lower())}
    return _text(json.dumps(counts, indent=2))


async def reload_tool() -> List[TextContent]:
    orchestrator = await ensure_search_data(reload=True)
    return _text(json.dumps(orchestrator.context.data.counts(), indent=2))


def create_server() -> Server:
    """Create and configure the MCP server.

    Returns:
        Configured Server instance
    """
    server = Server("browser-omnisearch")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return [
            Tool(
                name="search_browser",
                description=(
                    "Search bookmarks, open tabs and browsing history. Prefix the query with "
                    "'b ', 't ', 'h ' or 's ' to search only bookmarks, tabs, history or search "
                    "engines; start it with '#', '~' or '@' to search tags, folders or tab groups. "
                    "An empty query returns bookmarks of the current page and recent tabs."
                ),
                inputSchema={
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": "Search query as typed into a search box",
                        }
                    },
                    "required": ["query"],
                },
            ),
            Tool(
                name="list_tags",
                description="List all bookmark tags with the number of bookmarks carrying them.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="list_folders",
                description="List all bookmark folders with the number of bookmarks in them.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="list_groups",
                description="List all tab groups with the number of open tabs in them.",
                inputSchema={"type": "object", "properties": {}},
            ),
            Tool(
                name="reload_search_data",
                description="Reload bookmarks, tabs and history from Chrome and clear search caches.",
                inputSchema={"type": "object", "properties": {}},
            ),
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: Any) -> list[TextContent]:
        """Handle tool calls."""
        arguments = arguments or {}
        if name == "search_browser":
            query = arguments.get("query")
            if query is None:
                return _text("Error: 'query' parameter is required")
            return await search_browser_tool(query)
        elif name == "list_tags":
            return await taxonomy_tool("tags")
        elif name == "list_folders":
            return await taxonomy_tool("folders")
        elif name == "list_groups":
            return await taxonomy_tool("groups")
        elif name == "reload_search_data":
            return await reload_tool()
        else:
            raise ValueError(f"Unknown tool: {name}")

    return server


async def main():
    """Main entry point for the MCP server."""
    server = create_server()
    bridge = get_bridge()
    await bridge.start()

    try:
        async with stdio_server() as (read_stream, write_stream):
            initialization_options = server.create_initialization_options()
            await server.run(read_stream, write_stream, initialization_options)
    finally:
        await bridge.stop()

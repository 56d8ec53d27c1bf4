"""WebSocket bridge to the companion Chrome extension.

Open tabs and the active tab only exist in the running browser, so they are
requested from the extension over a local WebSocket.

Protocol:
  Server -> Extension:  {"id": "<uuid>", "action": "getTabs"|"getActiveTab", "params": {...}}
  Extension -> Server:  {"id": "<uuid>", "status": "ok"|"error", "result"|"error": ...}

Tab objects in results use the chrome.tabs field names (id, title, url,
active, windowId, lastAccessed) plus "group", the title of the tab's group.
"""
import asyncio
import json
import sys
import time
import uuid
from typing import Any, Dict, List, Optional

import websockets
from websockets.asyncio.server import serve as ws_serve

from omnisearch.entries import Entry, tab_entry

DEFAULT_PORT = 8765
RESPONSE_TIMEOUT = 15.0  # seconds

# Messages the extension sends on its own, not as a reply
UNSOLICITED_TYPES = ("keepalive", "pong")


class ChromeBridge:
    """Serves one extension connection and asks it for tab state."""

    def __init__(self, port: int = DEFAULT_PORT):
        self.port = port
        self._ws: Optional[Any] = None
        self._server: Optional[Any] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._running = False
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._ws is not None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Listen on localhost. A busy port is logged, not raised."""
        try:
            self._server = await ws_serve(self._handler, "localhost", self.port)
        except OSError as e:
            print(f"[ChromeBridge] Port {self.port} unavailable, tabs disabled: {e}", file=sys.stderr)
            return
        self._running = True
        print(f"[ChromeBridge] Waiting for the extension on ws://localhost:{self.port}", file=sys.stderr)

    async def stop(self) -> None:
        server, self._server = self._server, None
        if server is not None:
            server.close()
            await server.wait_closed()
        self._ws = None
        self._connected = False
        self._running = False

    async def _handler(self, websocket: Any) -> None:
        self._ws = websocket
        self._connected = True
        print("[ChromeBridge] Extension connected", file=sys.stderr)
        try:
            async for raw in websocket:
                self._resolve(raw)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self._ws = None
            self._connected = False
            print("[ChromeBridge] Extension disconnected", file=sys.stderr)

    def _resolve(self, raw: str) -> None:
        """Hand a reply to the request waiting for it; ignore anything else."""
        try:
            reply = json.loads(raw)
        except json.JSONDecodeError:
            return
        if not isinstance(reply, dict) or reply.get("type") in UNSOLICITED_TYPES:
            return
        waiter = self._pending.get(reply.get("id"))
        if waiter is not None and not waiter.done():
            waiter.set_result(reply)

    async def _send_command(self, action: str, params: Dict[str, Any]) -> Any:
        """Send one request and wait for its reply.

        Returns:
            The ``result`` payload of the reply

        Raises:
            ConnectionError: No extension is connected.
            TimeoutError: No reply within RESPONSE_TIMEOUT seconds.
            RuntimeError: The extension replied with an error.
        """
        if not self.is_connected:
            raise ConnectionError("Chrome extension is not connected")

        request_id = uuid.uuid4().hex
        waiter = asyncio.get_running_loop().create_future()
        self._pending[request_id] = waiter
        try:
            await self._ws.send(json.dumps({"id": request_id, "action": action, "params": params}))
            try:
                reply = await asyncio.wait_for(waiter, timeout=RESPONSE_TIMEOUT)
            except asyncio.TimeoutError:
                raise TimeoutError(f"No reply to '{action}' after {RESPONSE_TIMEOUT}s")
        finally:
            del self._pending[request_id]

        if reply.get("status") == "error":
            raise RuntimeError(reply.get("error") or f"'{action}' failed in the extension")
        return reply.get("result", {})

    async def get_tabs(self, only_current_window: bool = False) -> List[Entry]:
        """Open tabs with a URL, as tab entries."""
        result = await self._send_command("getTabs", {"currentWindow": only_current_window})
        tabs = result.get("tabs", []) if isinstance(result, dict) else result
        now_ms = time.time() * 1000
        return [tab_entry(tab, now_ms=now_ms) for tab in tabs or [] if tab.get("url")]

    async def get_active_tab(self) -> Optional[Entry]:
        result = await self._send_command("getActiveTab", {})
        tab = result.get("tab") if isinstance(result, dict) else None
        if not tab or not tab.get("url"):
            return None
        return tab_entry(tab, now_ms=time.time() * 1000)


_bridge: Optional[ChromeBridge] = None


def get_bridge() -> ChromeBridge:
    """Get or create the global bridge instance."""
    global _bridge
    if _bridge is None:
        from omnisearch.config import get_config
        _bridge = ChromeBridge(port=get_config().bridge_port)
    return _bridge

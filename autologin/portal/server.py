"""FastAPI application that lets an operator solve a challenge in the live session."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from autologin.portal.streaming import PortalChannel, PortalRegistry

logger = logging.getLogger(__name__)

PORTAL_PAGE_HTML = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>autologin portal</title>
  <style>
    body { font-family: sans-serif; margin: 0; padding: 1rem; background: #111; color: #eee; }
    .panel { background: #1a1a1a; border: 1px solid #2f2f2f; border-radius: 8px; padding: 0.75rem; }
    img { max-width: 100%; cursor: crosshair; border: 1px solid #333; background: #000; }
    .controls { display: flex; gap: 0.5rem; margin-top: 0.75rem; }
    input { flex: 1; }
  </style>
</head>
<body>
  <h2>Solve the challenge for __IDENTITY__</h2>
  <div class="panel">
    <img id="screen" alt="Live session" />
    <div class="controls">
      <input id="text" placeholder="Text to type into the focused field" />
      <button id="send">Type</button>
      <button id="enter">Enter</button>
      <button id="done">Done</button>
    </div>
    <p id="status"></p>
  </div>
  <script>
    const base = location.pathname.replace(/\\/$/, "");
    const screenEl = document.getElementById("screen");
    const statusEl = document.getElementById("status");
    const proto = location.protocol === "https:" ? "wss" : "ws";
    const ws = new WebSocket(`${proto}://${location.host}${base}/screen`);
    ws.binaryType = "arraybuffer";
    ws.onmessage = (ev) => {
      const url = URL.createObjectURL(new Blob([ev.data], { type: "image/jpeg" }));
      screenEl.onload = () => URL.revokeObjectURL(url);
      screenEl.src = url;
    };
    ws.onclose = () => { statusEl.textContent = "Session closed."; };
    const send = (body) => fetch(`${base}/input`, {
      method: "POST", headers: { "Content-Type": "application/json" }, body: JSON.stringify(body),
    });
    screenEl.addEventListener("click", (ev) => {
      const scaleX = screenEl.naturalWidth / screenEl.clientWidth;
      const scaleY = screenEl.naturalHeight / screenEl.clientHeight;
      send({ action: "click", x: ev.offsetX * scaleX, y: ev.offsetY * scaleY });
    });
    document.getElementById("send").onclick = () => {
      const el = document.getElementById("text");
      send({ action: "type", text: el.value });
      el.value = "";
    };
    document.getElementById("enter").onclick = () => send({ action: "press", key: "Enter" });
    document.getElementById("done").onclick = async () => {
      await fetch(`${base}/resolve`, { method: "POST" });
      statusEl.textContent = "Marked as solved.";
    };
  </script>
</body>
</html>
"""


class PortalInput(BaseModel):
    """Operator input forwarded to the live page."""

    action: Literal["click", "type", "press"]
    x: float | None = Field(default=None, ge=0)
    y: float | None = Field(default=None, ge=0)
    text: str | None = None
    key: str | None = None

    def to_payload(self) -> dict[str, Any]:
        if self.action == "click":
            if self.x is None or self.y is None:
                raise ValueError("click requires x and y")
            return {"x": self.x, "y": self.y}
        if self.action == "type":
            if not self.text:
                raise ValueError("type requires text")
            return {"text": self.text}
        if not self.key:
            raise ValueError("press requires key")
        return {"key": self.key}


def create_app(registry: PortalRegistry | None = None) -> FastAPI:
    """Create the portal app.

    Args:
        registry: Shared channel registry. If None, a new one is created and
            stored on app.state.
    """
    app = FastAPI(title="autologin portal", version="0.1.0")
    app.state.registry = registry or PortalRegistry()

    def _channel(token: str) -> PortalChannel:
        channel = app.state.registry.get(token)
        if channel is None:
            raise HTTPException(status_code=404, detail="Unknown or closed portal")
        return channel

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        return {"status": "ok", "open_portals": len(app.state.registry)}

    @app.get("/portal/{token}")
    async def portal_page(token: str) -> HTMLResponse:
        channel = _channel(token)
        return HTMLResponse(PORTAL_PAGE_HTML.replace("__IDENTITY__", channel.identity or "this account"))

    @app.post("/portal/{token}/input")
    async def portal_input(token: str, body: PortalInput) -> dict[str, Any]:
        channel = _channel(token)
        try:
            command_id = channel.push_command(body.action, body.to_payload())
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        return {"id": command_id}

    @app.post("/portal/{token}/resolve")
    async def portal_resolve(token: str) -> dict[str, Any]:
        channel = _channel(token)
        channel.mark_resolved()
        logger.info("[PORTAL] Operator marked portal %s as solved", token[:6])
        return {"resolved": True}

    @app.websocket("/portal/{token}/screen")
    async def portal_screen(websocket: WebSocket, token: str) -> None:
        channel = app.state.registry.get(token)
        if channel is None:
            await websocket.close(code=4404)
            return
        await websocket.accept()
        interval = 1.0 / channel.screen.stream_fps
        last_sent: bytes | None = None
        try:
            while app.state.registry.get(token) is channel:
                frame = channel.screen.get_latest_frame()
                if frame is not None and frame is not last_sent:
                    await websocket.send_bytes(frame)
                    last_sent = frame
                await asyncio.sleep(interval)
            await websocket.close()
        except WebSocketDisconnect:
            logger.debug("Portal screen WebSocket client disconnected")
        except Exception as e:
            logger.warning("Portal screen stream error: %s", e)

    return app


@dataclass
class PortalServer:
    """Background uvicorn server handle."""

    server: Any
    thread: threading.Thread

    def stop(self) -> None:
        self.server.should_exit = True
        self.thread.join(timeout=5.0)


def start_portal_server(host: str, port: int, registry: PortalRegistry) -> PortalServer:
    """Start the portal app in a background thread."""
    import uvicorn

    config = uvicorn.Config(
        app=create_app(registry),
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, daemon=True, name="PortalServer")
    thread.start()
    # Best-effort brief wait for initial bind.
    time.sleep(0.1)
    logger.info("[PORTAL] Listening on http://%s:%s", host, port)
    return PortalServer(server=server, thread=thread)

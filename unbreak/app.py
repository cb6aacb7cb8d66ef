import json
import os
import re
from contextlib import asynccontextmanager
from html import escape
from typing import Any, Dict

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from . import __version__
from .markdown_functional import unbreak
from .streaming import MarkdownBufferProcessor, render_markdown, renderer_cfg

# Shared, read-only after startup
app_context: Dict[str, Any] = {}

# Client ids end up inside an hx-swap-oob selector
CONTENT_ID_PATTERN = re.compile(r"[^\w-]")


@asynccontextmanager
async def lifespan(app: FastAPI):
    print("--- Application starting up... ---")
    app_context["renderer_cfg"] = dict(renderer_cfg)
    print(f"--- Rendering with markdown-it preset '{renderer_cfg['preset']}' ---")
    yield
    print("--- Application shutting down... ---")
    app_context.clear()


app = FastAPI(title="unbreak", lifespan=lifespan)


# ---------- Models ----------
class Health(BaseModel):
    ok: bool
    version: str


class MarkdownRequest(BaseModel):
    markdown: str = ""


class MarkdownResponse(BaseModel):
    markdown: str


def content_fragment(content_id: str, html: str) -> str:
    return f'<div hx-swap-oob="innerHTML:#{content_id}">{html}</div>'


def error_fragment(message: str) -> str:
    return f'<div hx-swap-oob="beforeend:#chat-messages" class="text-sm text-red-500">[Error]: {escape(message)}</div>'


# ---------- Routes ----------
@app.get("/health", response_model=Health)
def health() -> Health:
    return Health(ok=True, version=__version__)


@app.post("/unbreak", response_model=MarkdownResponse)
def unbreak_markdown(request: MarkdownRequest) -> MarkdownResponse:
    return MarkdownResponse(markdown=unbreak(request.markdown))


@app.post("/render", response_class=HTMLResponse)
def render(request: MarkdownRequest) -> HTMLResponse:
    return HTMLResponse(content=render_markdown(request.markdown))


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    Streams rendered markdown back to the client.

    Each message is JSON: {"id": "...", "chunk": "...", "done": false}. Every
    message is answered with the HTML of the whole response so far, swapped
    into #content-<id>. "done" ends the response and starts a fresh buffer.
    """
    await websocket.accept()
    cfg = app_context.get("renderer_cfg")
    processor = MarkdownBufferProcessor(cfg)
    try:
        while True:
            message_data = await websocket.receive_text()
            try:
                parsed_data = json.loads(message_data)
            except json.JSONDecodeError as e:
                await websocket.send_text(error_fragment(f"invalid message: {e}"))
                continue
            if not isinstance(parsed_data, dict):
                await websocket.send_text(error_fragment("invalid message: expected a JSON object"))
                continue

            content_id = "content-" + (CONTENT_ID_PATTERN.sub("", str(parsed_data.get("id", ""))) or "stream")
            done = parsed_data.get("done") in (True, "true", "on")

            html = processor.process_chunk(str(parsed_data.get("chunk") or ""))
            if done:
                html = processor.finish()
                processor = MarkdownBufferProcessor(cfg)

            await websocket.send_text(content_fragment(content_id, html))

    except WebSocketDisconnect:
        print("Client disconnected from WebSocket.")
    except Exception as e:
        print(f"WebSocket error: {e}")
        await websocket.send_text(error_fragment(str(e)))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=os.environ.get("UNBREAK_HOST", "0.0.0.0"), port=int(os.environ.get("UNBREAK_PORT", "7860")))

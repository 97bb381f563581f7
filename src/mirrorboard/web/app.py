"""
FastAPI application for the mirrorboard page.

Provides:
- The rendered page, patched live through an SSE stream of module updates
- Real-time log streaming via SSE
- Module show/hide and inbound socket notifications
- The layout grid: save, add/remove widgets and rows
"""

import asyncio
import json
import logging
import os
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Deque, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse
from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from ..core.display import ModuleContainer
    from ..core.kernel import Kernel
    from ..grid import FlexGrid

log = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")


@dataclass
class SharedState:
    """
    Shared state between the logging system and the web server.

    Thread-safe container for recent log records.
    """

    _logs: Deque[Dict] = field(default_factory=lambda: deque(maxlen=1000))
    _log_lock: threading.Lock = field(default_factory=threading.Lock)

    def add_log(self, record: Dict) -> None:
        """Add a log record (thread-safe)."""
        with self._log_lock:
            self._logs.append(record)

    def get_logs(self, since_index: int = 0) -> List[Dict]:
        """Get logs since a given index (thread-safe)."""
        with self._log_lock:
            logs = list(self._logs)
        return logs[since_index:]

    def get_log_count(self) -> int:
        with self._log_lock:
            return len(self._logs)


# Global shared state
_shared_state: Optional[SharedState] = None


def get_shared_state() -> SharedState:
    """Get or create the global shared state."""
    global _shared_state
    if _shared_state is None:
        _shared_state = SharedState()
    return _shared_state


class WebLogHandler(logging.Handler):
    """
    Logging handler that forwards logs to the web interface.
    """

    def __init__(self, shared_state: SharedState):
        super().__init__()
        self.shared_state = shared_state
        self.setFormatter(
            logging.Formatter(
                "%(asctime)s : %(levelname)-8s : (%(name)s) %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            formatted = self.format(record)
            self.shared_state.add_log(
                {
                    "timestamp": time.time(),
                    "time": formatted.split(" : ")[0],
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                    "formatted": formatted,
                }
            )
        except Exception:
            self.handleError(record)


class NoCacheMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        if "text/html" in response.headers.get("content-type", ""):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response


class VisibilityRequest(BaseModel):
    speed: float = 0
    lock_string: Optional[str] = None
    force: bool = False


class SocketNotificationRequest(BaseModel):
    notification: str
    payload: Any = None


class WidgetRequest(BaseModel):
    x: Optional[int] = None
    y: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    min_width: Optional[int] = None
    min_height: Optional[int] = None
    max_width: Optional[int] = None
    max_height: Optional[int] = None
    inner_content: str = ""


class RowsRequest(BaseModel):
    count: int = 1


def module_info(kernel: "Kernel", module) -> Dict[str, Any]:
    container = kernel.screen.container_for(module)
    return {
        "identifier": module.identifier,
        "name": module.name,
        "position": module.data.position,
        "classes": module.data.classes,
        "hidden": module.hidden,
        "lock_strings": list(module.lock_strings),
        "mounted": container is not None,
    }


def container_update(container: "ModuleContainer") -> Dict[str, Any]:
    return {
        "identifier": container.identifier,
        "region": container.region.value,
        "html": container.to_html(),
    }


def create_app(kernel: "Kernel", shared_state: Optional[SharedState] = None) -> FastAPI:
    """Create the FastAPI application serving a kernel's screen."""
    if shared_state is None:
        shared_state = get_shared_state()

    app = FastAPI(
        title="mirrorboard",
        description="Dashboard page, module control and log viewer for mirrorboard",
        version="1.0.0",
    )
    app.add_middleware(NoCacheMiddleware)

    templates = Jinja2Templates(directory=TEMPLATES_DIR)

    def find_module(identifier: str):
        module = kernel.get_module(identifier)
        if module is None:
            raise HTTPException(status_code=404, detail=f"Unknown module '{identifier}'")
        return module

    def layout_grid() -> "FlexGrid":
        if kernel.screen.grid is None:
            raise HTTPException(status_code=404, detail="The screen has no layout grid")
        return kernel.screen.grid

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok", "running": kernel.running}

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request):
        """The dashboard page."""
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "language": kernel.config.language,
                "body": kernel.screen.to_html(),
            },
        )

    @app.get("/api/modules")
    async def get_modules():
        return [module_info(kernel, module) for module in kernel.get_modules()]

    @app.post("/api/modules/{identifier}/show")
    async def show_module(identifier: str, body: VisibilityRequest):
        module = find_module(identifier)
        errors: List[str] = []
        shown = kernel.show_module(
            module,
            body.speed,
            options={
                "lock_string": body.lock_string,
                "force": body.force,
                "on_error": lambda error: errors.append(error.condition),
            },
        )
        return {"shown": shown, "errors": errors, "module": module_info(kernel, module)}

    @app.post("/api/modules/{identifier}/hide")
    async def hide_module(identifier: str, body: VisibilityRequest):
        module = find_module(identifier)
        kernel.hide_module(module, body.speed, options={"lock_string": body.lock_string})
        return {"module": module_info(kernel, module)}

    @app.post("/api/socket/{module_name}")
    async def socket_notification(module_name: str, body: SocketNotificationRequest):
        """Inbound socket notification from a module's helper."""
        delivered = kernel.sockets.deliver(module_name, body.notification, body.payload)
        return {"delivered": delivered}

    @app.get("/api/dom/stream")
    async def stream_dom(request: Request):
        """SSE endpoint pushing every applied module update."""
        queue: asyncio.Queue = asyncio.Queue()

        def on_update(container: "ModuleContainer") -> None:
            queue.put_nowait(container_update(container))

        kernel.renderer.on_update(on_update)

        async def event_generator():
            try:
                while True:
                    if await request.is_disconnected():
                        break
                    try:
                        update = await asyncio.wait_for(queue.get(), timeout=1.0)
                    except asyncio.TimeoutError:
                        continue
                    yield {"event": "update", "data": json.dumps(update)}
            finally:
                kernel.renderer.remove_listener(on_update)

        return EventSourceResponse(event_generator())

    @app.get("/api/logs/stream")
    async def stream_logs(request: Request):
        """SSE endpoint for real-time log streaming."""

        async def event_generator():
            last_index = 0

            while True:
                # Check if client disconnected
                if await request.is_disconnected():
                    break

                logs = shared_state.get_logs(last_index)
                if logs:
                    for log_entry in logs:
                        yield {
                            "event": "message",
                            "data": json.dumps(log_entry),
                        }
                    last_index = shared_state.get_log_count()

                await asyncio.sleep(0.1)  # Poll every 100ms

        return EventSourceResponse(event_generator())

    @app.get("/api/grid")
    async def save_grid():
        return layout_grid().save_grid()

    @app.post("/api/grid/widgets")
    async def add_widget(body: WidgetRequest):
        grid = layout_grid()
        cell = grid.add_widget(**body.model_dump())
        if cell is None:
            raise HTTPException(status_code=409, detail="No hosting cell for the widget")
        widget = grid.widget_at(cell.col, cell.row)
        return {"id": widget.id, **widget.to_record()}

    @app.delete("/api/grid/widgets/{widget_id}")
    async def remove_widget(widget_id: str):
        grid = layout_grid()
        if grid.get_widget(widget_id) is None:
            raise HTTPException(status_code=404, detail=f"Unknown widget '{widget_id}'")
        origin = grid.remove_widget(widget_id)
        return {"removed": widget_id, "returned_to": origin.container if origin else None}

    @app.post("/api/grid/rows")
    async def add_rows(body: RowsRequest):
        return {"rows": layout_grid().add_row(body.count)}

    @app.delete("/api/grid/rows")
    async def remove_rows(count: int = 1):
        return {"rows": layout_grid().remove_row(count)}

    return app

#!/usr/bin/env python3
"""EasyPanel Monitor: browser-based web dashboard.

Usage:
    python web.py                              # default config, port 9860
    python web.py -c myconfig.yaml --port 8080 # custom config and port
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from collectors import EasyPanelCollector
from collectors.base import BaseCollector
from dashboard.aggregator import (
    Aggregator,
    ContainerAggregator,
    filter_and_sort_containers,
    filter_and_sort_overviews,
)
from dashboard.config import DEFAULT_CONFIG_PATH, MonitorConfig, configure_logging, load_config
from dashboard.registry import ServerRegistry, normalize_address
from dashboard.settings import AppSettings, InvalidSettingError, SettingsStore
from dashboard.store import KeyValueStore
from dashboard.views import DashboardView, ServiceView

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class AddServer(BaseModel):
    hostname: str
    token: str


class LoginServer(BaseModel):
    hostname: str
    email: str
    password: str


# ---------------------------------------------------------------------------
# Shared state: store, registry and the open views
# ---------------------------------------------------------------------------

class Monitor:
    """Everything one dashboard process holds open."""

    def __init__(self, config: MonitorConfig, collector: BaseCollector | None = None) -> None:
        self.config = config
        self.store = KeyValueStore(config.store_file)
        self.registry = ServerRegistry(self.store)
        self.settings = SettingsStore(self.store)
        self.collector = collector or EasyPanelCollector(timeout=config.request_timeout)
        self.dashboard = DashboardView(
            self.registry,
            Aggregator(self.registry.list, self.collector),
            self.settings,
        )
        self.services: dict[str, ServiceView] = {}
        self._watch_task: asyncio.Task | None = None
        self.start_time = time.time()

    async def start(self) -> None:
        await self.dashboard.open()
        self._watch_task = asyncio.create_task(self.store.watch(self.config.store_watch_interval))

    def stop(self) -> None:
        if self._watch_task is not None:
            self._watch_task.cancel()
            self._watch_task = None
        self.dashboard.close()
        for view in self.services.values():
            view.close()
        self.services.clear()

    async def service(self, server_id: str) -> ServiceView:
        view = self.services.get(server_id)
        if view is None:
            if self.registry.get(server_id) is None:
                raise HTTPException(status_code=404, detail=f"Unknown server {server_id}")
            view = ServiceView(
                server_id,
                self.registry,
                ContainerAggregator(self.collector),
                self.settings,
            )
            self.services[server_id] = view
            await view.open()
        return view

    def close_service(self, server_id: str) -> None:
        view = self.services.pop(server_id, None)
        if view is not None:
            view.close()

    def apply_settings(self, settings: AppSettings) -> None:
        self.dashboard.apply_settings(settings)
        for view in self.services.values():
            view.apply_settings(settings)

    def on_focus(self) -> None:
        self.dashboard.on_focus()
        for view in self.services.values():
            view.on_focus()


def _server_json(record) -> dict:
    return {"id": record.id, "hostname": record.address, "username": record.username}


def _overview_json(monitor: Monitor, search: str = "", sort: str = "hostname", direction: str = "asc") -> dict:
    try:
        items = filter_and_sort_overviews(monitor.dashboard.overviews, search, sort, direction)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "servers": [o.to_dict() for o in items],
        "refreshing": monitor.dashboard.refreshing,
        "cycle": monitor.dashboard.board.cycle,
        "refreshInterval": monitor.dashboard.settings.homePageRefreshInterval,
        "timestamp": time.time(),
    }


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

def create_app(config: MonitorConfig, collector: BaseCollector | None = None) -> FastAPI:
    monitor = Monitor(config, collector)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the dashboard view on startup, tear every view down on shutdown."""
        await monitor.start()
        yield
        monitor.stop()

    app = FastAPI(title="EasyPanel Monitor", lifespan=lifespan)
    app.state.monitor = monitor

    @app.get("/api/overview")
    async def api_overview(search: str = "", sort: str = "hostname", direction: str = "asc"):
        """Latest snapshot of all registered servers."""
        return JSONResponse(_overview_json(monitor, search, sort, direction))

    @app.post("/api/overview/refresh")
    async def api_overview_refresh():
        await monitor.dashboard.refresh_now()
        return JSONResponse(_overview_json(monitor))

    @app.get("/api/servers")
    async def api_servers():
        return JSONResponse({"servers": [_server_json(r) for r in monitor.registry.list()]})

    @app.post("/api/servers", status_code=201)
    async def api_add_server(body: AddServer):
        """Register a server with an API token."""
        try:
            record = monitor.registry.add(body.hostname, body.token)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        await monitor.dashboard.refresh_now()
        return JSONResponse(_server_json(record), status_code=201)

    @app.post("/api/servers/login", status_code=201)
    async def api_login_server(body: LoginServer):
        """Register a server by exchanging EasyPanel credentials for a token."""
        try:
            address = normalize_address(body.hostname)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        result = await monitor.collector.login(address, body.email, body.password)
        if not result.ok:
            raise HTTPException(
                status_code=result.status or 502,
                detail={"error": "Authentication failed", "details": result.reason},
            )
        record = monitor.registry.add(address, result.value, username=body.email)
        await monitor.dashboard.refresh_now()
        return JSONResponse(_server_json(record), status_code=201)

    @app.delete("/api/servers/{server_id}")
    async def api_remove_server(server_id: str):
        if not monitor.registry.remove(server_id):
            raise HTTPException(status_code=404, detail=f"Unknown server {server_id}")
        monitor.close_service(server_id)
        monitor.dashboard.forget(server_id)
        return JSONResponse({"removed": server_id})

    @app.get("/api/servers/{server_id}/containers")
    async def api_containers(
        server_id: str, search: str = "", sort: str = "projectName", direction: str = "asc"
    ):
        view = await monitor.service(server_id)
        data = view.snapshot()
        try:
            items = filter_and_sort_containers(view.containers, search, sort, direction)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        data["containers"] = [c.to_dict() for c in items]
        return JSONResponse(data)

    @app.post("/api/servers/{server_id}/containers/refresh")
    async def api_containers_refresh(server_id: str):
        view = await monitor.service(server_id)
        await view.refresh_now()
        return JSONResponse(view.snapshot())

    @app.get("/api/settings")
    async def api_settings():
        return JSONResponse(monitor.settings.load().to_dict())

    @app.put("/api/settings")
    async def api_save_settings(body: dict):
        unknown = set(body) - set(AppSettings().to_dict())
        if unknown:
            raise HTTPException(status_code=422, detail=f"Unknown settings {sorted(unknown)}")
        try:
            settings = AppSettings(**{**monitor.settings.load().to_dict(), **body})
        except InvalidSettingError as e:
            raise HTTPException(status_code=422, detail=str(e))
        monitor.settings.save(settings)
        monitor.apply_settings(settings)
        return JSONResponse(settings.to_dict())

    @app.post("/api/focus")
    async def api_focus():
        """The page regained focus: pick up settings written elsewhere."""
        monitor.on_focus()
        return JSONResponse(monitor.dashboard.settings.to_dict())

    @app.get("/metrics")
    async def metrics():
        """Self-monitoring endpoint."""
        overviews = monitor.dashboard.overviews
        return JSONResponse({
            "metrics": [
                {"key": "servers_registered", "label": "Servers Registered",
                 "value": len(monitor.registry.list()), "unit": "count"},
                {"key": "servers_online", "label": "Servers Online",
                 "value": sum(1 for o in overviews if o.is_online), "unit": "count", "color": "green"},
                {"key": "servers_errored", "label": "Servers Errored",
                 "value": sum(1 for o in overviews if not o.is_online), "unit": "count", "warn_above": 0},
                {"key": "refresh_cycles", "label": "Refresh Cycles",
                 "value": monitor.dashboard.board.cycle, "unit": "count"},
                {"key": "uptime", "label": "Uptime",
                 "value": int(time.time() - monitor.start_time), "unit": "s"},
            ]
        })

    # Serve static files (index.html) at root when present
    static_dir = Path(__file__).parent / "static"
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")

    return app


# ---------------------------------------------------------------------------
# CLI entrypoint
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="EasyPanel Monitor Web Dashboard")
    parser.add_argument(
        "-c", "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to monitor.yaml config file",
    )
    parser.add_argument("--host", default=None, help="Bind address (default: from config)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: from config)")
    args = parser.parse_args()

    config = load_config(Path(args.config))
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    configure_logging(config.log_level)

    app = create_app(config)
    print(f"Starting web dashboard on http://{config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()

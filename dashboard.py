"""
Dashboard — Lightweight web server exposing the tracker view.
Uses aiohttp.web to serve a JSON API + a small HTML frontend.
"""

from __future__ import annotations
import os
import json
from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING
from aiohttp import web
import logging

if TYPE_CHECKING:
    from core.tracker import Tracker

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")


def json_response(data, status=200):
    return web.Response(
        text=json.dumps(data, ensure_ascii=False),
        content_type="application/json",
        status=status,
    )


class Dashboard:
    """Web dashboard server."""

    def __init__(self, tracker: "Tracker", host: str = "0.0.0.0", port: int = 8080,
                 log_path: str = "data/tracker.log"):
        self.tracker = tracker
        self.host = host
        self.port = port
        self.log_path = log_path
        self.app = web.Application()
        self._runner: Optional[web.AppRunner] = None
        self._setup_routes()

    def _setup_routes(self):
        self.app.router.add_get("/", self._serve_html)
        self.app.router.add_get("/api/dashboard", self._api_dashboard)
        self.app.router.add_post("/api/retry", self._api_retry)
        self.app.router.add_post("/api/timeframe", self._api_timeframe)
        self.app.router.add_get("/api/logs", self._api_logs)

    async def start(self):
        """Start the dashboard web server."""
        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"[DASHBOARD] Running on http://{self.host}:{self.port}")

    async def stop(self):
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    # ─── Routes ───

    async def _serve_html(self, request: web.Request) -> web.Response:
        """Serve the dashboard HTML."""
        html_path = os.path.join(STATIC_DIR, "dashboard.html")
        if os.path.exists(html_path):
            with open(html_path, "r", encoding="utf-8") as f:
                return web.Response(text=f.read(), content_type="text/html")
        return web.Response(text="Dashboard HTML not found", status=404)

    async def _api_dashboard(self, request: web.Request) -> web.Response:
        """Current render-ready view in one call."""
        try:
            view = self.tracker.view()
            view["timestamp"] = datetime.now(timezone.utc).isoformat()
            return json_response(view)
        except Exception as e:
            logger.error(f"[DASHBOARD] API error: {e}", exc_info=True)
            return json_response({"error": str(e)}, status=500)

    async def _api_retry(self, request: web.Request) -> web.Response:
        """Manual quote refetch; same code path as the timer."""
        if self.tracker.retry_quote() is None:
            return json_response({"status": "stopped"}, status=409)
        return json_response({"status": "scheduled"}, status=202)

    async def _api_timeframe(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
            value = body["timeframe"]
            timeframe = self.tracker.select_timeframe(value)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[DASHBOARD] Bad timeframe request: {e!r}")
            return json_response({"error": "timeframe must be one of 24h, 7d, 30d"}, status=400)
        return json_response({"timeframe": timeframe.value})

    async def _api_logs(self, request: web.Request) -> web.Response:
        """Return last N lines from the log file."""
        try:
            n = int(request.query.get("n", 50))
            lines = []
            if os.path.exists(self.log_path):
                with open(self.log_path, "r", encoding="utf-8") as f:
                    all_lines = f.readlines()
                    lines = [l.strip() for l in all_lines[-n:]] if n > 0 else []
            return json_response({"lines": lines, "total": len(lines)})
        except Exception as e:
            return json_response({"error": str(e)}, status=500)

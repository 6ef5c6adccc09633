"""
FastAPI-based web front end for the article downloader.

This module serves the local page where a user pastes a catalog URL or a
list of article links, and the server-sent event stream that reports the
batch's progress while it runs.
"""
import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from fastapi.templating import Jinja2Templates

from downloader.config import Settings, load_settings
from downloader.fetcher.browser import BrowserRenderer
from downloader.i18n import _
from downloader.progress import ProgressReporter, QueueConnection
from downloader.tasks import RendererFactory, process_task

# Set up structured logger
logger = structlog.get_logger()

# Setup templates
templates = Jinja2Templates(directory=Path(__file__).parent / "templates")

EVENT_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}


def create_app(
    settings: Optional[Settings] = None,
    renderer_factory: RendererFactory = BrowserRenderer,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or load_settings()

    app = FastAPI(
        title="Article Downloader",
        description="Download rendered articles as Markdown with live progress",
        version=settings.version,
    )

    # Store settings in app state
    app.state.settings = settings
    app.state.renderer_factory = renderer_factory
    app.state.tasks = set()

    @app.get("/", response_class=HTMLResponse)
    async def home(request: Request):
        """Page with the input box and the progress log."""
        return templates.TemplateResponse(
            request,
            "index.html",
            {"app_name": settings.app_name, "output_dir": str(settings.output.output_dir)},
        )

    @app.get("/api/start")
    async def api_start(url: str = Query(default="")):
        """Start a download task and stream its progress as server-sent events."""
        if not url.strip():
            raise HTTPException(status_code=400, detail="URL cannot be empty")

        connection = QueueConnection()
        reporter = ProgressReporter(connection)
        await reporter.emit(_("Connected to the backend, preparing task..."))

        async def _run() -> None:
            try:
                await process_task(url, reporter, app.state.settings, app.state.renderer_factory)
            except Exception as e:
                logger.exception("Download task failed", error=str(e))
                await reporter.emit(_("Task failed: {error}").format(error=e))
            finally:
                await connection.close()

        # The batch runs to completion even if the client goes away
        task = asyncio.create_task(_run())
        app.state.tasks.add(task)
        task.add_done_callback(app.state.tasks.discard)

        return StreamingResponse(
            connection,
            media_type="text/event-stream",
            headers=EVENT_STREAM_HEADERS,
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc),
            "running_tasks": len(app.state.tasks),
        }

    return app

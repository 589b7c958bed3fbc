# nvsmi_exporter/api.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from nvsmi_exporter import __version__
from nvsmi_exporter.collector.parsers import collect_once
from nvsmi_exporter.collector.source import ReportSourceError, make_source
from nvsmi_exporter.config import ExporterConfig
from nvsmi_exporter.formatter import render_report

log = logging.getLogger(__name__)

# ---------- landing page ------------------------------------------------
INDEX_HTML = """\
<!doctype html>
<html>
    <head>
        <meta charset="utf-8">
        <title>Nvidia SMI Exporter</title>
    </head>
    <body>
        <h1>Nvidia SMI Exporter</h1>
        <p><a href="/metrics">Metrics</a></p>
    </body>
</html>"""

# ---------- FastAPI ----------------------------------------------------
def create_app(config: Optional[ExporterConfig] = None) -> FastAPI:
    """Build the exporter app around one configuration.

    With no config, the environment is read once, here.
    """
    if config is None:
        config = ExporterConfig.from_env()

    app = FastAPI(
        title="Nvidia SMI Exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.state.source = make_source(config)

    # plain `def` handlers: each scrape runs in the threadpool with its own report
    @app.get("/", response_class=HTMLResponse)
    def index() -> HTMLResponse:
        log.info("Serving /index")
        return HTMLResponse(INDEX_HTML)

    @app.get("/metrics", response_class=PlainTextResponse)
    def metrics(request: Request) -> PlainTextResponse:
        log.info("Serving /metrics")
        try:
            report = collect_once(request.app.state.source)
        except ReportSourceError as exc:
            log.error("Something went wrong with the execution of nvidia-smi: %s", exc)
            return PlainTextResponse("")
        return PlainTextResponse(render_report(report))

    return app

#!/usr/bin/env python
"""
nvsmi-exporter serve | dump | scrape

Example:
    TEST_MODE=1 nvsmi-exporter serve --port 9202
    nvsmi-exporter dump --test-mode --sample-file tests/data/gpu_snapshot.xml
    nvsmi-exporter scrape http://gpu01:9202/metrics
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

import requests
import typer
import uvicorn

from nvsmi_exporter.api import create_app
from nvsmi_exporter.collector.parsers import collect_once
from nvsmi_exporter.collector.source import ReportSourceError, make_source
from nvsmi_exporter.config import ExporterConfig, setup_logging
from nvsmi_exporter.formatter import render_report

log = logging.getLogger(__name__)

DEFAULT_URL = "http://127.0.0.1:9202/metrics"

app = typer.Typer(add_completion=False, help="Prometheus exporter for nvidia-smi.")

_TEST_MODE = typer.Option(None, "--test-mode/--no-test-mode", help="read the sample file instead of running nvidia-smi")
_SAMPLE_FILE = typer.Option(None, "--sample-file", help="sample report used in test mode")
_NVIDIA_SMI = typer.Option(None, "--nvidia-smi", help="path to the nvidia-smi executable")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="address to bind"),
    port: Optional[int] = typer.Option(None, help="TCP port to bind"),
    nvidia_smi: Optional[str] = _NVIDIA_SMI,
    sample_file: Optional[str] = _SAMPLE_FILE,
    test_mode: Optional[bool] = _TEST_MODE,
    timeout: Optional[float] = typer.Option(None, help="seconds to wait for nvidia-smi (default: forever)"),
    log_level: Optional[str] = typer.Option(None, help="DEBUG, INFO, WARNING, ..."),
):
    """Serve / and /metrics until interrupted."""
    config = ExporterConfig.from_env(
        host=host,
        port=port,
        nvidia_smi_path=nvidia_smi,
        sample_file=sample_file,
        test_mode=test_mode,
        timeout=timeout,
        log_level=log_level.upper() if log_level else None,
    )
    setup_logging(config.log_level)
    if config.test_mode:
        log.info("Test mode is enabled")
    log.info("Nvidia SMI exporter listening on %s:%d", config.host, config.port)
    # log_config=None keeps uvicorn on our basicConfig handlers
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        log_config=None,
    )


@app.command()
def dump(
    nvidia_smi: Optional[str] = _NVIDIA_SMI,
    sample_file: Optional[str] = _SAMPLE_FILE,
    test_mode: Optional[bool] = _TEST_MODE,
):
    """Run the pipeline once and print the metric lines."""
    config = ExporterConfig.from_env(
        nvidia_smi_path=nvidia_smi, sample_file=sample_file, test_mode=test_mode
    )
    setup_logging(config.log_level)
    try:
        report = collect_once(make_source(config))
    except ReportSourceError as exc:
        print("Error:", exc, file=sys.stderr)
        sys.exit(1)
    sys.stdout.write(render_report(report))


@app.command()
def scrape(
    url: str = typer.Argument(DEFAULT_URL, help="metrics URL of a running exporter"),
    timeout: float = typer.Option(10.0, help="request timeout in seconds"),
):
    """Fetch a running exporter's metrics."""
    try:
        r = requests.get(url, timeout=timeout)
    except requests.RequestException as exc:
        print("Error:", exc, file=sys.stderr)
        sys.exit(1)
    if r.status_code != 200:
        print(f"Error: {url} answered {r.status_code}", file=sys.stderr)
        sys.exit(1)
    sys.stdout.write(r.text)


if __name__ == "__main__":
    app()          # `python -m nvsmi_exporter.cli dump --test-mode`

import logging

import pytest
from fastapi.testclient import TestClient

from nvsmi_exporter.api import create_app
from nvsmi_exporter.collector.parsers import parse_report
from nvsmi_exporter.config import ExporterConfig
from nvsmi_exporter.formatter import render_report


@pytest.fixture
def client(snapshot_path):
    config = ExporterConfig(test_mode=True, sample_file=str(snapshot_path))
    return TestClient(create_app(config))


def test_index_links_to_metrics(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]
    assert "<title>Nvidia SMI Exporter</title>" in r.text
    assert '<a href="/metrics">Metrics</a>' in r.text


def test_metrics_body(client, snapshot_xml):
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "text/plain" in r.headers["content-type"]
    assert r.text == render_report(parse_report(snapshot_xml))
    assert r.text.startswith("nvidiasmi_driver_version 495.29\n")


def test_source_failure_is_empty_success(tmp_path, caplog):
    config = ExporterConfig(test_mode=True, sample_file=str(tmp_path / "missing.xml"))
    client = TestClient(create_app(config))
    with caplog.at_level(logging.ERROR, logger="nvsmi_exporter.api"):
        r = client.get("/metrics")
    assert r.status_code == 200
    assert r.text == ""
    assert "Something went wrong with the execution of nvidia-smi" in caplog.text


def test_nvidia_smi_missing_is_empty_success(tmp_path):
    config = ExporterConfig(nvidia_smi_path=str(tmp_path / "nvidia-smi"))
    r = TestClient(create_app(config)).get("/metrics")
    assert r.status_code == 200
    assert r.text == ""


def test_malformed_report_still_serves(tmp_path):
    sample = tmp_path / "broken.xml"
    sample.write_text("<nvidia_smi_log><driver_version>470.1</driver_version><gpu id='x'><uuid>GPU-x")
    client = TestClient(create_app(ExporterConfig(test_mode=True, sample_file=str(sample))))
    r = client.get("/metrics")
    assert r.status_code == 200
    assert r.text.startswith("nvidiasmi_driver_version 470.1\n")


def test_every_scrape_rereads_the_source(tmp_path, snapshot_xml):
    sample = tmp_path / "sample.xml"
    sample.write_bytes(snapshot_xml)
    client = TestClient(create_app(ExporterConfig(test_mode=True, sample_file=str(sample))))
    first = client.get("/metrics").text

    sample.write_bytes(snapshot_xml.replace(b"495.29.05", b"535.104.05"))
    second = client.get("/metrics").text

    assert first.startswith("nvidiasmi_driver_version 495.29\n")
    assert second.startswith("nvidiasmi_driver_version 535.104\n")


def test_create_app_reads_environment(tmp_path, snapshot_xml, monkeypatch):
    (tmp_path / "nvidia-smi.sample.xml").write_bytes(snapshot_xml)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("TEST_MODE", "1")
    app = create_app()
    assert app.state.config.test_mode is True
    r = TestClient(app).get("/metrics")
    assert 'uuid="GPU-abc"' in r.text

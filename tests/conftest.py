from pathlib import Path

import pytest

from nvsmi_exporter.collector.parsers import parse_report

DATA = Path(__file__).parent / "data"


@pytest.fixture
def snapshot_path() -> Path:
    return DATA / "gpu_snapshot.xml"


@pytest.fixture
def snapshot_xml(snapshot_path) -> bytes:
    return snapshot_path.read_bytes()


@pytest.fixture
def report(snapshot_xml):
    return parse_report(snapshot_xml)

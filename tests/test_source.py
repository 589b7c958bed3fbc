import subprocess

import pytest

from nvsmi_exporter.collector import source
from nvsmi_exporter.collector.source import (
    NvidiaSmiSource,
    ReportSource,
    ReportSourceError,
    SampleFileSource,
    make_source,
)
from nvsmi_exporter.config import ExporterConfig


@pytest.fixture
def fake_run(monkeypatch):
    calls = []

    def install(result=None, exc=None):
        def run(cmd, **kwargs):
            calls.append((cmd, kwargs))
            if exc is not None:
                raise exc
            return result

        monkeypatch.setattr(source.subprocess, "run", run)
        return calls

    return install


def test_runs_nvidia_smi_xml_query(fake_run):
    calls = fake_run(subprocess.CompletedProcess(["nvidia-smi"], 0, stdout=b"<nvidia_smi_log/>", stderr=b""))
    assert NvidiaSmiSource().read() == b"<nvidia_smi_log/>"
    cmd, kwargs = calls[0]
    assert cmd == ["/usr/bin/nvidia-smi", "-q", "-x"]
    assert kwargs["check"] is True
    assert kwargs["capture_output"] is True
    assert kwargs["timeout"] is None


def test_custom_path_and_timeout(fake_run):
    calls = fake_run(subprocess.CompletedProcess(["x"], 0, stdout=b"", stderr=b""))
    NvidiaSmiSource("/opt/bin/nvidia-smi", timeout=5).read()
    assert calls[0][0] == ["/opt/bin/nvidia-smi", "-q", "-x"]
    assert calls[0][1]["timeout"] == 5


@pytest.mark.parametrize(
    "exc, message",
    [
        (FileNotFoundError(2, "No such file"), "not found"),
        (PermissionError(13, "Permission denied"), "could not be run"),
        (subprocess.CalledProcessError(9, ["nvidia-smi"], b"", b"NVIDIA-SMI has failed"), "status 9: NVIDIA-SMI has failed"),
        (subprocess.TimeoutExpired(["nvidia-smi"], 3), "timed out after 3s"),
    ],
)
def test_failures_become_source_errors(fake_run, exc, message):
    fake_run(exc=exc)
    with pytest.raises(ReportSourceError, match=message) as info:
        NvidiaSmiSource().read()
    assert info.value.__cause__ is exc


def test_missing_executable(tmp_path):
    with pytest.raises(ReportSourceError):
        NvidiaSmiSource(str(tmp_path / "nvidia-smi")).read()


def test_sample_file(tmp_path):
    sample = tmp_path / "nvidia-smi.sample.xml"
    sample.write_bytes(b"<nvidia_smi_log/>")
    assert SampleFileSource(sample).read() == b"<nvidia_smi_log/>"


def test_sample_file_is_relative_to_working_dir(tmp_path, monkeypatch):
    (tmp_path / "nvidia-smi.sample.xml").write_bytes(b"<x/>")
    monkeypatch.chdir(tmp_path)
    assert SampleFileSource().read() == b"<x/>"


def test_missing_sample_file(tmp_path):
    with pytest.raises(ReportSourceError, match="unreadable"):
        SampleFileSource(tmp_path / "missing.xml").read()


def test_make_source_follows_test_mode():
    live = make_source(ExporterConfig(nvidia_smi_path="/opt/nvidia-smi", timeout=2.5))
    assert isinstance(live, NvidiaSmiSource)
    assert live.command == ["/opt/nvidia-smi", "-q", "-x"]
    assert live.timeout == 2.5

    dry = make_source(ExporterConfig(test_mode=True, sample_file="snap.xml"))
    assert isinstance(dry, SampleFileSource)
    assert str(dry.path) == "snap.xml"


def test_report_source_is_abstract():
    with pytest.raises(TypeError):
        ReportSource()

    class Partial(ReportSource):
        pass

    with pytest.raises(TypeError):
        Partial()
    assert issubclass(NvidiaSmiSource, ReportSource)
    assert issubclass(SampleFileSource, ReportSource)

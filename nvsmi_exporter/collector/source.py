# collector/source.py
from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from nvsmi_exporter.config import ExporterConfig

log = logging.getLogger(__name__)

NVIDIA_SMI_PATH = "/usr/bin/nvidia-smi"
NVIDIA_SMI_ARGS = ("-q", "-x")
SAMPLE_FILE = "nvidia-smi.sample.xml"


class ReportSourceError(RuntimeError):
    """The diagnostics source could not produce a report."""


class ReportSource(ABC):
    """Anything that can hand back one raw nvidia-smi XML report."""

    @abstractmethod
    def read(self) -> bytes:
        """Return the raw report; raise ReportSourceError on failure."""


class NvidiaSmiSource(ReportSource):
    """Run nvidia-smi and return its stdout.

    There is no timeout unless one is given: a hung nvidia-smi hangs the
    caller.
    """

    def __init__(
        self,
        path: str = NVIDIA_SMI_PATH,
        args: Sequence[str] = NVIDIA_SMI_ARGS,
        timeout: Optional[float] = None,
    ) -> None:
        self.path = path
        self.args = tuple(args)
        self.timeout = timeout

    @property
    def command(self) -> list[str]:
        return [self.path, *self.args]

    def read(self) -> bytes:
        try:
            proc = subprocess.run(
                self.command,
                check=True,
                capture_output=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise ReportSourceError(f"nvidia-smi not found at {self.path}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ReportSourceError(f"nvidia-smi timed out after {exc.timeout}s") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode(errors="replace").strip()
            raise ReportSourceError(
                f"nvidia-smi exited with status {exc.returncode}: {stderr}"
            ) from exc
        except OSError as exc:
            raise ReportSourceError(f"nvidia-smi could not be run: {exc}") from exc
        return proc.stdout


class SampleFileSource(ReportSource):
    """Dry-run stand-in: serve a saved report instead of calling nvidia-smi."""

    def __init__(self, path: str | Path = SAMPLE_FILE) -> None:
        self.path = Path(path)

    def read(self) -> bytes:
        # relative paths follow the working directory at request time
        try:
            return self.path.read_bytes()
        except OSError as exc:
            raise ReportSourceError(f"sample report {self.path} unreadable: {exc}") from exc


def make_source(config: "ExporterConfig") -> ReportSource:
    """Pick the report source the configuration asks for."""
    if config.test_mode:
        log.debug("Using sample report %s", config.sample_file)
        return SampleFileSource(config.sample_file)
    return NvidiaSmiSource(config.nvidia_smi_path, timeout=config.timeout)

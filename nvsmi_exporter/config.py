from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from nvsmi_exporter.collector.source import NVIDIA_SMI_PATH, SAMPLE_FILE

# *** How to override at runtime:
# *** Serve ./nvidia-smi.sample.xml instead of calling nvidia-smi, chatty logs
# export TEST_MODE=1
# export NVSMI_EXPORTER_LOG_LEVEL=DEBUG
# nvsmi-exporter serve

TEST_MODE_ENV = "TEST_MODE"
LOG_LEVEL_ENV = "NVSMI_EXPORTER_LOG_LEVEL"

LISTEN_HOST = "0.0.0.0"
LISTEN_PORT = 9202
LOG_FORMAT = "%(asctime)s  %(levelname)s %(message)s"


class ExporterConfig(BaseModel):
    """Everything the exporter needs, passed in explicitly at startup."""

    model_config = ConfigDict(frozen=True)

    test_mode: bool = False
    nvidia_smi_path: str = NVIDIA_SMI_PATH
    sample_file: str = SAMPLE_FILE
    host: str = LISTEN_HOST
    port: int = LISTEN_PORT
    timeout: Optional[float] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "ExporterConfig":
        """Read the environment once; explicit keyword overrides win."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {
            "test_mode": env.get(TEST_MODE_ENV, "") == "1",
            "log_level": env.get(LOG_LEVEL_ENV, "INFO").upper(),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)

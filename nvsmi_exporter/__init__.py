"""nvsmi_exporter
Prometheus exporter for `nvidia-smi -q -x`.

Every scrape runs nvidia-smi, parses the XML report and renders it as text
exposition lines.  Nothing is cached between scrapes.
"""

__version__ = "0.1.0"

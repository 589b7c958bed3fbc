"""nvsmi_exporter.collector
Reads nvidia-smi reports.

Modules
-------
source : run `nvidia-smi -q -x`, or read a saved sample report in test mode
parsers: turn the XML report into the typed RunReport
schema : the RunReport / DeviceReport / ProcessRecord models
"""

__all__ = ["source", "parsers", "schema"]

"""Typed view of the `nvidia-smi -q -x` report.

Every field is a string exactly as nvidia-smi printed it; the alias of a field
is the XML tag it is read from (``@name`` for attributes, ``a/b`` for a nested
path).  Nothing here interprets values, see ``nvsmi_exporter.normalizers``.
"""
from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# ---------- small nested sections -------------------------------------
class DriverModel(_Section):
    current: str = Field("", alias="current_dm")
    pending: str = Field("", alias="pending_dm")


class OperationMode(_Section):
    current: str = Field("", alias="current_gom")
    pending: str = Field("", alias="pending_gom")


class VirtualizationMode(_Section):
    virtualization_mode: str = ""
    host_vgpu_mode: str = ""


class PcieGen(_Section):
    max: str = Field("", alias="max_link_gen")
    current: str = Field("", alias="current_link_gen")


class LinkWidths(_Section):
    max: str = Field("", alias="max_link_width")
    current: str = Field("", alias="current_link_width")


class LinkInfo(_Section):
    pcie_gen: PcieGen = PcieGen()
    link_widths: LinkWidths = LinkWidths()


class PciInfo(_Section):
    bus: str = Field("", alias="pci_bus")
    device: str = Field("", alias="pci_device")
    domain: str = Field("", alias="pci_domain")
    device_id: str = Field("", alias="pci_device_id")
    bus_id: str = Field("", alias="pci_bus_id")
    sub_system_id: str = Field("", alias="pci_sub_system_id")
    link_info: LinkInfo = Field(LinkInfo(), alias="pci_gpu_link_info")
    replay_counter: str = ""
    replay_rollover_counter: str = ""
    tx_util: str = ""
    rx_util: str = ""


class MemoryUsage(_Section):
    total: str = ""
    used: str = ""
    free: str = ""


class Utilization(_Section):
    gpu_util: str = ""
    memory_util: str = ""
    encoder_util: str = ""
    decoder_util: str = ""


class SessionStats(_Section):
    session_count: str = ""
    average_fps: str = ""
    average_latency: str = ""


class Temperature(_Section):
    gpu_temp: str = ""
    gpu_temp_max_threshold: str = ""
    gpu_temp_slow_threshold: str = ""
    gpu_temp_max_gpu_threshold: str = ""
    memory_temp: str = ""
    gpu_temp_max_mem_threshold: str = ""


class PowerReadings(_Section):
    power_state: str = ""
    power_draw: str = ""
    power_limit: str = ""
    default_power_limit: str = ""
    enforced_power_limit: str = ""
    min_power_limit: str = ""
    max_power_limit: str = ""


class Clocks(_Section):
    graphics_clock: str = ""
    sm_clock: str = ""
    mem_clock: str = ""
    video_clock: str = ""


class ClockPolicy(_Section):
    auto_boost: str = ""
    auto_boost_default: str = ""


# ---------- records ----------------------------------------------------
class ProcessRecord(_Section):
    pid: str = ""
    type: str = ""
    process_name: str = ""
    used_memory: str = ""


class DeviceReport(_Section):
    """One ``<gpu>`` element."""

    id: str = Field("", alias="@id")
    product_name: str = ""
    product_brand: str = ""
    display_mode: str = ""
    display_active: str = ""
    persistence_mode: str = ""
    accounting_mode: str = ""
    driver_model: DriverModel = DriverModel()
    serial: str = ""
    uuid: str = ""
    minor_number: str = ""
    vbios_version: str = ""
    multigpu_board: str = ""
    board_id: str = ""
    gpu_part_number: str = ""
    gpu_operation_mode: OperationMode = OperationMode()
    gpu_virtualization_mode: VirtualizationMode = VirtualizationMode()
    pci: PciInfo = PciInfo()
    fan_speed: str = ""
    performance_state: str = ""
    fb_memory_usage: MemoryUsage = MemoryUsage()
    bar1_memory_usage: MemoryUsage = MemoryUsage()
    compute_mode: str = ""
    utilization: Utilization = Utilization()
    encoder_stats: SessionStats = SessionStats()
    fbc_stats: SessionStats = SessionStats()
    temperature: Temperature = Temperature()
    power_readings: PowerReadings = PowerReadings()
    clocks: Clocks = Clocks()
    max_clocks: Clocks = Clocks()
    clock_policy: ClockPolicy = ClockPolicy()
    processes: Tuple[ProcessRecord, ...] = Field((), alias="processes/process_info")


class RunReport(_Section):
    """Root ``<nvidia_smi_log>`` element: one diagnostics run."""

    driver_version: str = ""
    cuda_version: str = ""
    attached_gpus: str = ""
    gpus: Tuple[DeviceReport, ...] = Field((), alias="gpu")

"""Render a RunReport as text exposition lines.

    nvidiasmi_<subsystem>_<field>[_<unit>]{label="value",...} <value>

Every declared metric produces a line for every device (or process), even
when nvidia-smi reported nothing for it, and every sample value is numeric.
Strings (identity, modes) only appear as labels on the two `..._info 1`
lines.  Order: run metrics, then per device its info lines and the device
table, then the process table for each of its processes.
"""
from __future__ import annotations

from operator import attrgetter
from typing import Any, Callable, Iterator, List, NamedTuple, Sequence, Tuple

from .collector.schema import DeviceReport, ProcessRecord, RunReport
from .normalizers import (
    Normalizer,
    flag,
    numeric_strip,
    unit_scale,
    version_extract,
)

NAMESPACE = "nvidiasmi"

Labels = Sequence[Tuple[str, str]]


class MetricSpec(NamedTuple):
    name: str
    get: Callable[[Any], str]
    normalize: Normalizer


def _metric(path: str, name: str, normalize: Normalizer = numeric_strip) -> MetricSpec:
    return MetricSpec(f"{NAMESPACE}_{name}", attrgetter(path), normalize)


RUN_METRICS: Tuple[MetricSpec, ...] = (
    _metric("driver_version", "driver_version", version_extract),
    _metric("cuda_version", "cuda_version", version_extract),
    _metric("attached_gpus", "attached_gpus"),
)

DEVICE_METRICS: Tuple[MetricSpec, ...] = (
    # pci
    _metric("pci.link_info.pcie_gen.max", "pci_pcie_gen_max"),
    _metric("pci.link_info.pcie_gen.current", "pci_pcie_gen_current"),
    _metric("pci.link_info.link_widths.max", "pci_link_width_max_multiplicator", numeric_strip),
    _metric("pci.link_info.link_widths.current", "pci_link_width_current_multiplicator", numeric_strip),
    _metric("pci.replay_counter", "pci_replay_counter"),
    _metric("pci.replay_rollover_counter", "pci_replay_rollover_counter"),
    _metric("pci.tx_util", "pci_tx_util_bytes_per_second", unit_scale),
    _metric("pci.rx_util", "pci_rx_util_bytes_per_second", unit_scale),
    # state
    _metric("fan_speed", "fan_speed_percent", numeric_strip),
    _metric("performance_state", "performance_state_int", numeric_strip),
    # memory
    _metric("fb_memory_usage.total", "fb_memory_usage_total_bytes", unit_scale),
    _metric("fb_memory_usage.used", "fb_memory_usage_used_bytes", unit_scale),
    _metric("fb_memory_usage.free", "fb_memory_usage_free_bytes", unit_scale),
    _metric("bar1_memory_usage.total", "bar1_memory_usage_total_bytes", unit_scale),
    _metric("bar1_memory_usage.used", "bar1_memory_usage_used_bytes", unit_scale),
    _metric("bar1_memory_usage.free", "bar1_memory_usage_free_bytes", unit_scale),
    # utilization
    _metric("utilization.gpu_util", "utilization_gpu_percent", numeric_strip),
    _metric("utilization.memory_util", "utilization_memory_percent", numeric_strip),
    _metric("utilization.encoder_util", "utilization_encoder_percent", numeric_strip),
    _metric("utilization.decoder_util", "utilization_decoder_percent", numeric_strip),
    # encoder / frame buffer capture sessions
    _metric("encoder_stats.session_count", "encoder_session_count"),
    _metric("encoder_stats.average_fps", "encoder_average_fps"),
    _metric("encoder_stats.average_latency", "encoder_average_latency"),
    _metric("fbc_stats.session_count", "fbc_session_count"),
    _metric("fbc_stats.average_fps", "fbc_average_fps"),
    _metric("fbc_stats.average_latency", "fbc_average_latency"),
    # temperature
    _metric("temperature.gpu_temp", "gpu_temp_celsius", unit_scale),
    _metric("temperature.gpu_temp_max_threshold", "gpu_temp_max_threshold_celsius", unit_scale),
    _metric("temperature.gpu_temp_slow_threshold", "gpu_temp_slow_threshold_celsius", unit_scale),
    _metric("temperature.gpu_temp_max_gpu_threshold", "gpu_temp_max_gpu_threshold_celsius", unit_scale),
    _metric("temperature.memory_temp", "memory_temp_celsius", unit_scale),
    _metric("temperature.gpu_temp_max_mem_threshold", "gpu_temp_max_mem_threshold_celsius", unit_scale),
    # power
    _metric("power_readings.power_state", "power_state_int", numeric_strip),
    _metric("power_readings.power_draw", "power_draw_watts", unit_scale),
    _metric("power_readings.power_limit", "power_limit_watts", unit_scale),
    _metric("power_readings.default_power_limit", "default_power_limit_watts", unit_scale),
    _metric("power_readings.enforced_power_limit", "enforced_power_limit_watts", unit_scale),
    _metric("power_readings.min_power_limit", "min_power_limit_watts", unit_scale),
    _metric("power_readings.max_power_limit", "max_power_limit_watts", unit_scale),
    # clocks
    _metric("clocks.graphics_clock", "clock_graphics_hertz", unit_scale),
    _metric("max_clocks.graphics_clock", "clock_graphics_max_hertz", unit_scale),
    _metric("clocks.sm_clock", "clock_sm_hertz", unit_scale),
    _metric("max_clocks.sm_clock", "clock_sm_max_hertz", unit_scale),
    _metric("clocks.mem_clock", "clock_mem_hertz", unit_scale),
    _metric("max_clocks.mem_clock", "clock_mem_max_hertz", unit_scale),
    _metric("clocks.video_clock", "clock_video_hertz", unit_scale),
    _metric("max_clocks.video_clock", "clock_video_max_hertz", unit_scale),
    _metric("clock_policy.auto_boost", "clock_policy_auto_boost", flag),
    _metric("clock_policy.auto_boost_default", "clock_policy_auto_boost_default", flag),
)

PROCESS_METRICS: Tuple[MetricSpec, ...] = (
    _metric("used_memory", "process_used_memory_bytes", unit_scale),
)

GPU_INFO_METRIC = f"{NAMESPACE}_gpu_info"
MODE_INFO_METRIC = f"{NAMESPACE}_gpu_mode_info"


# ---------- line formatting --------------------------------------------
def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def format_line(name: str, labels: Labels, value: str) -> str:
    """One exposition line; the label block is left out when there are no labels."""
    if labels:
        name += "{" + ",".join(f'{key}="{_escape(val)}"' for key, val in labels) + "}"
    return f"{name} {value}\n"


def device_labels(gpu: DeviceReport) -> Labels:
    return (("id", gpu.id), ("uuid", gpu.uuid), ("name", gpu.product_name))


def info_labels(gpu: DeviceReport) -> Labels:
    return (
        *device_labels(gpu),
        ("brand", gpu.product_brand),
        ("serial", gpu.serial),
        ("board_id", gpu.board_id),
        ("part_number", gpu.gpu_part_number),
        ("vbios_version", gpu.vbios_version),
        ("minor_number", gpu.minor_number),
        ("pci_bus_id", gpu.pci.bus_id),
        ("pci_domain", gpu.pci.domain),
        ("pci_bus", gpu.pci.bus),
        ("pci_device", gpu.pci.device),
        ("pci_device_id", gpu.pci.device_id),
        ("pci_sub_system_id", gpu.pci.sub_system_id),
        ("multigpu_board", gpu.multigpu_board),
    )


def mode_labels(gpu: DeviceReport) -> Labels:
    """Textual modes ride on labels; sample values must stay numeric."""
    return (
        *device_labels(gpu),
        ("compute_mode", gpu.compute_mode),
        ("persistence_mode", gpu.persistence_mode),
        ("display_mode", gpu.display_mode),
        ("display_active", gpu.display_active),
        ("accounting_mode", gpu.accounting_mode),
        ("driver_model_current", gpu.driver_model.current),
        ("driver_model_pending", gpu.driver_model.pending),
        ("gpu_operation_mode_current", gpu.gpu_operation_mode.current),
        ("gpu_operation_mode_pending", gpu.gpu_operation_mode.pending),
        ("virtualization_mode", gpu.gpu_virtualization_mode.virtualization_mode),
        ("host_vgpu_mode", gpu.gpu_virtualization_mode.host_vgpu_mode),
    )


def process_labels(gpu: DeviceReport, proc: ProcessRecord) -> Labels:
    return (
        *device_labels(gpu),
        ("process_pid", proc.pid),
        ("process_name", proc.process_name),
        ("process_type", proc.type),
    )


def _emit(specs: Sequence[MetricSpec], record: Any, labels: Labels) -> Iterator[str]:
    for spec in specs:
        yield format_line(spec.name, labels, spec.normalize(spec.get(record)))


# ---------- public API ---------------------------------------------------
def iter_lines(report: RunReport) -> Iterator[str]:
    yield from _emit(RUN_METRICS, report, ())
    for gpu in report.gpus:
        yield format_line(GPU_INFO_METRIC, info_labels(gpu), "1")
        yield format_line(MODE_INFO_METRIC, mode_labels(gpu), "1")
        yield from _emit(DEVICE_METRICS, gpu, device_labels(gpu))
        for proc in gpu.processes:
            yield from _emit(PROCESS_METRICS, proc, process_labels(gpu, proc))


def format_report(report: RunReport) -> List[str]:
    return list(iter_lines(report))


def render_report(report: RunReport) -> str:
    """The full response body for one scrape."""
    return "".join(iter_lines(report))

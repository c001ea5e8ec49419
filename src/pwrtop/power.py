"""Linear power draw estimate.

This is a heuristic, not a measurement: CPU draw scales linearly with
utilisation up to the configured TDP, and memory draw scales with resident
gigabytes. Idle floor, per-core scaling, I/O and GPU draw are not modelled.
"""

import math

from pwrtop.models import PowerModelConfig

BYTES_PER_GB = 1024**3


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def cpu_watts(cpu_percent: float, model: PowerModelConfig) -> float:
    """CPU share of the estimate."""
    pct = max(0.0, min(100.0, _finite(cpu_percent)))
    return pct / 100 * model.cpu_tdp_watts


def mem_watts(mem_gb: float, model: PowerModelConfig) -> float:
    """Memory share of the estimate."""
    return max(0.0, _finite(mem_gb)) * model.mem_watts_per_gb


def estimate_watts(cpu_percent: float, mem_gb: float, model: PowerModelConfig) -> float:
    """Estimated draw in watts for a CPU percentage and resident memory."""
    return cpu_watts(cpu_percent, model) + mem_watts(mem_gb, model)


def bytes_to_gb(size: int) -> float:
    """Convert bytes to binary gigabytes."""
    return size / BYTES_PER_GB

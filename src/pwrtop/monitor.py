"""Sampling engine for pwrtop."""

import asyncio
import logging
import math
import os
import time
from collections.abc import Callable

from pwrtop.models import (
    BatteryInfo,
    BatteryStatus,
    CpuHistory,
    Failed,
    HostInfo,
    MemoryInfo,
    Ok,
    PowerModelConfig,
    ProcessSample,
    RawProcess,
    SystemSnapshot,
)
from pwrtop.power import bytes_to_gb, cpu_watts, estimate_watts, mem_watts
from pwrtop.sources import MetricSource

logger = logging.getLogger(__name__)

UNKNOWN_CPU = "Unknown CPU"
UNKNOWN_PROFILE = "Unknown"
NOT_AVAILABLE = "N/A"

# Floor for the elapsed time between samples, in seconds
MIN_DT = 0.001


async def detect_host(source: MetricSource) -> HostInfo:
    """Detect logical core count and CPU model, falling back to defaults."""
    cores_result, model_result = await asyncio.gather(
        source.query_logical_cores(), source.query_cpu_model()
    )
    match cores_result:
        case Ok(value=cores) if cores > 0:
            logical_cores = cores
        case _:
            logical_cores = os.cpu_count() or 1
    match model_result:
        case Ok(value=model) if model.strip():
            cpu_model = model.strip()
        case _:
            cpu_model = UNKNOWN_CPU
    logger.info("Detected %d logical cores, CPU %s", logical_cores, cpu_model)
    return HostInfo(logical_cores=logical_cores, cpu_model=cpu_model)


class SystemSampler:
    """Builds a SystemSnapshot from one round of host queries."""

    def __init__(self, source: MetricSource, power: PowerModelConfig) -> None:
        self._source = source
        self._power = power

    def _memory(self, result: Ok[MemoryInfo] | Failed) -> MemoryInfo:
        match result:
            case Ok(value=mem) if mem.total_bytes > 0:
                return mem
            case Ok():
                logger.debug("Memory query returned no total, using host fallback")
            case Failed(reason=reason):
                logger.debug("Memory query failed (%s), using host fallback", reason)
        match self._source.host_memory():
            case Ok(value=mem):
                return mem
            case Failed(reason=reason):
                logger.debug("Host memory fallback failed: %s", reason)
                return MemoryInfo(total_bytes=0, free_bytes=0)

    async def sample(self) -> SystemSnapshot:
        """Query CPU, memory, process count and uptime concurrently."""
        cpu_result, mem_result, count_result, uptime_result = await asyncio.gather(
            self._source.query_cpu_percent(),
            self._source.query_memory(),
            self._source.query_process_count(),
            self._source.query_uptime(),
        )

        cpu_percent = cpu_result.value if isinstance(cpu_result, Ok) else 0.0
        if not math.isfinite(cpu_percent):
            cpu_percent = 0.0
        mem = self._memory(mem_result)
        total = max(0, mem.total_bytes)
        used = max(0, min(total, total - mem.free_bytes))
        process_count = count_result.value if isinstance(count_result, Ok) else 0
        uptime = uptime_result.value if isinstance(uptime_result, Ok) else NOT_AVAILABLE

        return SystemSnapshot(
            cpu_percent=cpu_percent,
            total_mem_bytes=total,
            used_mem_bytes=used,
            process_count=process_count,
            uptime=uptime or NOT_AVAILABLE,
            cpu_watts=cpu_watts(cpu_percent, self._power),
            mem_watts=mem_watts(bytes_to_gb(used), self._power),
        )


def compute_samples(
    raw: list[RawProcess],
    history: CpuHistory,
    now: float,
    logical_cores: int,
    power: PowerModelConfig,
) -> tuple[list[ProcessSample], CpuHistory]:
    """
    Derive per-process CPU rates from the change in cumulative CPU time.

    A pid missing from ``history`` is new this tick and gets a rate of 0.
    The returned history holds exactly the pids of ``raw``.
    """
    dt = max(now - history.last_sample, MIN_DT)
    cores = max(1, logical_cores)
    samples: list[ProcessSample] = []

    for proc in raw:
        cpu_seconds = proc.cpu_seconds
        previous = history.cpu_seconds.get(proc.pid)
        delta = max(0.0, cpu_seconds - previous) if previous is not None else 0.0
        cpu_percent = delta / dt / cores * 100
        if not math.isfinite(cpu_percent) or cpu_percent < 0:
            cpu_percent = 0.0

        mem_bytes = max(0, proc.working_set_bytes)
        est = estimate_watts(cpu_percent, bytes_to_gb(mem_bytes), power)

        samples.append(
            ProcessSample(
                pid=proc.pid,
                name=proc.name,
                command_line=proc.command_line.strip(),
                cumulative_cpu_seconds=cpu_seconds,
                instant_cpu_percent=cpu_percent,
                mem_bytes=mem_bytes,
                est_watts=est if math.isfinite(est) else 0.0,
            )
        )

    new_history = CpuHistory(
        cpu_seconds={s.pid: s.cumulative_cpu_seconds for s in samples},
        last_sample=now,
    )
    return samples, new_history


class ProcessSampler:
    """
    Turns raw process readings into ProcessSamples.

    Owns the CpuHistory and replaces it wholesale every tick.
    """

    def __init__(
        self,
        source: MetricSource,
        power: PowerModelConfig,
        logical_cores: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the ProcessSampler.

        Args:
            source: Metric source to query.
            power: Power model coefficients.
            logical_cores: Core count used to normalise CPU rates.
            clock: Monotonic clock in seconds.
        """
        self._source = source
        self._power = power
        self._clock = clock
        self.logical_cores = logical_cores
        self._history = CpuHistory(last_sample=clock())

    @property
    def history(self) -> CpuHistory:
        """CPU history from the latest sample."""
        return self._history

    async def _raw(self) -> list[RawProcess]:
        match await self._source.query_processes():
            case Ok(value=raw):
                return raw
            case Failed(reason=reason):
                logger.debug("Process query failed: %s", reason)
                return []

    async def seed(self) -> None:
        """Prime the history so the first tick has a baseline."""
        raw = await self._raw()
        self._history = CpuHistory(
            cpu_seconds={proc.pid: proc.cpu_seconds for proc in raw},
            last_sample=self._clock(),
        )
        logger.debug("Seeded CPU history with %d processes", len(raw))

    async def sample(self) -> list[ProcessSample]:
        """Sample all processes; an unavailable source yields an empty list."""
        raw = await self._raw()
        samples, self._history = compute_samples(
            raw, self._history, self._clock(), self.logical_cores, self._power
        )
        return samples


async def sample_battery(source: MetricSource) -> BatteryInfo | None:
    """Battery charge and status, None when absent or unreadable."""
    match await source.query_battery():
        case Ok(value=None):
            return None
        case Ok(value=raw):
            charge = raw.charge_percent
            if charge is not None:
                charge = max(0, min(100, charge))
            return BatteryInfo(charge_percent=charge, status=BatteryStatus.from_code(raw.status_code))
        case Failed(reason=reason):
            logger.debug("Battery query failed: %s", reason)
            return None


async def sample_power_profile(source: MetricSource) -> str:
    """Name of the active power profile."""
    match await source.query_power_profile():
        case Ok(value=profile) if profile.strip():
            return profile.strip()
        case Ok():
            return UNKNOWN_PROFILE
        case Failed(reason=reason):
            logger.debug("Power profile query failed: %s", reason)
            return UNKNOWN_PROFILE

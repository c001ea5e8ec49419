"""Metric sources for pwrtop.

Every query is asynchronous and returns ``Ok(value)`` or ``Failed(reason)``
instead of raising, so a slow or broken source degrades one field of the
dashboard without aborting the tick.
"""

import asyncio
import logging
import os
import platform
import re
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, TypeVar

import psutil

from pwrtop.models import (
    TICKS_PER_SECOND,
    Failed,
    KillResult,
    MemoryInfo,
    Ok,
    RawBattery,
    RawProcess,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

COMMAND_TIMEOUT = 5.0
PLATFORM_PROFILE_PATH = Path("/sys/firmware/acpi/platform_profile")
CPUINFO_PATH = Path("/proc/cpuinfo")

_PARENTHESIZED = re.compile(r"\(([^)]+)\)")
_WHITESPACE = re.compile(r"\s+")

# Attributes fetched per process in one pass
PROCESS_ATTRS = ["pid", "name", "cmdline", "cpu_times", "memory_info"]


class MetricSource(Protocol):
    """Platform queries consumed by the samplers."""

    async def query_cpu_percent(self) -> Ok[float] | Failed: ...

    async def query_memory(self) -> Ok[MemoryInfo] | Failed: ...

    async def query_process_count(self) -> Ok[int] | Failed: ...

    async def query_uptime(self) -> Ok[str] | Failed: ...

    async def query_processes(self) -> Ok[list[RawProcess]] | Failed: ...

    async def query_battery(self) -> Ok[RawBattery | None] | Failed: ...

    async def query_power_profile(self) -> Ok[str] | Failed: ...

    async def query_logical_cores(self) -> Ok[int] | Failed: ...

    async def query_cpu_model(self) -> Ok[str] | Failed: ...

    def host_memory(self) -> Ok[MemoryInfo] | Failed: ...

    async def kill_process(self, pid: int) -> KillResult: ...


def format_uptime(seconds: float) -> str:
    """Format an uptime as ``"{d}d {h}h {m}m"``."""
    seconds = max(0, int(seconds))
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    return f"{days}d {hours}h {rest // 60}m"


def parse_power_scheme(output: str) -> str | None:
    """Extract the scheme name from ``powercfg /getactivescheme`` output.

    The name is the parenthesized part, e.g. ``(Balanced)``; without one the
    trimmed output is returned. Blank output gives None.
    """
    text = output.strip()
    match = _PARENTHESIZED.search(text)
    if match:
        return match.group(1)
    return text or None


def battery_status_code(percent: float | None, plugged: bool | None) -> int:
    """Map a psutil battery reading onto a Win32_Battery status code."""
    if plugged:
        if percent is not None and percent >= 100:
            return 3  # fully charged
        return 6 if percent is not None else 2
    if plugged is None:
        return 0  # unknown
    if percent is not None and percent <= 5:
        return 5  # critical
    if percent is not None and percent <= 10:
        return 4  # low
    return 1  # discharging


def _seconds_to_ticks(seconds: float) -> int:
    return int(round(seconds * TICKS_PER_SECOND))


def _raw_process(info: dict) -> RawProcess:
    cmdline = info.get("cmdline") or []
    cpu_times = info.get("cpu_times")
    mem_info = info.get("memory_info")
    return RawProcess(
        pid=info.get("pid", 0),
        name=info.get("name") or "",
        command_line=" ".join(cmdline).strip(),
        kernel_ticks=_seconds_to_ticks(cpu_times.system) if cpu_times else 0,
        user_ticks=_seconds_to_ticks(cpu_times.user) if cpu_times else 0,
        working_set_bytes=mem_info.rss if mem_info else 0,
    )


class PsutilSource:
    """
    Metric source backed by psutil.

    Blocking psutil calls run in a worker thread; external commands run as
    asyncio subprocesses with a timeout.
    """

    def __init__(self, command_timeout: float = COMMAND_TIMEOUT) -> None:
        """
        Initialize the PsutilSource.

        Args:
            command_timeout: Seconds to wait for an external command.
        """
        self._command_timeout = command_timeout
        # Initialize CPU percent (first call returns 0.0)
        psutil.cpu_percent(interval=None)

    async def _call(self, what: str, func: Callable[[], T]) -> Ok[T] | Failed:
        try:
            return Ok(await asyncio.to_thread(func))
        except (psutil.Error, OSError, ValueError, RuntimeError) as e:
            logger.debug("%s query failed: %s", what, e)
            return Failed(f"{what}: {e}")

    async def _run_command(self, *args: str) -> Ok[str] | Failed:
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug("Cannot run %s: %s", args[0], e)
            return Failed(f"{args[0]}: {e}")
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), self._command_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return Failed(f"{args[0]}: timed out")
        if proc.returncode != 0:
            return Failed(f"{args[0]}: exit status {proc.returncode}")
        return Ok(stdout.decode(errors="replace"))

    async def query_cpu_percent(self) -> Ok[float] | Failed:
        return await self._call("cpu", lambda: float(psutil.cpu_percent(interval=None)))

    async def query_memory(self) -> Ok[MemoryInfo] | Failed:
        def read() -> MemoryInfo:
            mem = psutil.virtual_memory()
            return MemoryInfo(total_bytes=mem.total, free_bytes=mem.available)

        return await self._call("memory", read)

    async def query_process_count(self) -> Ok[int] | Failed:
        return await self._call("process count", lambda: len(psutil.pids()))

    async def query_uptime(self) -> Ok[str] | Failed:
        return await self._call(
            "uptime", lambda: format_uptime(time.time() - psutil.boot_time())
        )

    async def query_processes(self) -> Ok[list[RawProcess]] | Failed:
        return await self._call("processes", self._collect_processes)

    def _collect_processes(self) -> list[RawProcess]:
        """
        Collect raw readings for all running processes.

        Processes that die mid-poll, deny access or are zombies are skipped.
        """
        processes: list[RawProcess] = []
        for proc in psutil.process_iter(attrs=PROCESS_ATTRS, ad_value=None):
            try:
                processes.append(_raw_process(proc.info))
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return processes

    async def query_battery(self) -> Ok[RawBattery | None] | Failed:
        def read() -> RawBattery | None:
            battery = psutil.sensors_battery()
            if battery is None:
                return None
            percent = battery.percent
            return RawBattery(
                charge_percent=int(round(percent)) if percent is not None else None,
                status_code=battery_status_code(percent, battery.power_plugged),
            )

        if not hasattr(psutil, "sensors_battery"):
            return Failed("battery: not supported on this platform")
        return await self._call("battery", read)

    async def query_power_profile(self) -> Ok[str] | Failed:
        if sys.platform == "win32":
            result = await self._run_command("powercfg", "/getactivescheme")
            match result:
                case Ok(value=output):
                    scheme = parse_power_scheme(output)
                    return Ok(scheme) if scheme else Failed("powercfg: empty output")
                case Failed():
                    return result
        if sys.platform.startswith("linux"):
            if PLATFORM_PROFILE_PATH.exists():
                profile = await self._call(
                    "power profile", lambda: PLATFORM_PROFILE_PATH.read_text().strip()
                )
                if isinstance(profile, Ok) and profile.value:
                    return profile
            result = await self._run_command("powerprofilesctl", "get")
            match result:
                case Ok(value=output) if output.strip():
                    return Ok(output.strip())
                case Ok():
                    return Failed("powerprofilesctl: empty output")
                case Failed():
                    return result
        return Failed(f"power profile: unsupported platform {sys.platform}")

    async def query_logical_cores(self) -> Ok[int] | Failed:
        def read() -> int:
            count = psutil.cpu_count(logical=True)
            if not count:
                raise RuntimeError("logical core count unavailable")
            return count

        return await self._call("logical cores", read)

    async def query_cpu_model(self) -> Ok[str] | Failed:
        def read() -> str:
            if CPUINFO_PATH.exists():
                for line in CPUINFO_PATH.read_text(errors="replace").splitlines():
                    key, _, value = line.partition(":")
                    if key.strip() == "model name" and value.strip():
                        return _WHITESPACE.sub(" ", value.strip())
            model = _WHITESPACE.sub(" ", platform.processor().strip())
            if not model:
                raise RuntimeError("CPU model unavailable")
            return model

        return await self._call("cpu model", read)

    def host_memory(self) -> Ok[MemoryInfo] | Failed:
        try:
            page = os.sysconf("SC_PAGE_SIZE")
            total = os.sysconf("SC_PHYS_PAGES") * page
            free = os.sysconf("SC_AVPHYS_PAGES") * page
        except (AttributeError, ValueError, OSError) as e:
            return Failed(f"host memory: {e}")
        return Ok(MemoryInfo(total_bytes=total, free_bytes=free))

    async def kill_process(self, pid: int) -> KillResult:
        def kill() -> None:
            psutil.Process(pid).kill()

        try:
            await asyncio.to_thread(kill)
        except psutil.NoSuchProcess:
            return KillResult(pid=pid, ok=False, message=f"Failed to kill PID {pid}: no such process")
        except psutil.AccessDenied:
            return KillResult(pid=pid, ok=False, message=f"Failed to kill PID {pid}: access denied")
        except (psutil.Error, OSError) as e:
            return KillResult(pid=pid, ok=False, message=f"Failed to kill PID {pid}: {e}")
        return KillResult(pid=pid, ok=True, message=f"Killed PID {pid}")

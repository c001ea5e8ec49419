"""Pytest configuration and fixtures."""

import pytest

from pwrtop.models import (
    TICKS_PER_SECOND,
    Failed,
    KillResult,
    MemoryInfo,
    Ok,
    ProcessSample,
    RawBattery,
    RawProcess,
)

GB = 1024**3


def raw_process(pid: int, cpu_seconds: float = 0.0, name: str = "", mem: int = 0, cmd: str = "") -> RawProcess:
    """Build a RawProcess whose kernel+user time equals ``cpu_seconds``."""
    ticks = int(round(cpu_seconds * TICKS_PER_SECOND))
    return RawProcess(
        pid=pid,
        name=name or f"proc{pid}",
        command_line=cmd,
        kernel_ticks=ticks // 2,
        user_ticks=ticks - ticks // 2,
        working_set_bytes=mem,
    )


def sample(
    pid: int,
    name: str = "",
    cmd: str = "",
    cpu: float = 0.0,
    mem: int = 0,
    watts: float = 0.0,
) -> ProcessSample:
    return ProcessSample(
        pid=pid,
        name=name or f"proc{pid}",
        command_line=cmd,
        cumulative_cpu_seconds=0.0,
        instant_cpu_percent=cpu,
        mem_bytes=mem,
        est_watts=watts,
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    """Scripted MetricSource. Set attributes to Ok(...) or Failed(...)."""

    def __init__(self) -> None:
        self.cpu_percent: Ok[float] | Failed = Ok(25.0)
        self.memory: Ok[MemoryInfo] | Failed = Ok(MemoryInfo(total_bytes=8 * GB, free_bytes=6 * GB))
        self.process_count: Ok[int] | Failed = Ok(3)
        self.uptime: Ok[str] | Failed = Ok("1d 2h 3m")
        self.processes: Ok[list[RawProcess]] | Failed = Ok(
            [
                raw_process(1, 10.0, name="init", mem=10 * 1024**2, cmd="/sbin/init"),
                raw_process(42, 1.0, name="python", mem=GB, cmd="python app.py"),
            ]
        )
        self.battery: Ok[RawBattery | None] | Failed = Ok(RawBattery(charge_percent=80, status_code=1))
        self.power_profile: Ok[str] | Failed = Ok("balanced")
        self.logical_cores: Ok[int] | Failed = Ok(4)
        self.cpu_model: Ok[str] | Failed = Ok("Test CPU @ 3.00GHz")
        self.host_mem: Ok[MemoryInfo] | Failed = Ok(MemoryInfo(total_bytes=4 * GB, free_bytes=3 * GB))
        self.kill_ok = True
        self.killed: list[int] = []
        self.process_queries = 0

    async def query_cpu_percent(self) -> Ok[float] | Failed:
        return self.cpu_percent

    async def query_memory(self) -> Ok[MemoryInfo] | Failed:
        return self.memory

    async def query_process_count(self) -> Ok[int] | Failed:
        return self.process_count

    async def query_uptime(self) -> Ok[str] | Failed:
        return self.uptime

    async def query_processes(self) -> Ok[list[RawProcess]] | Failed:
        self.process_queries += 1
        return self.processes

    async def query_battery(self) -> Ok[RawBattery | None] | Failed:
        return self.battery

    async def query_power_profile(self) -> Ok[str] | Failed:
        return self.power_profile

    async def query_logical_cores(self) -> Ok[int] | Failed:
        return self.logical_cores

    async def query_cpu_model(self) -> Ok[str] | Failed:
        return self.cpu_model

    def host_memory(self) -> Ok[MemoryInfo] | Failed:
        return self.host_mem

    async def kill_process(self, pid: int) -> KillResult:
        self.killed.append(pid)
        if self.kill_ok:
            return KillResult(pid=pid, ok=True, message=f"Killed PID {pid}")
        return KillResult(pid=pid, ok=False, message=f"Failed to kill PID {pid}: access denied")


def scripted_ask(*answers: str | None):
    """Build an ask coroutine that replays ``answers`` and records prompts."""
    remaining = list(answers)
    prompts: list[str] = []

    async def ask(prompt: str) -> str | None:
        prompts.append(prompt)
        return remaining.pop(0)

    ask.prompts = prompts
    return ask


@pytest.fixture
def fake_source() -> FakeSource:
    """Create a scripted metric source."""
    return FakeSource()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=100.0)

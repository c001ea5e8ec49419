"""Tick loop tying samplers, ranking and presentation together."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from pwrtop.models import (
    BatteryInfo,
    HostInfo,
    PowerModelConfig,
    ProcessSample,
    SystemSnapshot,
    ViewState,
)
from pwrtop.monitor import (
    ProcessSampler,
    SystemSampler,
    detect_host,
    sample_battery,
    sample_power_profile,
)
from pwrtop.ranking import rank_processes
from pwrtop.sources import MetricSource

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Phase of the tick loop."""

    IDLE = "idle"
    SAMPLING = "sampling"
    RENDERING = "rendering"
    WAITING = "waiting"
    STOPPED = "stopped"


@dataclass(slots=True, frozen=True)
class TickResult:
    """
    Everything one frame is rendered from.

    ``processes`` is ranked under the view as it was at the tick; ``samples``
    keeps every process so a changed view can be re-ranked before the next tick.
    """

    system: SystemSnapshot
    processes: list[ProcessSample]
    battery: BatteryInfo | None
    power_profile: str
    samples: list[ProcessSample] = field(default_factory=list)


Present = Callable[[TickResult], Awaitable[None] | None]


class Scheduler:
    """
    Samples all sources once per tick and hands the result to a presenter.

    The view state is read at tick boundaries only; its writer is the input
    controller.
    """

    def __init__(self, source: MetricSource, view: ViewState, power: PowerModelConfig) -> None:
        self._source = source
        self.view = view
        self.power = power
        self.host = HostInfo(logical_cores=1, cpu_model="Unknown CPU")
        self._system = SystemSampler(source, power)
        self._processes = ProcessSampler(source, power)
        self._stop = asyncio.Event()
        self.state = SchedulerState.IDLE
        self.ticks = 0

    @property
    def process_sampler(self) -> ProcessSampler:
        """The sampler owning the CPU history."""
        return self._processes

    async def start(self) -> None:
        """Detect host facts and seed the CPU history."""
        self.host = await detect_host(self._source)
        self._processes.logical_cores = self.host.logical_cores
        await self._processes.seed()

    async def tick(self) -> TickResult:
        """Fetch all four sources concurrently and rank the processes."""
        self.state = SchedulerState.SAMPLING
        system, samples, battery, profile = await asyncio.gather(
            self._system.sample(),
            self._processes.sample(),
            sample_battery(self._source),
            sample_power_profile(self._source),
        )
        return TickResult(
            system=system,
            processes=rank_processes(samples, self.view),
            battery=battery,
            power_profile=profile,
            samples=samples,
        )

    async def run(self, present: Present) -> None:
        """Tick until stopped. A failing tick is logged and never ends the loop."""
        while not self._stop.is_set():
            try:
                result = await self.tick()
                self.state = SchedulerState.RENDERING
                outcome = present(result)
                if outcome is not None:
                    await outcome
                self.ticks += 1
            except Exception:
                logger.exception("Tick failed")

            if self._stop.is_set():
                break
            self.state = SchedulerState.WAITING
            try:
                await asyncio.wait_for(self._stop.wait(), self.view.refresh_interval_ms / 1000)
            except asyncio.TimeoutError:
                pass
        self.state = SchedulerState.STOPPED

    def stop(self) -> None:
        """Stop after the current tick, or at once if waiting."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        """True once stop() has been called."""
        return self._stop.is_set()

    @property
    def ticking(self) -> bool:
        """True while a tick is sampling or being presented."""
        return self.state in (SchedulerState.SAMPLING, SchedulerState.RENDERING)

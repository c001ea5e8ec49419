"""Data models for pwrtop."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")

# Raw CPU times are reported in 100-nanosecond units
TICKS_PER_SECOND = 10_000_000

MIN_REFRESH_MS = 200
MAX_REFRESH_MS = 60_000


@dataclass(slots=True, frozen=True)
class Ok(Generic[T]):
    """Successful metric query."""

    value: T


@dataclass(slots=True, frozen=True)
class Failed:
    """Failed metric query and the reason it failed."""

    reason: str


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEM = "mem"
    PID = "pid"
    NAME = "name"
    POWER = "power"

    @property
    def default_descending(self) -> bool:
        """Direction applied when the key is selected."""
        return self in (SortKey.CPU, SortKey.MEM, SortKey.POWER)


class BatteryStatus(Enum):
    """Battery state, labelled for display."""

    DISCHARGING = "Discharging"
    AC_ONLINE = "AC/Online"
    FULLY_CHARGED = "Fully charged"
    LOW = "Low"
    CRITICAL = "Critical"
    CHARGING = "Charging"
    CHARGING_HIGH = "Charging (High)"
    CHARGING_LOW = "Charging (Low)"
    CHARGING_CRITICAL = "Charging (Critical)"
    UNDEFINED = "Undefined"
    PARTIALLY_CHARGED = "Partially charged"
    UNKNOWN = "Unknown"

    @classmethod
    def from_code(cls, code: int | None) -> "BatteryStatus":
        """Map a Win32_Battery status code (1-11) to a status."""
        return _BATTERY_CODES.get(code, cls.UNKNOWN)


_BATTERY_CODES = {
    1: BatteryStatus.DISCHARGING,
    2: BatteryStatus.AC_ONLINE,
    3: BatteryStatus.FULLY_CHARGED,
    4: BatteryStatus.LOW,
    5: BatteryStatus.CRITICAL,
    6: BatteryStatus.CHARGING,
    7: BatteryStatus.CHARGING_HIGH,
    8: BatteryStatus.CHARGING_LOW,
    9: BatteryStatus.CHARGING_CRITICAL,
    10: BatteryStatus.UNDEFINED,
    11: BatteryStatus.PARTIALLY_CHARGED,
}


@dataclass(slots=True, frozen=True)
class PowerModelConfig:
    """Coefficients of the linear power model. Fixed for the process lifetime."""

    cpu_tdp_watts: float = 15.0
    mem_watts_per_gb: float = 1.5


@dataclass(slots=True, frozen=True)
class HostInfo:
    """Host facts detected once at startup."""

    logical_cores: int
    cpu_model: str


@dataclass(slots=True, frozen=True)
class MemoryInfo:
    """Physical memory counters in bytes."""

    total_bytes: int
    free_bytes: int


@dataclass(slots=True, frozen=True)
class RawProcess:
    """One process as reported by the metric source."""

    pid: int
    name: str
    command_line: str
    kernel_ticks: int
    user_ticks: int
    working_set_bytes: int

    @property
    def cpu_seconds(self) -> float:
        """Cumulative kernel plus user CPU time in seconds."""
        return (self.kernel_ticks + self.user_ticks) / TICKS_PER_SECOND


@dataclass(slots=True, frozen=True)
class RawBattery:
    """Battery reading as reported by the metric source."""

    charge_percent: int | None
    status_code: int | None


@dataclass(slots=True, frozen=True)
class BatteryInfo:
    """Battery charge and state. Absent on desktops."""

    charge_percent: int | None
    status: BatteryStatus


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """Immutable snapshot of a process for one tick."""

    pid: int
    name: str
    command_line: str
    cumulative_cpu_seconds: float
    instant_cpu_percent: float  # >= 0, may exceed 100
    mem_bytes: int
    est_watts: float


@dataclass(slots=True, frozen=True)
class SystemSnapshot:
    """Snapshot of overall system state."""

    cpu_percent: float  # as reported, may be noisy
    total_mem_bytes: int
    used_mem_bytes: int
    process_count: int
    uptime: str
    cpu_watts: float
    mem_watts: float

    @property
    def est_total_watts(self) -> float:
        """Estimated system draw in watts."""
        return self.cpu_watts + self.mem_watts

    @property
    def mem_percent(self) -> float:
        """Used memory as a percentage of total, 0 when total is unknown."""
        if self.total_mem_bytes <= 0:
            return 0.0
        return self.used_mem_bytes / self.total_mem_bytes * 100


@dataclass(slots=True)
class CpuHistory:
    """Cumulative CPU seconds per pid from the previous tick."""

    cpu_seconds: dict[int, float] = field(default_factory=dict)
    last_sample: float = 0.0


@dataclass(slots=True, frozen=True)
class KillResult:
    """Outcome of a process termination request."""

    pid: int
    ok: bool
    message: str


def clamp_interval(interval_ms: int) -> int:
    """Clamp a refresh interval to the supported range."""
    return max(MIN_REFRESH_MS, min(MAX_REFRESH_MS, int(interval_ms)))


@dataclass(slots=True)
class ViewState:
    """
    User-adjustable view configuration.

    Written only by the input controller, read by the scheduler at tick
    boundaries. Every field is a primitive so a single assignment is atomic
    with respect to the event loop.
    """

    sort_key: SortKey = SortKey.CPU
    sort_descending: bool = True
    filter_text: str = ""
    top_n: int = 20
    refresh_interval_ms: int = 1000

    def set_sort(self, key: SortKey) -> None:
        """Select a sort key with its default direction."""
        self.sort_key = key
        self.sort_descending = key.default_descending

    def reverse(self) -> None:
        """Flip the sort direction."""
        self.sort_descending = not self.sort_descending

    def faster(self) -> None:
        """Shorten the refresh interval by 20%."""
        self.refresh_interval_ms = clamp_interval(int(self.refresh_interval_ms * 0.8))

    def slower(self) -> None:
        """Lengthen the refresh interval by 25%."""
        self.refresh_interval_ms = clamp_interval(-(-self.refresh_interval_ms * 5 // 4))

    def set_filter(self, text: str) -> None:
        """Set the process filter; blank text clears it."""
        self.filter_text = text.strip()

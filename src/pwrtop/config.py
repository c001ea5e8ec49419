"""Startup configuration for pwrtop."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pwrtop.exceptions import ConfigError
from pwrtop.models import PowerModelConfig, ViewState, clamp_interval

DEFAULT_INTERVAL_MS = 1000
DEFAULT_TOP_N = 20
DEFAULT_CPU_TDP_W = 15.0
DEFAULT_MEM_W_PER_GB = 1.5


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


@dataclass(slots=True, frozen=True)
class MonitorConfig:
    """Runtime knobs, all plain numbers with documented defaults."""

    interval_ms: int = DEFAULT_INTERVAL_MS
    top_n: int = DEFAULT_TOP_N
    cpu_tdp_watts: float = DEFAULT_CPU_TDP_W
    mem_watts_per_gb: float = DEFAULT_MEM_W_PER_GB

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "MonitorConfig":
        """Build a config whose power model defaults come from the environment.

        Reads CPU_TDP_W and MEM_W_PER_GB.
        """
        env = os.environ if environ is None else environ
        return cls(
            cpu_tdp_watts=_env_float(env, "CPU_TDP_W", DEFAULT_CPU_TDP_W),
            mem_watts_per_gb=_env_float(env, "MEM_W_PER_GB", DEFAULT_MEM_W_PER_GB),
        )

    def validate(self) -> "MonitorConfig":
        """Return a copy with the interval clamped.

        Raises:
            ConfigError: If top N or the power coefficients are out of range.
        """
        if self.top_n < 1:
            raise ConfigError(f"top must be at least 1, got {self.top_n}")
        if self.cpu_tdp_watts <= 0:
            raise ConfigError(f"cpu TDP must be positive, got {self.cpu_tdp_watts}")
        if self.mem_watts_per_gb < 0:
            raise ConfigError(f"memory W/GB must not be negative, got {self.mem_watts_per_gb}")
        return MonitorConfig(
            interval_ms=clamp_interval(self.interval_ms),
            top_n=self.top_n,
            cpu_tdp_watts=self.cpu_tdp_watts,
            mem_watts_per_gb=self.mem_watts_per_gb,
        )

    @property
    def power_model(self) -> PowerModelConfig:
        return PowerModelConfig(
            cpu_tdp_watts=self.cpu_tdp_watts,
            mem_watts_per_gb=self.mem_watts_per_gb,
        )

    def initial_view(self) -> ViewState:
        """View state the dashboard opens with."""
        return ViewState(top_n=self.top_n, refresh_interval_ms=clamp_interval(self.interval_ms))

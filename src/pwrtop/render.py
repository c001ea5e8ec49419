"""Dashboard frame rendering.

``render_frame`` is pure: identical inputs and width give an identical frame.
The frame is a Rich ``Text``, displayed by the textual app. Process names,
command lines and other host-supplied strings are appended as plain spans and
never parsed as markup.
"""

from dataclasses import dataclass

from rich.text import Text

from pwrtop.models import (
    BatteryInfo,
    HostInfo,
    PowerModelConfig,
    ProcessSample,
    SystemSnapshot,
    ViewState,
)

TITLE = "pwrtop - process and power monitor"
KEYS_HELP = (
    "Keys: c=CPU  m=MEM  p=PID  n=NAME  w=POWER  r=reverse  /=filter  "
    "+=faster  -=slower  k=kill  q=quit"
)

MIN_COMMAND_WIDTH = 10


@dataclass(slots=True, frozen=True)
class Columns:
    """Process table column widths."""

    pid: int = 6
    cpu: int = 7
    pwr: int = 9
    mem: int = 10
    name: int = 18
    command: int = MIN_COMMAND_WIDTH

    @classmethod
    def for_width(cls, width: int) -> "Columns":
        """Columns for a terminal width; the command column takes the rest."""
        base = cls()
        fixed = base.pid + base.cpu + base.pwr + base.mem + base.name + 5
        return cls(command=max(MIN_COMMAND_WIDTH, width - fixed))


def pad(text: object, width: int) -> str:
    """Pad or hard-cut ``text`` to exactly ``width`` characters."""
    s = "" if text is None else str(text)
    if len(s) > width:
        return s[:width]
    return s.ljust(width)


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    if size <= 0:
        return "0 B"
    value = float(size)
    for unit in ["B", "KB", "MB", "GB"]:
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def clamp_percent(value: float) -> float:
    """Clamp a percentage into 0-100 for display."""
    return max(0.0, min(100.0, value or 0.0))


def cpu_color(percent: float) -> str:
    """Color for a CPU percentage: high above 70, medium above 40."""
    if percent > 70:
        return "red"
    if percent > 40:
        return "yellow"
    return "green"


def mem_color(percent: float) -> str:
    """Color for a memory percentage: high above 80, medium above 60."""
    if percent > 80:
        return "red"
    if percent > 60:
        return "yellow"
    return "green"


def row_color(sample: ProcessSample, cpu_tdp_watts: float) -> str | None:
    """Highlight color for a process row, None when unremarkable."""
    if sample.instant_cpu_percent > 50 or sample.est_watts > cpu_tdp_watts * 0.5:
        return "red"
    if sample.instant_cpu_percent > 20 or sample.est_watts > cpu_tdp_watts * 0.2:
        return "yellow"
    return None


def bar_width_for(width: int) -> int:
    """Gauge width for a terminal width, between 10 and 40 cells."""
    return min(40, max(10, int(width * 0.4)))


def progress_bar(percent: float, width: int, color: str) -> Text:
    """Fixed-width gauge; filled cells are ``round(pct / 100 * width)``."""
    filled = round(clamp_percent(percent) / 100 * width)
    return Text.assemble(("█" * filled, color), ("░" * (width - filled), "dim"))


def truncate_model(model: str, width: int) -> str:
    """Shorten a CPU model string so the header line fits."""
    if len(model) > width - 20:
        return model[: max(0, width - 23)] + "..."
    return model


def battery_label(battery: BatteryInfo | None) -> str:
    """Battery charge and status, ``N/A`` without a battery."""
    if battery is None:
        return "N/A"
    charge = f"{battery.charge_percent}%" if battery.charge_percent is not None else "?%"
    return f"{charge} ({battery.status.value})"


def _system_lines(
    system: SystemSnapshot,
    battery: BatteryInfo | None,
    power_profile: str,
    width: int,
) -> list[Text]:
    cpu_pct = clamp_percent(system.cpu_percent)
    mem_pct = clamp_percent(system.mem_percent)
    bar_width = bar_width_for(width)
    c_color = cpu_color(cpu_pct)
    m_color = mem_color(mem_pct)

    cpu_line = Text.assemble(
        " CPU  ",
        (pad(f"{cpu_pct:.1f}%", 7), c_color),
        " [",
        progress_bar(cpu_pct, bar_width, c_color),
        "]   ",
        ("Processes:", "dim"),
        f" {system.process_count}   ",
        ("Uptime:", "dim"),
        f" {system.uptime}",
    )
    mem_line = Text.assemble(
        " MEM  ",
        (pad(f"{mem_pct:.1f}%", 7), m_color),
        " [",
        progress_bar(mem_pct, bar_width, m_color),
        "]   ",
        ("Used:", "dim"),
        f" {format_bytes(system.used_mem_bytes)}  ",
        ("Total:", "dim"),
        f" {format_bytes(system.total_mem_bytes)}",
    )
    total_w = max(0.0, system.est_total_watts)
    pwr_line = Text.assemble(
        " PWR  ",
        (pad(f"~{total_w:.1f} W", 9), "yellow"),
        "   ",
        (
            f"CPU: {max(0.0, system.cpu_watts):.1f}W, "
            f"RAM: {max(0.0, system.mem_watts):.1f}W",
            "dim",
        ),
        "   ",
        ("Scheme:", "dim"),
        f" {power_profile or 'Unknown'}   ",
        ("Battery:", "dim"),
        f" {battery_label(battery)}",
    )
    return [cpu_line, mem_line, pwr_line]


def _process_lines(
    processes: list[ProcessSample],
    cpu_tdp_watts: float,
    width: int,
) -> list[Text]:
    cols = Columns.for_width(width)
    header = " ".join(
        [
            pad("PID", cols.pid),
            pad("CPU%", cols.cpu),
            pad("PWR(W)", cols.pwr),
            pad("MEM", cols.mem),
            pad("NAME", cols.name),
            pad("COMMAND", cols.command),
        ]
    )
    lines = [Text(header, style="underline")]
    for proc in processes:
        line = " ".join(
            [
                pad(proc.pid, cols.pid),
                pad(f"{proc.instant_cpu_percent:.1f}", cols.cpu),
                pad(f"{proc.est_watts:.2f}", cols.pwr),
                pad(format_bytes(proc.mem_bytes), cols.mem),
                pad(proc.name, cols.name),
                pad(proc.command_line, cols.command),
            ]
        )
        lines.append(Text(line, style=row_color(proc, cpu_tdp_watts) or ""))
    return lines


def render_frame(
    system: SystemSnapshot,
    processes: list[ProcessSample],
    battery: BatteryInfo | None,
    power_profile: str,
    view: ViewState,
    host: HostInfo,
    power: PowerModelConfig,
    width: int,
    clock_label: str = "",
) -> Text:
    """
    Render one dashboard frame.

    Args:
        system: Host-wide snapshot for this tick.
        processes: Ranked processes to list.
        battery: Battery state, None on hosts without one.
        power_profile: Active power profile name.
        view: Current sort/filter settings, shown in the heading.
        host: Detected core count and CPU model.
        power: Power model coefficients.
        width: Terminal width in columns.
        clock_label: Wall-clock text for the title line.

    Returns:
        The frame as styled text, one line per row.
    """
    width = max(1, width)
    title = Text(TITLE, style="bold cyan")
    if clock_label:
        title.append("   ")
        title.append(f"[{clock_label}]", style="dim")

    lines = [
        title,
        Text.assemble(
            ("CPU:", "dim"),
            f" {truncate_model(host.cpu_model, width)}   ",
            ("Logical cores:", "dim"),
            f" {host.logical_cores}   ",
            ("TDP model:", "dim"),
            f" {power.cpu_tdp_watts:g}W CPU, {power.mem_watts_per_gb:g}W/GB RAM",
        ),
        Text(),
        Text("SYSTEM", style="bold"),
        *_system_lines(system, battery, power_profile, width),
        Text(),
        Text.assemble(
            ("PROCESSES", "bold"),
            "  ",
            (
                f"(sorted by {view.sort_key.value.upper()} "
                f"{'desc' if view.sort_descending else 'asc'}, top {view.top_n}, "
                f"filter: {view.filter_text or 'none'})",
                "dim",
            ),
        ),
        Text(),
        *_process_lines(processes, power.cpu_tdp_watts, width),
        Text(),
        Text(KEYS_HELP, style="dim"),
    ]
    return Text("\n").join(lines)

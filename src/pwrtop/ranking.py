"""Filtering and sorting of the process list."""

from typing import assert_never

from pwrtop.models import ProcessSample, SortKey, ViewState


def matches_filter(sample: ProcessSample, needle: str) -> bool:
    """Case-insensitive substring match on name or command line."""
    if not needle:
        return True
    needle = needle.lower()
    return needle in sample.name.lower() or needle in sample.command_line.lower()


def sort_value(sample: ProcessSample, key: SortKey) -> float | int | str:
    """Value a sample is ordered by for ``key``."""
    match key:
        case SortKey.CPU:
            return sample.instant_cpu_percent
        case SortKey.MEM:
            return sample.mem_bytes
        case SortKey.PID:
            return sample.pid
        case SortKey.NAME:
            return sample.name.lower()
        case SortKey.POWER:
            return sample.est_watts
        case _:
            assert_never(key)


def rank_processes(samples: list[ProcessSample], view: ViewState) -> list[ProcessSample]:
    """
    Filter, sort and truncate samples for display.

    The sort is stable in both directions, so ties keep sampler order.
    Truncation to ``view.top_n`` happens after the full sort.
    """
    filtered = [s for s in samples if matches_filter(s, view.filter_text)]
    key = view.sort_key
    ordered = sorted(filtered, key=lambda s: sort_value(s, key), reverse=view.sort_descending)
    return ordered[: max(0, view.top_n)]

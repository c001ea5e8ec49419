"""Tests for process filtering and sorting."""

from conftest import sample

from pwrtop.models import SortKey, ViewState
from pwrtop.ranking import matches_filter, rank_processes, sort_value


def _pids(samples):
    return [s.pid for s in samples]


class TestFilter:
    """Tests for the substring filter."""

    def test_empty_filter_matches_everything(self):
        assert matches_filter(sample(1, name="anything"), "")

    def test_case_insensitive_name_match(self):
        assert matches_filter(sample(1, name="Chrome Helper"), "chrome")

    def test_chromium_does_not_match_chrome(self):
        assert not matches_filter(sample(1, name="chromium"), "chrome")
        assert matches_filter(sample(1, name="chromium"), "chrom")

    def test_command_line_match(self):
        assert matches_filter(sample(1, name="python", cmd="python -m HTTP.server"), "http")

    def test_filter_applied_before_ranking(self):
        samples = [
            sample(1, name="Chrome Helper", cpu=5),
            sample(2, name="chromium", cpu=90),
            sample(3, name="bash", cmd="/opt/google/chrome/chrome", cpu=10),
        ]
        view = ViewState(filter_text="chrome")
        assert _pids(rank_processes(samples, view)) == [3, 1]


class TestSort:
    """Tests for sort order and stability."""

    def test_mem_descending_is_stable(self):
        """Test equal-memory entries keep their input order."""
        samples = [sample(1, mem=100), sample(2, mem=300), sample(3, mem=100)]
        view = ViewState()
        view.set_sort(SortKey.MEM)
        assert _pids(rank_processes(samples, view)) == [2, 1, 3]

    def test_mem_ascending_is_stable(self):
        samples = [sample(1, mem=100), sample(2, mem=300), sample(3, mem=100)]
        view = ViewState(sort_key=SortKey.MEM, sort_descending=False)
        assert _pids(rank_processes(samples, view)) == [1, 3, 2]

    def test_cpu_descending(self):
        samples = [sample(1, cpu=1.0), sample(2, cpu=30.0), sample(3, cpu=7.5)]
        assert _pids(rank_processes(samples, ViewState())) == [2, 3, 1]

    def test_pid_ascending(self):
        samples = [sample(30), sample(4), sample(12)]
        view = ViewState()
        view.set_sort(SortKey.PID)
        assert _pids(rank_processes(samples, view)) == [4, 12, 30]

    def test_name_ascending_ignores_case(self):
        samples = [sample(1, name="zsh"), sample(2, name="Bash"), sample(3, name="apache")]
        view = ViewState()
        view.set_sort(SortKey.NAME)
        assert _pids(rank_processes(samples, view)) == [3, 2, 1]

    def test_power_descending(self):
        samples = [sample(1, watts=0.2), sample(2, watts=4.0), sample(3, watts=1.0)]
        view = ViewState()
        view.set_sort(SortKey.POWER)
        assert _pids(rank_processes(samples, view)) == [2, 3, 1]

    def test_every_sort_key_has_a_value(self):
        for key in SortKey:
            sort_value(sample(1), key)


class TestTruncation:
    """Tests for top-N truncation."""

    def test_truncates_after_full_sort(self):
        """Test the top N come from the whole list, not its first N entries."""
        samples = [sample(pid, cpu=float(pid)) for pid in range(1, 11)]
        view = ViewState(top_n=3)
        assert _pids(rank_processes(samples, view)) == [10, 9, 8]

    def test_top_n_larger_than_list(self):
        samples = [sample(1), sample(2)]
        assert len(rank_processes(samples, ViewState(top_n=50))) == 2

    def test_input_list_is_not_modified(self):
        samples = [sample(1, cpu=1), sample(2, cpu=2)]
        rank_processes(samples, ViewState())
        assert _pids(samples) == [1, 2]

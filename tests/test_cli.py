"""Tests for the command-line interface."""

import logging
from pathlib import Path

import pytest

from pwrtop import cli
from pwrtop.config import MonitorConfig


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging so other tests keep log propagation."""
    yield
    for handler in cli.logger.handlers:
        handler.close()
    cli.logger.handlers.clear()
    cli.logger.propagate = True
    cli.logger.setLevel(logging.NOTSET)


def _parse(*argv: str):
    return cli.build_parser(MonitorConfig()).parse_args(list(argv))


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = _parse()
        assert args.interval == 1000
        assert args.top == 20
        assert args.cpu_tdp == 15.0
        assert args.mem_watt_gb == 1.5
        assert args.log_file is None
        assert args.verbose is False

    def test_short_options(self):
        args = _parse("-i", "500", "-t", "10")
        assert args.interval == 500
        assert args.top == 10

    def test_power_options(self):
        args = _parse("--cpu-tdp", "28", "--mem-watt-gb", "0.5")
        config = cli.config_from_args(args)
        assert config.cpu_tdp_watts == 28.0
        assert config.mem_watts_per_gb == 0.5

    def test_env_defaults_flow_into_parser(self):
        defaults = MonitorConfig.from_env({"CPU_TDP_W": "65"})
        args = cli.build_parser(defaults).parse_args([])
        assert args.cpu_tdp == 65.0

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            _parse("--version")
        assert exc.value.code == 0
        assert "pwrtop" in capsys.readouterr().out

    def test_help_mentions_keys(self, capsys):
        with pytest.raises(SystemExit):
            _parse("--help")
        out = capsys.readouterr().out
        assert "kill a process" in out
        assert "--cpu-tdp" in out


class TestMain:
    """Tests for main() exit codes."""

    def test_invalid_top_exits_nonzero(self, capsys):
        assert cli.main(["--top", "0"]) == 1
        assert "top must be at least 1" in capsys.readouterr().err

    def test_bad_environment_exits_nonzero(self, monkeypatch, capsys):
        monkeypatch.setenv("MEM_W_PER_GB", "many")
        assert cli.main([]) == 1
        assert "MEM_W_PER_GB" in capsys.readouterr().err

    def test_no_terminal_exits_nonzero(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setattr(cli, "has_terminal", lambda: False)
        assert cli.main(["--log-file", str(tmp_path / "pwrtop.log")]) == 1
        assert "interactive terminal" in capsys.readouterr().err


class TestLogging:
    def test_log_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "pwrtop.log"
        cli.configure_logging(log_file, verbose=True)
        logging.getLogger("pwrtop.monitor").debug("hello from the sampler")
        for handler in cli.logger.handlers:
            handler.flush()
        assert "hello from the sampler" in log_file.read_text()
        assert cli.logger.level == logging.DEBUG

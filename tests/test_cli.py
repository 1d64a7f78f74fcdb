"""Tests for the command-line entry point: flags, exit codes, signals, profiling."""

import argparse
import os
import pstats
import signal
import subprocess
import sys
import threading
import time
from pathlib import Path

import pytest

import prime_training_set as cli


class TestParseInt:

    @pytest.mark.parametrize("text, expected", [
        ("42", 42),
        ("1e9", 10**9),
        ("1E3", 1000),
        ("1_000", 1000),
        (" 7 ", 7),
    ])
    def test_accepts(self, text, expected):
        assert cli.parse_int(text) == expected

    @pytest.mark.parametrize("text", ["1.5", "abc", "inf", "1e-3", ""])
    def test_rejects(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            cli.parse_int(text)


class TestArgs:

    def test_defaults(self):
        args = cli.build_parser().parse_args(["--csv", "x.csv"])
        cfg = cli.config_from_args(args)
        assert (cfg.start, cfg.end) == (1, 10**9)
        assert cfg.mode == "basic"
        assert cfg.tuple_files["twin"] == os.path.join("data", "twin-1e9.txt")

    def test_no_tuples_and_data_dir(self):
        args = cli.build_parser().parse_args(["--csv", "x.csv", "--no-tuples"])
        assert cli.config_from_args(args).tuple_files == {}
        args = cli.build_parser().parse_args(["--csv", "x.csv", "--data-dir", "tuples"])
        assert cli.config_from_args(args).tuple_files["sexy"] == os.path.join("tuples", "sexy-1e9.txt")


class TestMain:

    def test_missing_sink_exits_1(self, capsys):
        assert cli.main(["--end", "10"]) == 1
        err = capsys.readouterr().err
        assert "Must use either --json or --csv" in err
        assert "--help" in err

    def test_runs_to_completion(self, tmp_path, capsys):
        out = tmp_path / "out.csv"
        code = cli.main(["--start", "1", "--end", "30", "--csv", str(out),
                         "--no-tuples", "--workers", "2", "--silent"])
        assert code == 0
        lines = out.read_text().splitlines()
        assert len(lines) == 1 + 29
        assert capsys.readouterr().out == ""

    def test_banner_unless_silent(self, tmp_path, capsys):
        code = cli.main(["--end", "5", "--json", str(tmp_path / "o.jsonl"),
                         "--no-tuples", "--workers", "1"])
        assert code == 0
        assert f"Running prime-training-set ({cli.__version__}) using 1 workers." in capsys.readouterr().out

    def test_fatal_io_exits_1(self, tmp_path):
        assert cli.main(["--end", "5", "--json", str(tmp_path), "--no-tuples", "--silent"]) == 1

    def test_cpuprofile_written(self, tmp_path):
        prof = tmp_path / "cpu.prof"
        code = cli.main(["--end", "50", "--csv", str(tmp_path / "o.csv"), "--no-tuples",
                         "--silent", "--workers", "1", "--cpuprofile", str(prof)])
        assert code == 0
        assert prof.exists()
        pstats.Stats(str(prof))

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_sigterm_prints_name_and_exits_1(self, tmp_path, capsys):
        out = tmp_path / "o.jsonl"
        timer = threading.Timer(0.5, os.kill, args=(os.getpid(), signal.SIGTERM))
        timer.start()
        try:
            code = cli.main(["--end", "1e8", "--json", str(out), "--no-tuples",
                             "--silent", "--workers", "2"])
        finally:
            timer.cancel()
        assert code == 1
        assert "SIGTERM" in capsys.readouterr().out
        assert out.stat().st_size > 0

    def test_grace_must_be_positive(self, tmp_path, capsys):
        assert cli.main(["--end", "5", "--json", str(tmp_path / "o.jsonl"), "--grace", "0"]) == 1
        assert "grace" in capsys.readouterr().err


SCRIPT = Path(__file__).resolve().parents[1] / "prime_training_set.py"


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
class TestInterruptDuringLongTotient:
    """Values near 1e9 take hours each; an interrupt must not wait for them."""

    def start(self, tmp_path, *extra):
        proc = subprocess.Popen(
            [sys.executable, str(SCRIPT), "--start", "1e9", "--end", "1000000100",
             "--json", str(tmp_path / "o.jsonl"), "--no-tuples", "--workers", "1", *extra],
            stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, cwd=str(tmp_path))
        assert proc.stdout.readline().startswith("Running prime-training-set")
        time.sleep(1.0)
        return proc

    def finish(self, proc, timeout):
        try:
            out, err = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()
            pytest.fail(f"still running {timeout}s after the interrupt")
        return out, err

    def test_exits_when_grace_runs_out(self, tmp_path):
        proc = self.start(tmp_path, "--grace", "1")
        t0 = time.monotonic()
        proc.send_signal(signal.SIGINT)
        out, err = self.finish(proc, timeout=15)
        assert proc.returncode == 1
        assert "SIGINT" in out
        assert "Grace period expired" in err
        assert time.monotonic() - t0 < 15

    def test_second_signal_exits_immediately(self, tmp_path):
        proc = self.start(tmp_path, "--grace", "600")
        proc.send_signal(signal.SIGTERM)
        time.sleep(0.5)
        proc.send_signal(signal.SIGTERM)
        out, err = self.finish(proc, timeout=10)
        assert proc.returncode == 1
        assert "SIGTERM" in out
        assert "received while draining" in err

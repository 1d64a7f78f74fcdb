#!/usr/bin/env python3
# prime_training_set.py — labelled integer corpus for machine-learning experiments
#
# Streams every integer in [start, end), classifies it (primality, prime-power
# factors, totient, prime k-tuple membership, and in "features" mode digit
# histogram, small-prime residues, sin/cos and the first offset within Pi)
# and appends one record per integer to a JSON-lines and/or CSV file.
#
# Usage:
#   python prime_training_set.py --end 1e6 --csv out.csv
#   python prime_training_set.py --start 1000 --end 2000 --json out.jsonl --mode features --pi data/pi-100mb.txt
#
# Runs until the range is exhausted (exit 0) or SIGINT/SIGTERM arrives. On the
# first signal the name is printed and in-flight records are drained for up to
# --grace seconds; a second signal or the end of the grace period flushes the
# sinks and exits at once. Either way the exit status is 1.

from __future__ import annotations
import argparse
import cProfile
import decimal
import logging
import os
import signal
import sys
import threading
from typing import List, Optional

from pipeline import Pipeline, PipelineConfig
from records import MODES
from tuples import default_tuple_files

__version__ = "0.1.0"

logger = logging.getLogger("prime_training_set")

# ---------- helpers ----------
def parse_int(s: str) -> int:
    """Accept '1000000' as well as '1e6'; reject anything non-integral."""
    try:
        d = decimal.Decimal(s.strip().replace("_", ""))
    except decimal.InvalidOperation:
        raise argparse.ArgumentTypeError(f"not an integer: {s!r}")
    if not d.is_finite() or d != d.to_integral_value():
        raise argparse.ArgumentTypeError(f"not an integer: {s!r}")
    return int(d)

def configure_logging(silent: bool = False, log_file: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.WARNING if silent else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="prime-training-set",
        description="Stream integers, classify each one and write a labelled training corpus.")
    ap.add_argument("--start", type=parse_int, default=1, help="Start on number (default 1)")
    ap.add_argument("--end", type=parse_int, default=10**9, help="End before number (default 1e9)")
    ap.add_argument("--json", dest="json_path", help="Output to file formatted as JSON lines")
    ap.add_argument("--csv", dest="csv_path", help="Output to file formatted as CSV")
    ap.add_argument("--mode", choices=MODES, default="basic",
                    help="basic: factors/totient/tuples; features: digits, residues, Pi index, partial totients")
    ap.add_argument("--workers", type=int, help="classifier threads (default = physical cores, halved for features)")
    ap.add_argument("--work-buffer", type=int, help="capacity of the work queue (default = 2 x workers)")
    ap.add_argument("--output-buffer", type=int, default=1000, help="capacity of the output queue")
    ap.add_argument("--window", type=int, default=100, help="moving-average window for s/op")
    ap.add_argument("--data-dir", default="data", help="directory holding the tuple files")
    ap.add_argument("--no-tuples", action="store_true", help="skip building the tuple index")
    ap.add_argument("--pi", dest="pi_path", default="data/pi-100mb.txt",
                    help="Pi digits, one line (e.g. 3.1415...); features mode only")
    ap.add_argument("--ordered", action="store_true", help="write records in input order")
    ap.add_argument("--silent", action="store_true", help="Don't print anything")
    ap.add_argument("--cpuprofile", help="write cpu profile to file")
    ap.add_argument("--grace", type=float, default=5.0,
                    help="seconds to drain in-flight records after SIGINT/SIGTERM before exiting anyway")
    ap.add_argument("--log-file", help="also append log records to this file")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap

def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    return PipelineConfig(
        start=args.start,
        end=args.end,
        json_path=args.json_path,
        csv_path=args.csv_path,
        mode=args.mode,
        workers=args.workers,
        work_buffer=args.work_buffer,
        output_buffer=args.output_buffer,
        window=args.window,
        tuple_files={} if args.no_tuples else default_tuple_files(args.data_dir),
        pi_path=args.pi_path,
        ordered=args.ordered,
        silent=args.silent,
    )

# ---------- main ----------
def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    configure_logging(args.silent, args.log_file)

    try:
        if not args.grace > 0:
            raise ValueError("grace must be > 0")
        pipe = Pipeline(config_from_args(args))
    except ValueError as e:
        print(e, file=sys.stderr)
        print(f"Try '{ap.prog} --help' for usage.", file=sys.stderr)
        return 1

    if not args.silent:
        print(f"Running prime-training-set ({__version__}) using {pipe.workers} workers.", flush=True)

    caught: List[str] = []
    deadline: List[threading.Timer] = []

    def exit_now(reason: str) -> None:
        logger.warning("%s, exiting with %d records unwritten", reason, pipe.in_flight())
        pipe.flush()
        sys.stdout.flush()
        for h in logging.getLogger().handlers:
            h.flush()
        os._exit(1)

    def on_signal(signum, frame):
        name = signal.Signals(signum).name
        if caught:
            exit_now(f"{name} received while draining")
        caught.append(name)
        print(name, flush=True)
        logger.info("%s received, draining in-flight records for up to %.1fs", name, args.grace)
        pipe.stop()
        timer = threading.Timer(args.grace, exit_now, args=("Grace period expired",))
        timer.daemon = True
        timer.start()
        deadline.append(timer)

    previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    profiler = cProfile.Profile() if args.cpuprofile else None
    try:
        if profiler: profiler.enable()
        pipe.run()
    except OSError as e:
        logger.critical("Fatal I/O error: %s", e)
        return 1
    finally:
        for timer in deadline:
            timer.cancel()
        if profiler:
            profiler.disable()
            profiler.dump_stats(args.cpuprofile)
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return 1 if caught else 0

if __name__ == "__main__":
    sys.exit(main())

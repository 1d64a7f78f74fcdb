# pipeline.py — streaming classification pipeline
#
#   generator ──(work queue)──> N classifier workers ──(output queue)──> writer
#
# Both queues are bounded and blocking; they are the only backpressure and the
# only hand-off points between threads. Each Record is owned by one thread at
# a time. The tuple index is built and frozen before the generator starts.
# Records reach the writer in completion order unless `ordered` is set, in
# which case a reorder buffer releases them by ascending value.

from __future__ import annotations
import csv
import heapq
import json
import logging
import os
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import psutil

from classify import Classifier, make_classifier
from movavg import MovingAverage
from pireader import PiReader
from records import MODES, Record, csv_columns
from tuples import TupleIndex, build_tuple_index, default_tuple_files

logger = logging.getLogger(__name__)

_DONE = object()           # end-of-stream marker on both queues
_POLL = 0.1                # seconds between abort checks while blocked

# ---------- config ----------
def approx_physical_workers() -> int:
    return max(1, psutil.cpu_count(logical=False) or os.cpu_count() or 1)

@dataclass
class PipelineConfig:
    start: int = 1
    end: int = 10**9                       # exclusive
    json_path: Optional[str] = None
    csv_path: Optional[str] = None
    mode: str = "basic"
    workers: Optional[int] = None          # None -> physical cores (halved for "features")
    work_buffer: Optional[int] = None      # None -> 2 * workers
    output_buffer: int = 1000
    window: int = 100
    tuple_files: Dict[str, str] = field(default_factory=default_tuple_files)
    pi_path: Optional[str] = "data/pi-100mb.txt"
    ordered: bool = False
    silent: bool = False
    status_interval: float = 1.0

    def validate(self) -> None:
        if not self.json_path and not self.csv_path:
            raise ValueError("Must use either --json or --csv flag. (e.g. --csv=test.csv)")
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {', '.join(MODES)}")
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) must be >= start ({self.start})")
        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.work_buffer is not None and self.work_buffer < 1:
            raise ValueError("work buffer must be >= 1")
        if self.output_buffer < 1:
            raise ValueError("output buffer must be >= 1")
        if self.window < 1:
            raise ValueError("window must be >= 1")
        if self.status_interval <= 0:
            raise ValueError("status interval must be > 0")

    def resolved_workers(self) -> int:
        if self.workers is not None:
            return self.workers
        n = approx_physical_workers()
        # leave headroom for the I/O-bound Pi lookups
        return max(1, n // 2) if self.mode == "features" else n

    def resolved_work_buffer(self) -> int:
        return self.work_buffer if self.work_buffer is not None else 2 * self.resolved_workers()

# ---------- telemetry ----------
@dataclass(frozen=True)
class TelemetrySample:
    primes: int
    composites: int
    printed: int
    avg_seconds: float

class Telemetry:
    """Monotonic counters plus a moving average of per-record latency."""

    def __init__(self, window: int = 100):
        self._lock = threading.Lock()
        self._primes = 0
        self._composites = 0
        self._printed = 0
        self._latency = MovingAverage(window)

    def record_classified(self, prime: bool, seconds: float) -> None:
        with self._lock:
            if prime:
                self._primes += 1
            else:
                self._composites += 1
            self._latency.add(seconds)

    def record_printed(self) -> None:
        with self._lock:
            self._printed += 1

    def snapshot(self) -> TelemetrySample:
        with self._lock:
            return TelemetrySample(self._primes, self._composites, self._printed, self._latency.average())

class StatusPrinter:
    """Samples telemetry every `interval` seconds and prints per-second rates on one line."""

    def __init__(self, telemetry: Telemetry, interval: float = 1.0):
        self.telemetry = telemetry
        self.interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="status", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        self._thread.join(timeout=2 * self.interval)

    @staticmethod
    def format(prev: TelemetrySample, cur: TelemetrySample, interval: float) -> str:
        rate = lambda a, b: int(round((b - a) / interval))
        return (f"\rProcessed primes: {rate(prev.primes, cur.primes)} /s, "
                f"Composites: {rate(prev.composites, cur.composites)} /s, "
                f"Printed: {rate(prev.printed, cur.printed)} /s   [{cur.avg_seconds:.3f} s/op]      ")

    def _run(self) -> None:
        prev = self.telemetry.snapshot()
        while not self._stop.wait(self.interval):
            cur = self.telemetry.snapshot()
            print(self.format(prev, cur, self.interval), end="", flush=True)
            prev = cur
        print(flush=True)

# ---------- ordering ----------
class ReorderBuffer:
    """Releases records strictly by ascending value, starting at `first`."""

    def __init__(self, first: int):
        self.next_value = first
        self._heap: List[Tuple[int, Record]] = []

    def push(self, rec: Record) -> List[Record]:
        heapq.heappush(self._heap, (rec.value, rec))
        ready = []
        while self._heap and self._heap[0][0] == self.next_value:
            ready.append(heapq.heappop(self._heap)[1])
            self.next_value += 1
        return ready

    def drain(self) -> List[Record]:
        ready = [heapq.heappop(self._heap)[1] for _ in range(len(self._heap))]
        if ready:
            self.next_value = ready[-1].value + 1
        return ready

    def __len__(self) -> int:
        return len(self._heap)

# ---------- writer ----------
def _open_append(path: str):
    return open(path, "a", newline="", encoding="utf-8",
                opener=lambda p, flags: os.open(p, flags, 0o600))

class RecordWriter:
    """JSON-lines and/or CSV sinks, opened once in append mode."""

    def __init__(self, mode: str, json_path: Optional[str] = None, csv_path: Optional[str] = None):
        self.mode = mode
        self._lock = threading.Lock()     # flush() is called from other threads
        self._jf = None
        self._cf = None
        self._csv = None
        try:
            if json_path:
                self._jf = _open_append(json_path)
            if csv_path:
                self._cf = _open_append(csv_path)
                self._csv = csv.writer(self._cf, lineterminator="\n")
                if self._cf.tell() == 0:
                    self._csv.writerow(csv_columns(mode))
        except OSError:
            self.close()
            raise
        self._csv_columns = csv_columns(mode)

    def write(self, rec: Record) -> None:
        row = rec.to_row(self.mode)
        with self._lock:
            if self._jf is not None:
                self._jf.write(json.dumps(row, separators=(",", ":")) + "\n")
            if self._csv is not None:
                self._csv.writerow([row[c] for c in self._csv_columns])

    def flush(self) -> None:
        with self._lock:
            for f in (self._jf, self._cf):
                if f is not None:
                    f.flush()

    def close(self) -> None:
        with self._lock:
            for f in (self._jf, self._cf):
                if f is not None:
                    f.close()
            self._jf = self._cf = self._csv = None

# ---------- pipeline ----------
@dataclass
class PipelineSummary:
    generated: int
    primes: int
    composites: int
    printed: int
    interrupted: bool
    wall_seconds: float

class Pipeline:
    """
    Wires generator, classifier pool and writer together for one run.

    `index` and `pi` may be injected; otherwise the tuple index is built from
    `config.tuple_files` and, in "features" mode, a PiReader is opened on
    `config.pi_path`. run() returns when the range is exhausted (or stop()
    was called) and every in-flight record has been written. A writer
    error aborts the run and is re-raised from run().
    """

    def __init__(self, config: PipelineConfig, index: Optional[TupleIndex] = None,
                 pi: Optional[PiReader] = None):
        config.validate()
        self.config = config
        self.index = index
        self.pi = pi
        self.workers = config.resolved_workers()
        self.telemetry = Telemetry(config.window)
        self._work: queue.Queue = queue.Queue(maxsize=config.resolved_work_buffer())
        self._output: queue.Queue = queue.Queue(maxsize=config.output_buffer)
        self._stopping = threading.Event()
        self._abort = threading.Event()
        self._error_lock = threading.Lock()
        self._error: Optional[BaseException] = None
        self._generated = 0
        self._writer: Optional[RecordWriter] = None

    def stop(self) -> None:
        """Stop generating; records already in flight are still written."""
        self._stopping.set()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    def in_flight(self) -> int:
        """Records generated but not yet written."""
        return self._generated - self.telemetry.snapshot().printed

    def flush(self) -> None:
        """Push whatever the writer has written so far to disk."""
        writer = self._writer
        if writer is not None:
            writer.flush()

    # ---- blocking hand-off helpers ----
    def _put(self, q: queue.Queue, item, cancel: Optional[threading.Event] = None) -> bool:
        while not self._abort.is_set():
            if cancel is not None and cancel.is_set():
                return False
            try:
                q.put(item, timeout=_POLL)
                return True
            except queue.Full:
                continue
        return False

    def _get(self, q: queue.Queue):
        while True:
            try:
                return q.get(timeout=_POLL)
            except queue.Empty:
                if self._abort.is_set():
                    return _DONE

    def _fail(self, exc: BaseException) -> None:
        with self._error_lock:
            if self._error is None:
                self._error = exc
        self._abort.set()

    # ---- stages ----
    def _generate(self) -> None:
        try:
            for value in range(self.config.start, self.config.end):
                # a value not yet queued is not in flight; drop it on stop
                if not self._put(self._work, Record(value), cancel=self._stopping):
                    if self._stopping.is_set():
                        logger.info("Generator stopped at %d", value)
                    return
                self._generated += 1
        finally:
            for _ in range(self.workers):
                self._put(self._work, _DONE)

    def _classify_loop(self, classify: Classifier) -> None:
        while True:
            rec = self._get(self._work)
            if rec is _DONE:
                return
            t0 = time.perf_counter_ns()
            try:
                classify(rec)
            except Exception as e:
                logger.error("Classification of %d failed: %s", rec.value, e)
                self._fail(e)
                return
            rec.duration_ns = time.perf_counter_ns() - t0
            self.telemetry.record_classified(rec.prime, rec.duration_ns / 1e9)
            if not self._put(self._output, rec):
                return

    def _write_loop(self, writer: RecordWriter) -> None:
        reorder = ReorderBuffer(self.config.start) if self.config.ordered else None
        try:
            while True:
                rec = self._get(self._output)
                if rec is _DONE:
                    break
                for ready in (reorder.push(rec) if reorder else (rec,)):
                    self.telemetry.record_printed()
                    writer.write(ready)
            if reorder:
                for ready in reorder.drain():
                    self.telemetry.record_printed()
                    writer.write(ready)
        except Exception as e:
            logger.error("Write failed: %s", e)
            self._fail(e)
        finally:
            writer.close()
            self._writer = None

    def run(self) -> PipelineSummary:
        cfg = self.config
        t0 = time.perf_counter()

        if self.index is None:
            logger.info("Building tuples index from %d files...", len(cfg.tuple_files))
            self.index = build_tuple_index(cfg.tuple_files) if cfg.tuple_files else TupleIndex()

        own_pi = False
        if cfg.mode == "features" and self.pi is None and cfg.pi_path:
            self.pi = PiReader(cfg.pi_path)
            own_pi = True

        try:
            # sinks are opened up front so a bad path fails before any work starts
            writer = RecordWriter(cfg.mode, cfg.json_path, cfg.csv_path)
            # until the writer thread owns the sinks, close them here on failure
            try:
                classify = make_classifier(cfg.mode, self.index, self.pi)

                logger.info("Classifying [%d, %d) in %s mode with %d workers",
                            cfg.start, cfg.end, cfg.mode, self.workers)

                writer_thread = threading.Thread(target=self._write_loop, args=(writer,), name="writer", daemon=True)
                pool = [threading.Thread(target=self._classify_loop, args=(classify,), name=f"classifier-{i}", daemon=True)
                        for i in range(self.workers)]
                generator = threading.Thread(target=self._generate, name="generator", daemon=True)
                status = None if cfg.silent else StatusPrinter(self.telemetry, cfg.status_interval)

                self._writer = writer
                writer_thread.start()
            except BaseException:
                self._writer = None
                writer.close()
                raise

            for t in pool: t.start()
            generator.start()
            if status: status.start()

            generator.join()
            for t in pool: t.join()
            self._put(self._output, _DONE)
            writer_thread.join()
            if status: status.stop()
        finally:
            if own_pi:
                self.pi.close()

        if self._error is not None:
            raise self._error

        snap = self.telemetry.snapshot()
        summary = PipelineSummary(
            generated=self._generated,
            primes=snap.primes,
            composites=snap.composites,
            printed=snap.printed,
            interrupted=self._stopping.is_set(),
            wall_seconds=time.perf_counter() - t0,
        )
        logger.info("Done: %d records written (%d primes, %d composites) in %.1fs",
                    summary.printed, summary.primes, summary.composites, summary.wall_seconds)
        return summary

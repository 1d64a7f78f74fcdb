# tuples.py — prime k-tuple membership index
#
# Each tuple file lists one prime constellation per line, e.g. "(5, 7)" or
# "11, 13, 17, 19". Every member of a line is tagged with the line's length
# (its degree). All files are scanned concurrently, inserts go through one
# lock, and once every scanner has finished the index is frozen so workers
# can read it without locking.

from __future__ import annotations
import logging
import os
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterator, List, Mapping, Set

logger = logging.getLogger(__name__)

# ---------- tuple families ----------
DEGREES: Dict[str, int] = {"twin": 2, "triplet": 3, "quad": 4, "penta": 5, "sexy": 6}

DEFAULT_FILES: Dict[str, str] = {
    "twin":    "twin-1e9.txt",
    "triplet": "triplet-1e9.txt",
    "quad":    "quad-1e9.txt",
    "penta":   "penta-1e9.txt",
    "sexy":    "sexy-1e9.txt",
}

def default_tuple_files(data_dir: str = "data") -> Dict[str, str]:
    return {name: os.path.join(data_dir, fname) for name, fname in DEFAULT_FILES.items()}

def parse_tuple_line(line: str) -> List[str]:
    """'(5, 7)\\n' -> ['5', '7']; blank lines give []."""
    body = line.strip().strip("() ")
    if not body:
        return []
    return [tok.strip() for tok in body.split(", ")]

# ---------- frozen index ----------
@dataclass(frozen=True)
class TupleFlags:
    twin: bool = False
    triplet: bool = False
    quad: bool = False
    penta: bool = False
    sexy: bool = False

    @classmethod
    def from_degrees(cls, degrees: FrozenSet[int]) -> "TupleFlags":
        return cls(**{name: deg in degrees for name, deg in DEGREES.items()})

NO_FLAGS = TupleFlags()

class TupleIndex:
    """Read-only map: decimal key -> set of tuple degrees it belongs to."""

    def __init__(self, entries: Mapping[str, FrozenSet[int]] | None = None):
        self._entries: Mapping[str, FrozenSet[int]] = MappingProxyType(dict(entries or {}))

    def degrees(self, key) -> FrozenSet[int]:
        return self._entries.get(str(key), frozenset())

    def flags(self, key) -> TupleFlags:
        degrees = self.degrees(key)
        return TupleFlags.from_degrees(degrees) if degrees else NO_FLAGS

    def __contains__(self, key) -> bool:
        return str(key) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

# ---------- builder ----------
@dataclass
class TupleIndexBuilder:
    """Mutable accumulation side of the index; only used during the build."""
    _entries: Dict[str, Set[int]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def insert(self, key: str, degree: int) -> None:
        with self._lock:
            self._entries.setdefault(key, set()).add(degree)

    def scan_file(self, path: str) -> int:
        """Insert every tuple in `path`. Unreadable files are logged and skipped."""
        lines = 0
        try:
            with open(path, "r", encoding="ascii", errors="replace") as f:
                for lineno, line in enumerate(f, 1):
                    numbers = parse_tuple_line(line)
                    if not numbers:
                        continue
                    if not all(tok.isdigit() for tok in numbers):
                        logger.warning("%s:%d: skipping malformed tuple %r", path, lineno, line.strip())
                        continue
                    degree = len(numbers)
                    for key in numbers:
                        self.insert(key.lstrip("0") or "0", degree)
                    lines += 1
        except OSError as e:
            logger.error("Cannot read tuple file %s: %s", path, e)
        return lines

    def freeze(self) -> TupleIndex:
        with self._lock:
            return TupleIndex({k: frozenset(v) for k, v in self._entries.items()})

def build_tuple_index(files: Mapping[str, str]) -> TupleIndex:
    """
    Scan all tuple files in parallel and return the frozen index.

    Blocks until every scanner thread has finished; the returned TupleIndex
    is never mutated again.
    """
    builder = TupleIndexBuilder()
    threads = [
        threading.Thread(target=builder.scan_file, args=(path,), name=f"tuples-{name}", daemon=True)
        for name, path in files.items()
    ]
    for t in threads: t.start()
    for t in threads: t.join()
    index = builder.freeze()
    logger.info("Tuple index built: %d keys from %d files", len(index), len(files))
    return index

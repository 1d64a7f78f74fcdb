# records.py — the unit of work and of output
#
# A Record is created by the generator holding only `value`, filled in by
# exactly one worker, then flattened to a row by the writer. Field names in
# the flattened row are stable across runs; booleans are written as 0/1.

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from numtheory import RESIDUE_PRIMES
from pireader import NOT_FOUND
from tuples import DEGREES, NO_FLAGS, TupleFlags

MODES = ("basic", "features")

DIGIT_NAMES = ("zeros", "ones", "twos", "threes", "fours", "fives", "sixes", "sevens", "eights", "nines")
RESIDUE_NAMES = tuple(f"mod{p}" for p in RESIDUE_PRIMES)
PARTIAL_TOTIENT_NAMES = ("totient1e2", "totient2e3", "totient3e4", "totient4e5", "totient5e6")
TUPLE_NAMES = tuple(DEGREES)

FIELDS: Dict[str, Tuple[str, ...]] = {
    "basic": ("value", "prime", "factors", "nfactors", "totient") + TUPLE_NAMES + ("nanodura",),
    "features": ("value", "prime", "odd", "factors", "nfactors", "pi", "sin", "cos")
                + DIGIT_NAMES + RESIDUE_NAMES + PARTIAL_TOTIENT_NAMES + TUPLE_NAMES + ("nanodura",),
}

# list-valued and telemetry-only fields stay out of the CSV
_NOT_IN_CSV = ("factors", "nanodura")

def csv_columns(mode: str) -> List[str]:
    return [name for name in FIELDS[mode] if name not in _NOT_IN_CSV]

@dataclass
class Record:
    value: int
    prime: bool = False
    factors: List[int] = field(default_factory=list)
    totient: int = 0
    flags: TupleFlags = NO_FLAGS
    odd: bool = False
    digits: Tuple[int, ...] = ()
    residues: Tuple[int, ...] = ()
    pi: int = NOT_FOUND
    sin: float = 0.0
    cos: float = 0.0
    partial_totients: Tuple[int, ...] = ()
    duration_ns: int = 0

    @property
    def nfactors(self) -> int:
        return len(self.factors)

    def to_row(self, mode: str = "basic") -> Dict[str, Any]:
        flat: Dict[str, Any] = {
            "value": self.value,
            "prime": int(self.prime),
            "odd": int(self.odd),
            "factors": list(self.factors),
            "nfactors": self.nfactors,
            "totient": self.totient,
            "pi": self.pi,
            "sin": self.sin,
            "cos": self.cos,
            "nanodura": self.duration_ns,
        }
        for name in TUPLE_NAMES:
            flat[name] = int(getattr(self.flags, name))
        flat.update(zip(DIGIT_NAMES, self.digits or (0,) * len(DIGIT_NAMES)))
        flat.update(zip(RESIDUE_NAMES, self.residues or (0,) * len(RESIDUE_NAMES)))
        flat.update(zip(PARTIAL_TOTIENT_NAMES, self.partial_totients or (0,) * len(PARTIAL_TOTIENT_NAMES)))
        return {name: flat[name] for name in FIELDS[mode]}

# classify.py — per-integer feature computation
#
# Two variants share the primality branch:
#   basic    : factors, full totient (p-1 shortcut for primes), tuple flags
#   features : factors, digit histogram, small-prime residues, sin/cos,
#              Pi index and five bucketed partial totients, tuple flags
# A classifier mutates only the record it was handed.

from __future__ import annotations
import math
from typing import Callable, Optional

import numtheory as nt
from pireader import PiReader
from records import Record
from tuples import NO_FLAGS, TupleIndex

Classifier = Callable[[Record], None]

def _classify_primality(rec: Record, index: TupleIndex) -> None:
    rec.prime = nt.is_prime(rec.value)
    if rec.prime:
        rec.factors = []
        rec.flags = index.flags(rec.value)
    else:
        rec.factors = nt.factorize(rec.value)
        rec.flags = NO_FLAGS

def classify_basic(rec: Record, index: TupleIndex) -> None:
    _classify_primality(rec, index)
    # phi(p) = p - 1 exactly; only composites pay for the brute-force count
    rec.totient = rec.value - 1 if rec.prime else nt.totient(rec.value)

def classify_features(rec: Record, index: TupleIndex, pi: Optional[PiReader]) -> None:
    v = rec.value
    key = str(v)
    rec.digits = nt.digit_histogram(v)
    rec.residues = nt.mod_residues(v)
    rec.odd = v % 2 == 1
    rec.sin, rec.cos = math.sin(v), math.cos(v)
    rec.pi = pi.index(key) if pi is not None else rec.pi
    rec.partial_totients = nt.partial_totients(v)
    _classify_primality(rec, index)

def make_classifier(mode: str, index: TupleIndex, pi: Optional[PiReader] = None) -> Classifier:
    if mode == "basic":
        return lambda rec: classify_basic(rec, index)
    if mode == "features":
        return lambda rec: classify_features(rec, index, pi)
    raise ValueError(f"Unknown mode: {mode!r}")

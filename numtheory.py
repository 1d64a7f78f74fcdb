# numtheory.py — trial-division arithmetic for the training-set classifier
#
# Everything here is deliberately deterministic and simple: no probabilistic
# primality tests, no sieves. The corpus favours reproducible arithmetic over
# asymptotic speed at the ranges it targets (~1e9).

from __future__ import annotations
from typing import List, Tuple

import gmpy2

# ---------- primality ----------
def is_prime(n: int) -> bool:
    """Deterministic trial division up to floor(sqrt(n))."""
    if n < 2: return False
    if n < 4: return True
    if n % 2 == 0: return False
    limit = int(gmpy2.isqrt(n))
    d = 3
    while d <= limit:
        if n % d == 0: return False
        d += 2
    return True

# ---------- factorization ----------
def factorize(n: int) -> List[int]:
    """
    Prime-power decomposition by trial division, ascending.

    Each distinct prime contributes one entry holding p**k, so 12 -> [4, 3]
    and the product of the entries is n. Values below 2 have no factors.
    """
    if n < 2: return []
    dec: List[int] = []

    power2 = 1
    while n % 2 == 0:
        n //= 2
        power2 *= 2
    if power2 > 1:
        dec.append(power2)

    d = 3
    while n > 1:
        if d * d > n:
            # what is left is a prime larger than every divisor tried so far
            dec.append(n)
            break
        power = 1
        while n % d == 0:
            n //= d
            power *= d
        if power > 1:
            dec.append(power)
        d += 2
    return dec

# ---------- totient ----------
# Prime landmarks bounding the partial-totient buckets (1st, 10th, 100th,
# 1000th, 10000th and 100000th prime).
TOTIENT_LANDMARKS: Tuple[int, ...] = (2, 29, 541, 7919, 104729, 1299709)

def totient(n: int) -> int:
    """Euler's phi by brute-force coprimality counting over [1, n]."""
    count = 0
    for i in range(1, n + 1):
        if gmpy2.gcd(i, n) == 1:
            count += 1
    return count

def partial_totient(lo: int, hi: int, n: int) -> int:
    """Count i in [lo, hi) with i <= n and gcd(i, n) == 1."""
    stop = min(hi, n + 1)
    count = 0
    for i in range(lo, stop):
        if gmpy2.gcd(i, n) == 1:
            count += 1
    return count

def partial_totients(n: int) -> Tuple[int, ...]:
    bounds = TOTIENT_LANDMARKS
    return tuple(partial_totient(bounds[i], bounds[i + 1], n) for i in range(len(bounds) - 1))

# ---------- digit & residue features ----------
# http://bit-player.org/2016/prime-after-prime
RESIDUE_PRIMES: Tuple[int, ...] = (2, 3, 5, 7, 11, 13, 17, 23, 29, 31, 37)

def digit_histogram(n: int) -> Tuple[int, ...]:
    """Occurrences of each decimal digit 0-9 in abs(n)."""
    counts = [0] * 10
    for ch in str(abs(n)):
        counts[ord(ch) - 48] += 1
    return tuple(counts)

def mod_residues(n: int) -> Tuple[int, ...]:
    return tuple(n % p for p in RESIDUE_PRIMES)

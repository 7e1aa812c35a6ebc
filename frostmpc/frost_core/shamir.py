# frost_core/shamir.py
"""
Shamir secret sharing, two flavours:

- prime field (``shamir_split`` / ``shamir_reconstruct``): integer secrets mod p.
  With p = L this is the sharing the FROST dealer uses.
- GF(2^8), byte by byte (``gf256_split`` / ``gf256_reconstruct``): the generic
  scheme of general-purpose secret-sharing tools. Share = (x, bytes).

The two are not interchangeable; shares of one recombine to garbage in the other.
"""
import secrets
from typing import Dict, List, Sequence, Tuple

P = 2**127 - 1  # default prime field


def _eval_poly(coeffs, x, p=P):
    """Horner evaluation mod p"""
    acc = 0
    for c in reversed(coeffs):
        acc = (acc * x + c) % p
    return acc


def shamir_split(secret: int, n: int = 3, t: int = 2, p: int = P) -> List[Tuple[int, int]]:
    """Split ``secret`` into n shares at x = 1..n, any t of which recover it."""
    if not 1 <= t <= n:
        raise ValueError("require 1 <= t <= n")
    coeffs = [secret % p] + [secrets.randbelow(p) for _ in range(t - 1)]
    return [(i, _eval_poly(coeffs, i, p)) for i in range(1, n + 1)]


def lagrange_coefficient(xs: Sequence[int], xi: int, p: int = P) -> int:
    """λ_i at x = 0 for the participant set ``xs``."""
    if xi not in xs:
        raise ValueError(f"{xi} not in participant set")
    if len(set(xs)) != len(xs):
        raise ValueError("duplicate x coordinates")
    num, den = 1, 1
    for xj in xs:
        if xj == xi:
            continue
        num = (num * (-xj % p)) % p        # (0 - xj)
        den = (den * ((xi - xj) % p)) % p  # (xi - xj)
    return (num * pow(den, -1, p)) % p


def shamir_reconstruct(shares: Sequence[Tuple[int, int]], p: int = P) -> int:
    """Lagrange interpolation at 0"""
    xs = [x for x, _ in shares]
    res = 0
    for xj, yj in shares:
        res = (res + yj * lagrange_coefficient(xs, xj, p)) % p
    return res


# -----------------------------------------------------------------------------
# GF(2^8), reduction polynomial x^8 + x^4 + x^3 + x + 1, generator 3
# -----------------------------------------------------------------------------
_EXP = [0] * 512
_LOG = [0] * 256


def _build_tables():
    x = 1
    for i in range(255):
        _EXP[i] = x
        _LOG[x] = i
        # multiply by 3 = x ^ (x * 2)
        x2 = x << 1
        if x2 & 0x100:
            x2 ^= 0x11B
        x ^= x2
    for i in range(255, 512):
        _EXP[i] = _EXP[i - 255]


_build_tables()


def _gf_mul(a: int, b: int) -> int:
    if a == 0 or b == 0:
        return 0
    return _EXP[_LOG[a] + _LOG[b]]


def _gf_div(a: int, b: int) -> int:
    if b == 0:
        raise ZeroDivisionError("division by zero in GF(256)")
    if a == 0:
        return 0
    return _EXP[(_LOG[a] - _LOG[b]) % 255]


def _gf_eval(coeffs: List[int], x: int) -> int:
    acc = 0
    for c in reversed(coeffs):
        acc = _gf_mul(acc, x) ^ c
    return acc


def gf256_split(secret: bytes, n: int = 3, t: int = 2) -> List[Tuple[int, bytes]]:
    """Byte-wise split; x coordinates are 1..n (n <= 255)."""
    if not 1 <= t <= n <= 255:
        raise ValueError("require 1 <= t <= n <= 255")
    out: Dict[int, bytearray] = {x: bytearray() for x in range(1, n + 1)}
    for byte in secret:
        coeffs = [byte] + [secrets.randbelow(256) for _ in range(t - 1)]
        for x in out:
            out[x].append(_gf_eval(coeffs, x))
    return [(x, bytes(ys)) for x, ys in out.items()]


def gf256_reconstruct(shares: Sequence[Tuple[int, bytes]]) -> bytes:
    """Byte-wise Lagrange interpolation at 0 over GF(2^8)."""
    if not shares:
        raise ValueError("no shares")
    xs = [x for x, _ in shares]
    if len(set(xs)) != len(xs):
        raise ValueError("duplicate share indices")
    if any(not 1 <= x <= 255 for x in xs):
        raise ValueError("share index out of range 1..255")
    length = len(shares[0][1])
    if any(len(ys) != length for _, ys in shares):
        raise ValueError("shares have different lengths")

    # in characteristic 2, (0 - xj) == xj and (xi - xj) == xi ^ xj
    lambdas = []
    for xi in xs:
        num, den = 1, 1
        for xj in xs:
            if xj == xi:
                continue
            num = _gf_mul(num, xj)
            den = _gf_mul(den, xi ^ xj)
        lambdas.append(_gf_div(num, den))

    out = bytearray(length)
    for k in range(length):
        acc = 0
        for lam, (_, ys) in zip(lambdas, shares):
            acc ^= _gf_mul(lam, ys[k])
        out[k] = acc
    return bytes(out)

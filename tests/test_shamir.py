import itertools
import secrets

import pytest

from frostmpc.frost_core.ed25519 import L
from frostmpc.frost_core.shamir import (
    gf256_reconstruct,
    gf256_split,
    lagrange_coefficient,
    shamir_reconstruct,
    shamir_split,
)


def test_prime_field_any_two_of_three():
    secret = secrets.randbelow(L)
    shares = shamir_split(secret, n=3, t=2, p=L)
    for pair in itertools.combinations(shares, 2):
        assert shamir_reconstruct(list(pair), p=L) == secret


def test_lagrange_coefficients_for_one_and_two():
    # f(0) = 2 f(1) - f(2)
    assert lagrange_coefficient([1, 2], 1, L) == 2
    assert lagrange_coefficient([1, 2], 2, L) == L - 1


def test_lagrange_rejects_duplicates_and_strangers():
    with pytest.raises(ValueError):
        lagrange_coefficient([1, 1], 1)
    with pytest.raises(ValueError):
        lagrange_coefficient([1, 2], 3)


def test_gf256_any_two_of_three():
    secret = secrets.token_bytes(32)
    shares = gf256_split(secret, n=3, t=2)
    assert [x for x, _ in shares] == [1, 2, 3]
    for pair in itertools.combinations(shares, 2):
        assert gf256_reconstruct(list(pair)) == secret


def test_gf256_three_of_five():
    secret = secrets.token_bytes(32)
    shares = gf256_split(secret, n=5, t=3)
    assert gf256_reconstruct([shares[0], shares[2], shares[4]]) == secret


def test_gf256_validation():
    with pytest.raises(ValueError):
        gf256_split(b"x", n=2, t=3)
    with pytest.raises(ValueError):
        gf256_reconstruct([(1, b"ab"), (1, b"cd")])
    with pytest.raises(ValueError):
        gf256_reconstruct([(1, b"ab"), (2, b"c")])
    with pytest.raises(ValueError):
        gf256_reconstruct([])

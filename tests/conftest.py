import pytest

from perfect_ring import GaloisField, PolynomialRingFp, PrimeField
from witt_vector import VerificationSpec, WittRing


@pytest.fixture
def w_f2():
    return WittRing.over(PrimeField(2))


@pytest.fixture
def w_f3():
    return WittRing.over(PrimeField(3))


@pytest.fixture
def w_f4():
    return WittRing.over(GaloisField(2, 2))


@pytest.fixture
def w_f8():
    return WittRing.over(GaloisField(2, 3))


@pytest.fixture
def w_f2t():
    return WittRing.over(PolynomialRingFp(2))


@pytest.fixture
def shallow():
    return VerificationSpec(depth=3)

import pytest

import witt_vector as wv
from perfect_ring import PolynomialRingFp, PrimeField
from witt_vector import (
    NotPerfectRingError,
    PerfectWittRing,
    TruncatedWittVector,
    VerificationSpec,
    WittInputError,
    WittRing,
)


def test_over_picks_capability(w_f4, w_f2t):
    assert isinstance(w_f4, PerfectWittRing)
    assert w_f4.is_perfect
    assert not isinstance(w_f2t, PerfectWittRing)
    assert not w_f2t.is_perfect
    with pytest.raises(NotPerfectRingError):
        PerfectWittRing(PolynomialRingFp(2))


def test_constructors(w_f4):
    g = w_f4.base.generator()
    x = w_f4.from_coefficients([g, 1])
    assert x.coefficients(4) == (g, w_f4.base.one(), w_f4.base.zero(), w_f4.base.zero())
    assert w_f4.teichmuller(g).coefficients(3) == (g, 0, 0)
    assert w_f4.one().coefficients(3) == (1, 0, 0)
    assert w_f4.zero().vanishes_below(5)
    assert w_f4.from_coefficients(lambda i: g ** i).coeff(2) == g * g


def test_minus_one_for_p2(w_f2):
    assert w_f2.from_integer(-1).coefficients(5) == (1, 1, 1, 1, 1)
    assert (w_f2.from_integer(-1) + w_f2.one()).vanishes_below(4)


def test_p_is_verschiebung_of_one(w_f2, w_f3):
    assert w_f2.from_integer(2).coefficients(4) == (0, 1, 0, 0)
    assert w_f3.from_integer(3).coefficients(3) == (0, 1, 0)
    assert w_f2.from_integer(4).coefficients(4) == (0, 0, 1, 0)


@pytest.mark.parametrize("ring_name", ["w_f2", "w_f3"])
def test_integer_embedding_is_a_ring_homomorphism(ring_name, request):
    ring = request.getfixturevalue(ring_name)
    depth = 3
    for a in (-3, 1, 5):
        for b in (2, 7):
            x, y = ring.from_integer(a), ring.from_integer(b)
            assert ring.truncate(depth, x + y) == ring.truncate(depth, ring.from_integer(a + b))
            assert ring.truncate(depth, x * y) == ring.truncate(depth, ring.from_integer(a * b))
            assert ring.truncate(depth, x - y) == ring.truncate(depth, ring.from_integer(a - b))


def test_subtraction_cancels(w_f2, w_f4):
    g = w_f4.base.generator()
    x = w_f4.from_coefficients([g, 1, g])
    assert (x - x).vanishes_below(3)
    y = w_f2.from_coefficients([1, 1, 0, 1])
    assert (y - y).vanishes_below(4)


def test_int_coercion(w_f3):
    x = w_f3.from_coefficients([2, 1])
    assert w_f3.truncate(3, 3 * x) == w_f3.truncate(3, w_f3.scale(3, x))
    assert w_f3.truncate(3, x + 1) == w_f3.truncate(3, 1 + x)


def test_teichmuller_is_multiplicative(w_f4):
    g = w_f4.base.generator()
    lhs = w_f4.teichmuller(g) * w_f4.teichmuller(g + 1)
    assert w_f4.truncate(3, lhs) == w_f4.truncate(3, w_f4.teichmuller(g * (g + 1)))


@pytest.mark.parametrize("ring_name,depth", [("w_f2", 4), ("w_f3", 3), ("w_f4", 4), ("w_f8", 3)])
def test_commutation_law(ring_name, depth, request):
    ring = request.getfixturevalue(ring_name)
    g = ring.base.generator()
    x = ring.from_coefficients([g, 1, g * g, g + 1])
    lhs = wv.frobenius(wv.verschiebung(x))
    rhs = x * ring.from_integer(ring.p)
    assert wv.truncate(depth, lhs) == wv.truncate(depth, rhs)


def test_frobenius_is_ring_endomorphism(w_f8):
    g = w_f8.base.generator()
    x = w_f8.from_coefficients([g, 1, g])
    y = w_f8.from_coefficients([g * g, g])
    depth = 3
    assert w_f8.truncate(depth, (x * y).frobenius()) == w_f8.truncate(depth, x.frobenius() * y.frobenius())
    assert w_f8.truncate(depth, (x + y).frobenius()) == w_f8.truncate(depth, x.frobenius() + y.frobenius())


def test_verschiebung_is_additive(w_f2):
    x = w_f2.from_coefficients([1, 1])
    y = w_f2.from_coefficients([1, 0, 1])
    lhs = (x + y).verschiebung()
    rhs = x.verschiebung() + y.verschiebung()
    assert w_f2.truncate(4, lhs) == w_f2.truncate(4, rhs)


def test_frobenius_inverse_round_trip(w_f8):
    g = w_f8.base.generator()
    x = w_f8.from_coefficients([g, g * g, 1, g + 1])
    assert wv.truncate(4, wv.frobenius_inverse(wv.frobenius(x))) == wv.truncate(4, x)
    assert wv.truncate(4, wv.iterate_frobenius_inverse(wv.iterate_frobenius(x, 3), 3)) == wv.truncate(4, x)
    # F^3 = id on GF(8)
    assert wv.truncate(4, wv.iterate_frobenius(x, 3)) == wv.truncate(4, x)


def test_frobenius_inverse_needs_perfect_ring(w_f2t):
    x = w_f2t.from_coefficients([w_f2t.base.variable()])
    with pytest.raises(NotPerfectRingError):
        wv.frobenius_inverse(x)
    with pytest.raises(NotPerfectRingError):
        wv.iterate_frobenius_inverse(x, 1)


def test_reconstruction_lemma(w_f2t):
    t = w_f2t.base.variable()
    x = w_f2t.from_coefficients([0, 0, t, 1, t * t])
    rebuilt = wv.iterate_verschiebung(wv.shift(2, x), 2)
    assert wv.truncate(6, rebuilt) == wv.truncate(6, x)
    assert wv.coeff(wv.shift(2, x), 0) == t


def test_shift_is_left_inverse_of_verschiebung(w_f4):
    g = w_f4.base.generator()
    x = w_f4.from_coefficients([g, 1, g])
    assert w_f4.truncate(4, x.verschiebung().shift(1)) == w_f4.truncate(4, x)
    assert w_f4.iterate_verschiebung(x, 3).coefficients(4) == (0, 0, 0, g)


def test_coefficients_are_lazy_and_memoized(w_f2):
    calls = []

    def rule(i):
        calls.append(i)
        return i % 2

    x = w_f2.vector(rule, label="parity")
    assert x.computed == ()
    assert x[3] == 1
    assert x.coeff(3) == 1
    assert calls == [3]
    assert x.computed == (3,)
    y = x + w_f2.one()
    assert calls == [3]
    y.coeff(1)
    assert sorted(set(calls)) == [0, 1, 3]
    assert "parity" in repr(x)


def test_invalid_inputs(w_f2, w_f3):
    x = w_f2.one()
    with pytest.raises(WittInputError):
        x.coeff(-1)
    with pytest.raises(WittInputError):
        x.coeff(True)
    with pytest.raises(WittInputError):
        wv.shift(-2, x)
    with pytest.raises(WittInputError):
        x + w_f3.one()
    with pytest.raises(WittInputError):
        wv.coeff("x", 0)
    with pytest.raises(WittInputError):
        WittRing("GF(2)")
    with pytest.raises(WittInputError):
        w_f2.from_coefficients([PrimeField(3).one()])


def test_truncated_vector_ring(w_f4):
    g = w_f4.base.generator()
    x = w_f4.from_coefficients([g, 1, g])
    y = w_f4.from_coefficients([1, g, g + 1])
    tx, ty = x.truncate(3), y.truncate(3)
    assert tx + ty == (x + y).truncate(3)
    assert tx * ty == (x * y).truncate(3)
    assert tx - ty == (x - y).truncate(3)
    assert -tx == (-x).truncate(3)
    assert tx.restrict(2) == x.truncate(2)
    assert tx.length == 3
    assert tx[0] == g
    assert (tx - tx).is_zero()
    with pytest.raises(WittInputError):
        tx.coeff(3)
    with pytest.raises(WittInputError):
        tx.restrict(4)
    with pytest.raises(WittInputError):
        tx + x.truncate(2)


def test_truncated_vector_normalizes_ints(w_f2):
    assert TruncatedWittVector(w_f2, (1, 0)) == w_f2.one().truncate(2)


def test_verification_spec_defaults_and_env(monkeypatch):
    monkeypatch.delenv("WITT_CHECK_DEPTH", raising=False)
    assert VerificationSpec().depth == 4
    assert VerificationSpec.from_env().depth == 4
    monkeypatch.setenv("WITT_CHECK_DEPTH", " 7 ")
    assert VerificationSpec.from_env().depth == 7
    monkeypatch.setenv("WITT_CHECK_DEPTH", "  ")
    assert VerificationSpec.from_env().depth == 4


@pytest.mark.parametrize("raw", ["abc", "0", "-3", "2.5"])
def test_verification_spec_rejects_bad_env(monkeypatch, raw):
    monkeypatch.setenv("WITT_CHECK_DEPTH", raw)
    with pytest.raises(WittInputError):
        VerificationSpec.from_env()


def test_verification_spec_rejects_bad_depth():
    with pytest.raises(WittInputError):
        VerificationSpec(depth=0)
    with pytest.raises(WittInputError):
        VerificationSpec(depth=True)

import pytest

from witt_divisibility import (
    BridgeCertificate,
    DivisibilityCharacterizer,
    coeffs_agree_below,
    coeffs_eq_of_truncation,
    construct_cofactor,
    difference_vanishes_below,
    first_disagreement,
    in_verschiebung_image,
    reconstruct,
    truncation_eq_of_coeffs,
    truncations_agree,
    verify_truncation_bridge,
)
from witt_divisibility import test_membership as membership
from witt_vector import NotPerfectRingError, WittInputError, WittPreconditionError


# ── coefficient / truncation bridge ─────────────────────────────────────────

def test_bridge_on_agreeing_prefix(w_f4):
    g = w_f4.base.generator()
    x = w_f4.from_coefficients([g, 1, g])
    y = w_f4.from_coefficients([g, 1, 0])
    assert coeffs_agree_below(x, y, 2)
    assert not coeffs_agree_below(x, y, 3)
    assert first_disagreement(x, y, 3) == 2
    assert truncations_agree(x, y, 2)
    assert difference_vanishes_below(x, y, 2)
    assert not difference_vanishes_below(x, y, 3)


@pytest.mark.parametrize("n", [0, 1, 2, 3])
def test_bridge_certificate_is_consistent(w_f2, n):
    x = w_f2.from_coefficients([1, 0, 1])
    y = w_f2.from_coefficients([1, 0, 0, 1])
    cert = verify_truncation_bridge(x, y, n)
    assert isinstance(cert, BridgeCertificate)
    assert cert.consistent
    assert cert.level == n
    assert cert.coefficients_agree == (n <= 2)
    assert cert.difference_in_ideal == cert.truncations_agree == cert.coefficients_agree
    assert cert.first_disagreement == (None if n <= 2 else 2)
    assert cert.as_dict()["level"] == n


def test_truncation_eq_of_coeffs(w_f3):
    x = w_f3.from_coefficients([2, 1, 1])
    y = w_f3.from_coefficients([2, 1, 2])
    common = truncation_eq_of_coeffs(x, y, 2)
    assert common == w_f3.truncate(2, x) == w_f3.truncate(2, y)
    with pytest.raises(WittPreconditionError) as excinfo:
        truncation_eq_of_coeffs(x, y, 3)
    assert excinfo.value.index == 2


def test_coeffs_eq_of_truncation(w_f3):
    x = w_f3.from_coefficients([2, 1, 1])
    y = w_f3.from_coefficients([2, 0, 1])
    assert coeffs_eq_of_truncation(x.truncate(1), y.truncate(1)) == (w_f3.base.from_int(2),)
    with pytest.raises(WittPreconditionError) as excinfo:
        coeffs_eq_of_truncation(x.truncate(3), y.truncate(3))
    assert excinfo.value.index == 1
    with pytest.raises(WittInputError):
        coeffs_eq_of_truncation(x.truncate(3), y.truncate(2))


def test_bridge_rejects_mixed_rings(w_f2, w_f3):
    with pytest.raises(WittInputError):
        coeffs_agree_below(w_f2.one(), w_f3.one(), 1)


# ── divisibility characterizer ──────────────────────────────────────────────

def test_membership_is_prefix_vanishing(w_f4):
    char = DivisibilityCharacterizer(w_f4)
    g = w_f4.base.generator()
    x = w_f4.from_coefficients([0, 0, g, 1])
    assert char.test_membership(x, 0)
    assert char.test_membership(x, 2)
    assert not char.test_membership(x, 3)
    assert char.nonvanishing_index(x, 4) == 2
    assert char.valuation(x, 10) == 2
    assert char.valuation(w_f4.zero(), 5) == 5


def test_zero_exponent_is_whole_ring(w_f2):
    char = DivisibilityCharacterizer(w_f2)
    assert char.test_membership(w_f2.one(), 0)
    assert char.vanishing_of_multiple(w_f2.one(), 0) == ()
    assert w_f2.truncate(3, char.construct_cofactor(w_f2.one(), 0)) == w_f2.truncate(3, w_f2.one())


def test_p_squared_times_one(w_f2, w_f3):
    for ring in (w_f2, w_f3):
        p2 = DivisibilityCharacterizer(ring).p_power(2)
        assert p2.coeff(0).is_zero()
        assert p2.coeff(1).is_zero()
        assert p2.coeff(2) == 1
        assert membership(p2, 2)
        assert not membership(p2, 3)


@pytest.mark.parametrize("ring_name,n", [("w_f2", 1), ("w_f2", 2), ("w_f3", 1), ("w_f4", 2), ("w_f8", 1)])
def test_multiple_vanishes_below_n(ring_name, n, request):
    ring = request.getfixturevalue(ring_name)
    g = ring.base.generator()
    u = ring.from_coefficients([g, 1])
    prefix = DivisibilityCharacterizer(ring).vanishing_of_multiple(u, n)
    assert len(prefix) == n
    assert all(c.is_zero() for c in prefix)


def test_cofactor_of_p_times_teichmuller(w_f4):
    char = DivisibilityCharacterizer(w_f4)
    g = w_f4.base.generator()
    x = char.multiple(w_f4.teichmuller(g), 1)
    # p·[g] = V(F[g]) = (0, g^2, 0, ...)
    assert x.coefficients(3) == (0, g * g, 0)
    u = char.construct_cofactor(x, 1)
    assert w_f4.truncate(3, u) == w_f4.truncate(3, w_f4.teichmuller(g))
    assert char.verify_cofactor(x, 1, 3)


@pytest.mark.parametrize("ring_name,n,depth", [("w_f2", 2, 2), ("w_f3", 1, 2), ("w_f8", 1, 2)])
def test_membership_round_trip(ring_name, n, depth, request):
    ring = request.getfixturevalue(ring_name)
    char = DivisibilityCharacterizer(ring)
    g = ring.base.generator()
    u = ring.from_coefficients([g, 1, g])
    x = char.multiple(u, n)
    assert char.test_membership(x, n)
    cofactor = construct_cofactor(x, n)
    # p is not a zero divisor, so the cofactor is u itself
    assert ring.truncate(depth, cofactor) == ring.truncate(depth, u)
    assert char.verify_cofactor(x, n, depth)


def test_cofactor_rejects_non_member(w_f2):
    char = DivisibilityCharacterizer(w_f2)
    x = w_f2.from_coefficients([0, 1])
    with pytest.raises(WittPreconditionError) as excinfo:
        char.construct_cofactor(x, 2)
    assert excinfo.value.index == 1
    with pytest.raises(WittPreconditionError):
        char.reconstruct(x, 2)


def test_characterizer_rejects_non_perfect_ring(w_f2t):
    t = w_f2t.base.variable()
    x = w_f2t.from_coefficients([0, 0, t])
    with pytest.raises(NotPerfectRingError):
        DivisibilityCharacterizer(w_f2t)
    with pytest.raises(NotPerfectRingError):
        membership(x, 2)
    with pytest.raises(NotPerfectRingError):
        construct_cofactor(x, 2)
    with pytest.raises(NotPerfectRingError):
        verify_truncation_bridge(x, w_f2t.zero(), 2)
    # the coefficient bridge itself needs no perfectness
    assert coeffs_agree_below(x, w_f2t.zero(), 2)


def test_verschiebung_image_is_larger_than_p_power_ideal(w_f2t):
    base = w_f2t.base
    t = base.variable()
    x = w_f2t.from_coefficients([0, 0, t])
    assert in_verschiebung_image(x, 2)
    assert not in_verschiebung_image(x, 3)
    assert w_f2t.truncate(4, reconstruct(x, 2)) == w_f2t.truncate(4, x)
    # in characteristic 2, coefficient 2 of 4·u is u_0^4, so x = 4·u would need t = u_0^4
    for u0 in (t, t + 1, t * t):
        u = w_f2t.from_coefficients([u0, 1])
        assert w_f2t.mul(w_f2t.from_integer(4), u).coeff(2) == u0 ** 4
    assert not base.is_pth_power(t)


def test_reconstruct_rejects_non_member(w_f2t):
    x = w_f2t.from_coefficients([0, w_f2t.base.variable()])
    with pytest.raises(WittPreconditionError) as excinfo:
        reconstruct(x, 2)
    assert excinfo.value.index == 1
    with pytest.raises(WittInputError):
        in_verschiebung_image("x", 1)


def test_invalid_arguments(w_f2):
    char = DivisibilityCharacterizer(w_f2)
    with pytest.raises(WittInputError):
        char.test_membership(w_f2.one(), -1)
    with pytest.raises(WittInputError):
        DivisibilityCharacterizer("W(GF(2))")
    with pytest.raises(WittInputError):
        membership(0, 1)

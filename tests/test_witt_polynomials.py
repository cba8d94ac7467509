import pytest

from perfect_ring import PrimeField
from witt_polynomials import (
    MultivariatePolynomial,
    WittPolynomialError,
    WittPolynomialGenerator,
    integer_witt_components,
    witt_polynomial_generator,
    x_slot,
    y_slot,
)


def _ghost(p, comps, n):
    return sum(p ** i * comps[i] ** (p ** (n - i)) for i in range(n + 1))


def _interleave(xs, ys):
    values = []
    for a, b in zip(xs, ys):
        values.extend([a, b])
    return values


def test_polynomial_basics():
    x = MultivariatePolynomial.variable(0)
    y = MultivariatePolynomial.variable(1)
    square = (x + y) ** 2
    assert square == x * x + 2 * x * y + y * y
    assert square.num_terms == 3
    assert (x - x).is_zero()
    assert x * MultivariatePolynomial.one() == x
    assert MultivariatePolynomial({(1, 0, 0): 1}) == x
    assert square.max_variable == 1
    assert square.evaluate_at_integers([2, 3]) == 25


def test_exact_div_rejects_non_divisible():
    x = MultivariatePolynomial.variable(0)
    assert (4 * x).exact_div(2) == 2 * x
    with pytest.raises(WittPolynomialError):
        (3 * x + 2).exact_div(2)


def test_low_degree_polynomials_p2():
    gen = WittPolynomialGenerator(2)
    X, Y = gen.X, gen.Y
    assert gen.addition_polynomial(0) == X(0) + Y(0)
    assert gen.addition_polynomial(1) == X(1) + Y(1) - X(0) * Y(0)
    assert gen.multiplication_polynomial(0) == X(0) * Y(0)
    assert gen.multiplication_polynomial(1) == X(0) ** 2 * Y(1) + X(1) * Y(0) ** 2 + 2 * X(1) * Y(1)
    assert gen.negation_polynomial(0) == -X(0)
    assert gen.negation_polynomial(1) == -X(0) ** 2 - X(1)


def test_negation_is_coordinatewise_for_odd_p():
    gen = WittPolynomialGenerator(3)
    for n in range(3):
        assert gen.negation_polynomial(n) == -gen.X(n)


def test_nth_polynomial_only_uses_indices_up_to_n():
    gen = WittPolynomialGenerator(2)
    for n in range(4):
        assert gen.addition_polynomial(n).max_variable <= y_slot(n)
        assert gen.multiplication_polynomial(n).max_variable <= y_slot(n)
        assert gen.negation_polynomial(n).max_variable <= x_slot(n)


@pytest.mark.parametrize("p,depth", [(2, 4), (3, 3), (5, 2)])
def test_ghost_components_are_additive_and_multiplicative(p, depth):
    gen = WittPolynomialGenerator(p)
    xs = [3, -2, 5, 1][:depth]
    ys = [-1, 4, 2, 7][:depth]
    values = _interleave(xs, ys)
    sums = [gen.addition_polynomial(n).evaluate_at_integers(values) for n in range(depth)]
    prods = [gen.multiplication_polynomial(n).evaluate_at_integers(values) for n in range(depth)]
    negs = [gen.negation_polynomial(n).evaluate_at_integers(values) for n in range(depth)]
    for n in range(depth):
        gx, gy = _ghost(p, xs, n), _ghost(p, ys, n)
        assert _ghost(p, sums, n) == gx + gy
        assert _ghost(p, prods, n) == gx * gy
        assert _ghost(p, negs, n) == -gx


def test_integer_components():
    assert integer_witt_components(2, -1, 4) == (-1, -1, -1, -1)
    assert integer_witt_components(2, 2, 3) == (2, -1, -4)
    assert integer_witt_components(3, 0, 3) == (0, 0, 0)
    for p in (2, 3):
        for m in (-5, 1, 7):
            comps = integer_witt_components(p, m, 4)
            assert all(_ghost(p, comps, n) == m for n in range(4))


def test_generator_is_shared_per_prime():
    assert witt_polynomial_generator(2) is witt_polynomial_generator(2)
    assert witt_polynomial_generator(2) is not witt_polynomial_generator(3)


def test_evaluate_in_field():
    gen = witt_polynomial_generator(2)
    f2 = PrimeField(2)
    one, zero = f2.one(), f2.zero()
    # (1, 0) + (1, 0) = 2 = (0, 1)
    assert gen.evaluate("add", 0, f2, [one, zero], [one, zero]) == zero
    assert gen.evaluate("add", 1, f2, [one, zero], [one, zero]) == one
    assert gen.evaluate("neg", 1, f2, [one, zero]) == one


def test_evaluate_rejects_characteristic_mismatch():
    f3 = PrimeField(3)
    with pytest.raises(ValueError):
        witt_polynomial_generator(2).evaluate("add", 0, f3, [f3.one()], [f3.one()])

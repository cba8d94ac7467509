#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
================================================================================
Witt 通用多项式：ℤ 上的符号生成与在特征 p 系数环中的求值
Universal Witt polynomials over ℤ and their evaluation in a coefficient ring

数学：
- Ghost 分量 w_n(X) = Σ_{i=0}^{n} p^i · X_i^{p^{n-i}}
- 加法 S_n、乘法 P_n、取负 N_n 由 ghost 条件唯一确定：
    w_n(S) = w_n(X) + w_n(Y)
    w_n(P) = w_n(X) · w_n(Y)
    w_n(N) = -w_n(X)
- Witt 引理：S_n, P_n, N_n ∈ ℤ[X_0..X_n, Y_0..Y_n]（递推中 p^n 整除恒成立）

变量布局采用交错编号 X_i ↦ 2i, Y_i ↦ 2i+1，生成器没有最大长度，
第 n 个多项式只在首次被请求时按需递推。
================================================================================
"""

from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Tuple
from functools import lru_cache

from perfect_ring import BaseRing, RingElement


__all__ = [
    "WittPolynomialError",
    "MultivariatePolynomial",
    "WittPolynomialGenerator",
    "witt_polynomial_generator",
    "integer_witt_components",
    "x_slot",
    "y_slot",
]


class WittPolynomialError(ArithmeticError):
    """Witt 多项式递推中的整除性失败（生成器损坏，不是输入错误）"""


def x_slot(i: int) -> int:
    """变量 X_i 的编号"""
    return 2 * i


def y_slot(i: int) -> int:
    """变量 Y_i 的编号"""
    return 2 * i + 1


# ══════════════════════════════════════════════════════════════════════════════
# 第一部分：ℤ 上的多元多项式
# Part I: multivariate polynomials over ℤ
# ══════════════════════════════════════════════════════════════════════════════

class MultivariatePolynomial:
    """
    多元多项式环 ℤ[V_0, V_1, ...]

    内部表示：{指数元组: 整数系数}
    指数元组去掉尾部零，因此 (1,) 与 (1, 0, 0) 是同一个单项式 V_0。
    """

    __slots__ = ('_terms',)

    def __init__(self, terms: Optional[Dict[Tuple[int, ...], int]] = None):
        self._terms: Dict[Tuple[int, ...], int] = {}
        if terms:
            for exp, coeff in terms.items():
                if coeff:
                    self._terms[self._canonical(exp)] = int(coeff)

    @staticmethod
    def _canonical(exp: Sequence[int]) -> Tuple[int, ...]:
        exps = list(exp)
        while exps and exps[-1] == 0:
            exps.pop()
        return tuple(exps)

    @classmethod
    def variable(cls, index: int) -> 'MultivariatePolynomial':
        """单个变量 V_index"""
        return cls({(0,) * index + (1,): 1})

    @classmethod
    def constant(cls, value: int) -> 'MultivariatePolynomial':
        return cls({(): int(value)})

    @classmethod
    def zero(cls) -> 'MultivariatePolynomial':
        return cls()

    @classmethod
    def one(cls) -> 'MultivariatePolynomial':
        return cls.constant(1)

    @property
    def terms(self) -> Dict[Tuple[int, ...], int]:
        return dict(self._terms)

    @property
    def num_terms(self) -> int:
        return len(self._terms)

    @property
    def max_variable(self) -> int:
        """出现的最大变量编号（常数多项式为 -1）"""
        return max((len(e) - 1 for e in self._terms), default=-1)

    def is_zero(self) -> bool:
        return not self._terms

    def __add__(self, other: 'MultivariatePolynomial') -> 'MultivariatePolynomial':
        if isinstance(other, int):
            other = MultivariatePolynomial.constant(other)
        result = dict(self._terms)
        for exp, coeff in other._terms.items():
            c = result.get(exp, 0) + coeff
            if c:
                result[exp] = c
            else:
                result.pop(exp, None)
        out = MultivariatePolynomial()
        out._terms = result
        return out

    def __neg__(self) -> 'MultivariatePolynomial':
        out = MultivariatePolynomial()
        out._terms = {exp: -c for exp, c in self._terms.items()}
        return out

    def __sub__(self, other: 'MultivariatePolynomial') -> 'MultivariatePolynomial':
        return self + (-other)

    def __mul__(self, other: 'MultivariatePolynomial') -> 'MultivariatePolynomial':
        if isinstance(other, int):
            other = MultivariatePolynomial.constant(other)
        result: Dict[Tuple[int, ...], int] = {}
        for exp1, c1 in self._terms.items():
            for exp2, c2 in other._terms.items():
                longer, shorter = (exp1, exp2) if len(exp1) >= len(exp2) else (exp2, exp1)
                # 两个规范指数之和仍是规范的（较长者末位非零）
                new_exp = tuple(
                    e + (shorter[i] if i < len(shorter) else 0) for i, e in enumerate(longer)
                )
                c = result.get(new_exp, 0) + c1 * c2
                if c:
                    result[new_exp] = c
                else:
                    result.pop(new_exp, None)
        out = MultivariatePolynomial()
        out._terms = result
        return out

    def __rmul__(self, other) -> 'MultivariatePolynomial':
        if isinstance(other, int):
            return MultivariatePolynomial.constant(other) * self
        return NotImplemented

    def __pow__(self, n: int) -> 'MultivariatePolynomial':
        if n < 0:
            raise ValueError("多项式不支持负指数")
        result = MultivariatePolynomial.one()
        base = self
        while n > 0:
            if n & 1:
                result = result * base
            base = base * base
            n >>= 1
        return result

    def exact_div(self, d: int) -> 'MultivariatePolynomial':
        """
        精确除以整数 d

        Witt 递推的关键步骤：目标多项式必被 p^n 整除，否则抛异常。
        """
        out = {}
        for exp, coeff in self._terms.items():
            if coeff % d:
                raise WittPolynomialError(
                    f"多项式不能被 {d} 整除: 单项式 {exp} 的系数 {coeff}"
                )
            out[exp] = coeff // d
        return MultivariatePolynomial(out)

    def evaluate_at_integers(self, values: Sequence[int]) -> int:
        """在整数点求值；超出 values 范围的变量视为 0"""
        total = 0
        for exp, coeff in self._terms.items():
            term = coeff
            for i, e in enumerate(exp):
                if e == 0:
                    continue
                if i >= len(values):
                    term = 0
                    break
                term *= values[i] ** e
            total += term
        return total

    def __eq__(self, other) -> bool:
        if isinstance(other, int):
            other = MultivariatePolynomial.constant(other)
        if not isinstance(other, MultivariatePolynomial):
            return False
        return self._terms == other._terms

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._terms.items())))

    def __repr__(self) -> str:
        if not self._terms:
            return "0"
        parts = []
        for exp, coeff in sorted(self._terms.items(), key=lambda x: (sum(x[0]), x[0])):
            names = []
            for i, e in enumerate(exp):
                if e == 0:
                    continue
                var = f"{'XY'[i % 2]}_{i // 2}"
                names.append(var if e == 1 else f"{var}^{e}")
            if not names:
                parts.append(str(coeff))
            elif coeff == 1:
                parts.append("·".join(names))
            elif coeff == -1:
                parts.append("-" + "·".join(names))
            else:
                parts.append(f"{coeff}·" + "·".join(names))
        return " + ".join(parts).replace("+ -", "- ")


# ══════════════════════════════════════════════════════════════════════════════
# 第二部分：Witt 多项式生成器
# Part II: Witt polynomial generator
# ══════════════════════════════════════════════════════════════════════════════

class WittPolynomialGenerator:
    """
    Witt 多项式的符号生成器（惰性、无长度上限）

    对每个 n，S_n / P_n / N_n 只依赖于下标 ≤ n 的变量；
    第 n 个多项式依赖 0..n-1 已缓存，按需顺序递推。
    """

    def __init__(self, p: int):
        if not isinstance(p, int) or p < 2:
            raise ValueError(f"p 必须是素数, got {p!r}")
        self._p = p
        self._addition: List[MultivariatePolynomial] = []
        self._multiplication: List[MultivariatePolynomial] = []
        self._negation: List[MultivariatePolynomial] = []
        # 求值用：系数模 p 后非零的项
        self._reduced: Dict[Tuple[str, int], List[Tuple[Tuple[int, ...], int]]] = {}

    @property
    def prime(self) -> int:
        return self._p

    def X(self, i: int) -> MultivariatePolynomial:
        return MultivariatePolynomial.variable(x_slot(i))

    def Y(self, i: int) -> MultivariatePolynomial:
        return MultivariatePolynomial.variable(y_slot(i))

    def ghost_polynomial(self, n: int, components: Sequence[MultivariatePolynomial]) -> MultivariatePolynomial:
        """
        w_n(C_0, ..., C_n) = Σ_{i=0}^{n} p^i · C_i^{p^{n-i}}

        components 少于 n+1 个时，缺失分量按 0 处理。
        """
        p = self._p
        result = MultivariatePolynomial.zero()
        for i in range(min(n + 1, len(components))):
            result = result + (p ** i) * (components[i] ** (p ** (n - i)))
        return result

    def _solve_next(self, n: int, target: MultivariatePolynomial,
                    previous: List[MultivariatePolynomial]) -> MultivariatePolynomial:
        """
        由 w_n(T_0..T_n) = target 解出 T_n：
            p^n · T_n = target - Σ_{i<n} p^i · T_i^{p^{n-i}}
        """
        remainder = target - self.ghost_polynomial(n, previous[:n])
        return remainder.exact_div(self._p ** n)

    def addition_polynomial(self, n: int) -> MultivariatePolynomial:
        """S_n(X; Y)"""
        while len(self._addition) <= n:
            k = len(self._addition)
            xs = [self.X(i) for i in range(k + 1)]
            ys = [self.Y(i) for i in range(k + 1)]
            target = self.ghost_polynomial(k, xs) + self.ghost_polynomial(k, ys)
            self._addition.append(self._solve_next(k, target, self._addition))
        return self._addition[n]

    def multiplication_polynomial(self, n: int) -> MultivariatePolynomial:
        """P_n(X; Y)"""
        while len(self._multiplication) <= n:
            k = len(self._multiplication)
            xs = [self.X(i) for i in range(k + 1)]
            ys = [self.Y(i) for i in range(k + 1)]
            target = self.ghost_polynomial(k, xs) * self.ghost_polynomial(k, ys)
            self._multiplication.append(self._solve_next(k, target, self._multiplication))
        return self._multiplication[n]

    def negation_polynomial(self, n: int) -> MultivariatePolynomial:
        """
        N_n(X)，满足 w_n(N) = -w_n(X)

        p 奇时 N_n = -X_n；p = 2 时 N_n 非平凡（例如 -1 = (1, 1, 1, ...)）。
        """
        while len(self._negation) <= n:
            k = len(self._negation)
            xs = [self.X(i) for i in range(k + 1)]
            target = -self.ghost_polynomial(k, xs)
            self._negation.append(self._solve_next(k, target, self._negation))
        return self._negation[n]

    def _reduced_terms(self, kind: str, n: int) -> List[Tuple[Tuple[int, ...], int]]:
        key = (kind, n)
        cached = self._reduced.get(key)
        if cached is not None:
            return cached
        poly = {
            "add": self.addition_polynomial,
            "mul": self.multiplication_polynomial,
            "neg": self.negation_polynomial,
        }[kind](n)
        p = self._p
        reduced = [(exp, c % p) for exp, c in poly.terms.items() if c % p]
        self._reduced[key] = reduced
        return reduced

    def evaluate(self, kind: str, n: int, ring: BaseRing,
                 xs: Sequence[RingElement],
                 ys: Optional[Sequence[RingElement]] = None) -> RingElement:
        """
        在系数环 k 中求值第 n 个通用多项式

        整系数经 ℤ → k 约化（只保留模 p 非零的项）；
        xs / ys 至少提供下标 0..n 的分量。
        """
        if ring.characteristic != self._p:
            raise ValueError(f"特征不匹配: 生成器 p={self._p}, 环 {ring!r}")
        slots: List[RingElement] = []
        zero = ring.zero()
        for i in range(n + 1):
            slots.append(xs[i])
            slots.append(ys[i] if ys is not None else zero)
        powers: Dict[Tuple[int, int], RingElement] = {}
        total = zero
        for exp, c in self._reduced_terms(kind, n):
            term = ring.from_int(c)
            for i, e in enumerate(exp):
                if e == 0:
                    continue
                key = (i, e)
                pw = powers.get(key)
                if pw is None:
                    pw = slots[i] ** e
                    powers[key] = pw
                term = term * pw
                if term.is_zero():
                    break
            total = total + term
        return total


@lru_cache(maxsize=None)
def witt_polynomial_generator(p: int) -> WittPolynomialGenerator:
    """每个素数共享一个生成器（多项式缓存随之共享）"""
    return WittPolynomialGenerator(p)


@lru_cache(maxsize=None)
def integer_witt_components(p: int, m: int, length: int) -> Tuple[int, ...]:
    """
    整数 m 在 W(ℤ) 中的前 length 个 Witt 分量

    ghost 向量为 (m, m, m, ...)，逐位递推：
        p^n · a_n = m - Σ_{i<n} p^i · a_i^{p^{n-i}}
    整除性由 Witt 引理保证；失败即抛异常。
    """
    comps: List[int] = []
    for n in range(length):
        acc = m
        for i, a in enumerate(comps):
            acc -= (p ** i) * (a ** (p ** (n - i)))
        d = p ** n
        if acc % d:
            raise WittPolynomialError(
                f"整数 {m} 的第 {n} 个 Witt 分量不是整数 (p={p})"
            )
        comps.append(acc // d)
    return tuple(comps)

#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
================================================================================
特征 p 的系数环：完善域与非完善对照环
Coefficient rings of characteristic p - perfect fields and a non-perfect control

数学：
- 有限域 𝔽_{p^d} = 𝔽_p[α]/(f(α))，f 为 d 次首一不可约多项式
- Frobenius a ↦ a^p 在 𝔽_{p^d} 上是双射，逆映射 a ↦ a^{p^{d-1}}
- 𝔽_p[t] 的 Frobenius 单但不满（t 没有 p 次根），因此不是完善环

"完善" 是一种能力（capability），不是运行时开关：
只有 PerfectRing 的子类才提供 pth_root。Witt 层据此在构造时拒绝非完善环。
================================================================================
"""

from __future__ import annotations
from typing import List, Tuple, Optional, Sequence
from abc import ABC, abstractmethod


__all__ = [
    "BaseRingError",
    "BaseRingInputError",
    "RingElement",
    "BaseRing",
    "PerfectRing",
    "GaloisFieldElement",
    "GaloisField",
    "PrimeField",
    "PolynomialFpElement",
    "PolynomialRingFp",
    "is_prime",
]


class BaseRingError(RuntimeError):
    """系数环基础异常"""


class BaseRingInputError(BaseRingError):
    """输入格式/类型错误（特征不匹配、模多项式不合法等）"""


def is_prime(n: int) -> bool:
    """Miller-Rabin确定性素性测试（64位以内）"""
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False
    d = n - 1
    r = 0
    while d % 2 == 0:
        d //= 2
        r += 1
    for a in (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37):
        if a >= n:
            continue
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(r - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


# ══════════════════════════════════════════════════════════════════════════════
# 第一部分：𝔽_p 上的一元多项式原语（低次在前的系数列表）
# Part I: univariate polynomial primitives over F_p
# ══════════════════════════════════════════════════════════════════════════════

def _poly_trim(a: Sequence[int]) -> List[int]:
    out = list(a)
    while out and out[-1] == 0:
        out.pop()
    return out


def _poly_sub(a: Sequence[int], b: Sequence[int], p: int) -> List[int]:
    n = max(len(a), len(b))
    return _poly_trim(
        ((a[i] if i < len(a) else 0) - (b[i] if i < len(b) else 0)) % p for i in range(n)
    )


def _poly_mul(a: Sequence[int], b: Sequence[int], p: int) -> List[int]:
    if not a or not b:
        return []
    out = [0] * (len(a) + len(b) - 1)
    for i, ai in enumerate(a):
        if ai == 0:
            continue
        for j, bj in enumerate(b):
            out[i + j] = (out[i + j] + ai * bj) % p
    return _poly_trim(out)


def _poly_divmod(a: Sequence[int], b: Sequence[int], p: int) -> Tuple[List[int], List[int]]:
    """带余除法 a = q·b + r，deg r < deg b"""
    b = _poly_trim(b)
    if not b:
        raise ZeroDivisionError("多项式除以零")
    r = _poly_trim(a)
    if len(r) < len(b):
        return [], r
    inv_lead = pow(b[-1], p - 2, p)
    q = [0] * (len(r) - len(b) + 1)
    while len(r) >= len(b):
        shift = len(r) - len(b)
        c = (r[-1] * inv_lead) % p
        q[shift] = c
        for i, bi in enumerate(b):
            r[i + shift] = (r[i + shift] - c * bi) % p
        r = _poly_trim(r)
    return _poly_trim(q), r


def _poly_gcd(a: Sequence[int], b: Sequence[int], p: int) -> List[int]:
    a, b = _poly_trim(a), _poly_trim(b)
    while b:
        _, r = _poly_divmod(a, b, p)
        a, b = b, r
    return a


def _poly_powmod(base: Sequence[int], e: int, modulus: Sequence[int], p: int) -> List[int]:
    result = [1]
    _, b = _poly_divmod(base, modulus, p)
    while e > 0:
        if e & 1:
            _, result = _poly_divmod(_poly_mul(result, b, p), modulus, p)
        _, b = _poly_divmod(_poly_mul(b, b, p), modulus, p)
        e >>= 1
    return result


def _prime_factors(n: int) -> List[int]:
    out = []
    d = 2
    while d * d <= n:
        if n % d == 0:
            out.append(d)
            while n % d == 0:
                n //= d
        d += 1
    if n > 1:
        out.append(n)
    return out


def _is_irreducible(f: Sequence[int], p: int) -> bool:
    """
    Rabin 不可约判定

    首一 f ∈ 𝔽_p[x]，deg f = d 不可约当且仅当：
      1. x^{p^d} ≡ x (mod f)
      2. 对 d 的每个素因子 q：gcd(x^{p^{d/q}} - x, f) = 1
    """
    f = _poly_trim(f)
    d = len(f) - 1
    if d < 1:
        return False
    if d == 1:
        return True
    x = [0, 1]
    if _poly_sub(_poly_powmod(x, p ** d, f, p), x, p):
        return False
    for q in _prime_factors(d):
        h = _poly_sub(_poly_powmod(x, p ** (d // q), f, p), x, p)
        if len(_poly_gcd(h, f, p)) != 1:
            return False
    return True


def _smallest_irreducible(p: int, d: int) -> Tuple[int, ...]:
    """字典序最小的 d 次首一不可约多项式（确定性，非随机搜索）"""
    for code in range(p ** d):
        low = []
        c = code
        for _ in range(d):
            low.append(c % p)
            c //= p
        f = low + [1]
        if _is_irreducible(f, p):
            return tuple(f)
    raise BaseRingError(f"不存在 {d} 次不可约多项式 (p={p})")


# ══════════════════════════════════════════════════════════════════════════════
# 第二部分：环与元素的抽象接口
# Part II: abstract ring / element interfaces
# ══════════════════════════════════════════════════════════════════════════════

class RingElement(ABC):
    """交换环元素的抽象基类"""

    @abstractmethod
    def __add__(self, other): pass

    @abstractmethod
    def __mul__(self, other): pass

    @abstractmethod
    def __neg__(self): pass

    @abstractmethod
    def __eq__(self, other) -> bool: pass

    @abstractmethod
    def __hash__(self) -> int: pass

    @abstractmethod
    def is_zero(self) -> bool: pass

    @property
    @abstractmethod
    def ring(self) -> 'BaseRing': pass

    def __sub__(self, other):
        return self + (-other)

    def __radd__(self, other):
        return self + other

    def __rmul__(self, other):
        return self * other

    def __pow__(self, n: int):
        """快速幂（n ≥ 0）"""
        if n < 0:
            raise BaseRingInputError("RingElement 不支持负指数")
        result = self.ring.one()
        base = self
        while n > 0:
            if n & 1:
                result = result * base
            base = base * base
            n >>= 1
        return result


class BaseRing(ABC):
    """
    特征 p 的交换环 k

    必须提供的结构：
    - characteristic: 素数 p
    - zero / one / from_int: ℤ → k 的典范同态
    - frobenius: a ↦ a^p（特征 p 下的环自同态）
    """

    @property
    @abstractmethod
    def characteristic(self) -> int: pass

    @abstractmethod
    def zero(self) -> RingElement: pass

    @abstractmethod
    def one(self) -> RingElement: pass

    @abstractmethod
    def from_int(self, n: int) -> RingElement: pass

    @property
    def is_perfect(self) -> bool:
        return isinstance(self, PerfectRing)

    def frobenius(self, a: RingElement) -> RingElement:
        """Frobenius 自同态: a ↦ a^p"""
        return a ** self.characteristic

    def check_element(self, a: RingElement) -> RingElement:
        if not isinstance(a, RingElement) or a.ring != self:
            raise BaseRingInputError(f"元素 {a!r} 不属于 {self!r}")
        return a


class PerfectRing(BaseRing):
    """
    完善环能力：Frobenius 是双射

    只有真正完善的环才继承本类；pth_root 是 Frobenius 的逆。
    """

    @abstractmethod
    def pth_root(self, a: RingElement) -> RingElement:
        """Frobenius 的逆: 返回唯一的 b 使得 b^p = a"""


# ══════════════════════════════════════════════════════════════════════════════
# 第三部分：有限域 𝔽_{p^d}
# Part III: finite fields
# ══════════════════════════════════════════════════════════════════════════════

class GaloisFieldElement(RingElement):
    """
    𝔽_{p^d} 的元素

    内部表示：α 的多项式系数 (c_0, ..., c_{d-1})，c_i ∈ [0, p-1]
    """

    __slots__ = ('_field', '_coeffs')

    def __init__(self, field: 'GaloisField', coeffs: Sequence[int]):
        p = field.characteristic
        d = field.degree
        padded = [int(c) % p for c in coeffs]
        if len(padded) > d:
            _, padded = _poly_divmod(padded, field.modulus, p)
        self._field = field
        self._coeffs = tuple(padded) + (0,) * (d - len(padded))

    @property
    def ring(self) -> 'GaloisField':
        return self._field

    @property
    def coeffs(self) -> Tuple[int, ...]:
        return self._coeffs

    @property
    def value(self) -> int:
        """整数编码 Σ c_i·p^i（𝔽_p 上即代表元本身）"""
        p = self._field.characteristic
        return sum(c * p ** i for i, c in enumerate(self._coeffs))

    def _coerce(self, other) -> 'GaloisFieldElement':
        if isinstance(other, int):
            return self._field.from_int(other)
        if not isinstance(other, GaloisFieldElement):
            raise BaseRingInputError(f"不能与 {type(other).__name__} 运算")
        if other._field != self._field:
            raise BaseRingInputError(f"域不匹配: {self._field!r} vs {other._field!r}")
        return other

    def __add__(self, other) -> 'GaloisFieldElement':
        other = self._coerce(other)
        return GaloisFieldElement(self._field, [a + b for a, b in zip(self._coeffs, other._coeffs)])

    def __neg__(self) -> 'GaloisFieldElement':
        return GaloisFieldElement(self._field, [-a for a in self._coeffs])

    def __mul__(self, other) -> 'GaloisFieldElement':
        other = self._coerce(other)
        p = self._field.characteristic
        product = _poly_mul(_poly_trim(self._coeffs), _poly_trim(other._coeffs), p)
        _, r = _poly_divmod(product, self._field.modulus, p)
        return GaloisFieldElement(self._field, r)

    def inverse(self) -> 'GaloisFieldElement':
        """乘法逆元 a^{-1} = a^{q-2}"""
        if self.is_zero():
            raise ZeroDivisionError("𝔽_q 中零元素没有乘法逆")
        return self ** (self._field.order - 2)

    def frobenius(self) -> 'GaloisFieldElement':
        return self ** self._field.characteristic

    def is_zero(self) -> bool:
        return not any(self._coeffs)

    def is_one(self) -> bool:
        return self._coeffs[0] == 1 and not any(self._coeffs[1:])

    def __eq__(self, other) -> bool:
        if isinstance(other, GaloisFieldElement):
            return self._field == other._field and self._coeffs == other._coeffs
        if isinstance(other, int):
            return self == self._field.from_int(other)
        return False

    def __hash__(self) -> int:
        return hash((self._field, self._coeffs))

    def __repr__(self) -> str:
        p = self._field.characteristic
        if self._field.degree == 1:
            return f"{self._coeffs[0]}₍{p}₎"
        terms = []
        for i, c in enumerate(self._coeffs):
            if c == 0:
                continue
            if i == 0:
                terms.append(str(c))
            else:
                mono = "α" if i == 1 else f"α^{i}"
                terms.append(mono if c == 1 else f"{c}{mono}")
        return f"({' + '.join(terms) or '0'})₍{p}^{self._field.degree}₎"


class GaloisField(PerfectRing):
    """
    有限域 𝔽_{p^d}

    数学定义：𝔽_p[α]/(f(α))，f 首一不可约，deg f = d
    完善性：|𝔽_q| 有限且 Frobenius 单射 ⟹ 双射；逆为 a ↦ a^{p^{d-1}}
    """

    def __init__(self, p: int, degree: int = 1, modulus: Optional[Sequence[int]] = None):
        if not isinstance(p, int) or not is_prime(p):
            raise BaseRingInputError(f"p必须是素数, got {p!r}")
        if not isinstance(degree, int) or degree < 1:
            raise BaseRingInputError(f"degree必须是>=1的整数, got {degree!r}")
        if modulus is None:
            f = _smallest_irreducible(p, degree)
        else:
            f = tuple(int(c) % p for c in modulus)
            if len(_poly_trim(f)) != degree + 1 or f[-1] != 1:
                raise BaseRingInputError(f"模多项式必须是 {degree} 次首一多项式, got {tuple(modulus)!r}")
            if not _is_irreducible(f, p):
                raise BaseRingInputError(f"模多项式 {tuple(modulus)!r} 在 𝔽_{p} 上可约")
        self._p = p
        self._degree = degree
        self._modulus = tuple(f)

    @property
    def characteristic(self) -> int:
        return self._p

    @property
    def degree(self) -> int:
        return self._degree

    @property
    def order(self) -> int:
        return self._p ** self._degree

    @property
    def modulus(self) -> Tuple[int, ...]:
        return self._modulus

    def zero(self) -> GaloisFieldElement:
        return GaloisFieldElement(self, [0])

    def one(self) -> GaloisFieldElement:
        return GaloisFieldElement(self, [1])

    def from_int(self, n: int) -> GaloisFieldElement:
        return GaloisFieldElement(self, [int(n)])

    def generator(self) -> GaloisFieldElement:
        """α；d = 1 时取 𝔽_p^× 的最小原根"""
        if self._degree == 1:
            p = self._p
            factors = _prime_factors(p - 1)
            for g in range(1, p):
                if all(pow(g, (p - 1) // q, p) != 1 for q in factors):
                    return GaloisFieldElement(self, [g])
        return GaloisFieldElement(self, [0, 1])

    def element(self, coeffs: Sequence[int]) -> GaloisFieldElement:
        return GaloisFieldElement(self, coeffs)

    def elements(self) -> List[GaloisFieldElement]:
        """全部 q 个元素，按整数编码排序"""
        out = []
        for code in range(self.order):
            coeffs = []
            for _ in range(self._degree):
                coeffs.append(code % self._p)
                code //= self._p
            out.append(GaloisFieldElement(self, coeffs))
        return out

    def pth_root(self, a: RingElement) -> GaloisFieldElement:
        self.check_element(a)
        return a ** (self._p ** (self._degree - 1))

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, GaloisField)
            and self._p == other._p
            and self._modulus == other._modulus
        )

    def __hash__(self) -> int:
        return hash(("GF", self._p, self._modulus))

    def __repr__(self) -> str:
        if self._degree == 1:
            return f"GF({self._p})"
        return f"GF({self._p}^{self._degree})"


class PrimeField(GaloisField):
    """素域 𝔽_p（Frobenius 是恒等映射）"""

    def __init__(self, p: int):
        super().__init__(p, 1)

    def pth_root(self, a: RingElement) -> GaloisFieldElement:
        return self.check_element(a)


# ══════════════════════════════════════════════════════════════════════════════
# 第四部分：非完善对照环 𝔽_p[t]
# Part IV: the non-perfect control ring F_p[t]
# ══════════════════════════════════════════════════════════════════════════════

class PolynomialFpElement(RingElement):
    """𝔽_p[t] 的元素，系数低次在前"""

    __slots__ = ('_ring', '_coeffs')

    def __init__(self, ring: 'PolynomialRingFp', coeffs: Sequence[int]):
        p = ring.characteristic
        self._ring = ring
        self._coeffs = tuple(_poly_trim([int(c) % p for c in coeffs]))

    @property
    def ring(self) -> 'PolynomialRingFp':
        return self._ring

    @property
    def coeffs(self) -> Tuple[int, ...]:
        return self._coeffs

    @property
    def degree(self) -> int:
        return len(self._coeffs) - 1

    def _coerce(self, other) -> 'PolynomialFpElement':
        if isinstance(other, int):
            return self._ring.from_int(other)
        if not isinstance(other, PolynomialFpElement) or other._ring != self._ring:
            raise BaseRingInputError(f"不能与 {other!r} 运算")
        return other

    def __add__(self, other) -> 'PolynomialFpElement':
        other = self._coerce(other)
        n = max(len(self._coeffs), len(other._coeffs))
        return PolynomialFpElement(self._ring, [
            (self._coeffs[i] if i < len(self._coeffs) else 0)
            + (other._coeffs[i] if i < len(other._coeffs) else 0)
            for i in range(n)
        ])

    def __neg__(self) -> 'PolynomialFpElement':
        return PolynomialFpElement(self._ring, [-c for c in self._coeffs])

    def __mul__(self, other) -> 'PolynomialFpElement':
        other = self._coerce(other)
        return PolynomialFpElement(
            self._ring, _poly_mul(self._coeffs, other._coeffs, self._ring.characteristic)
        )

    def is_zero(self) -> bool:
        return not self._coeffs

    def __eq__(self, other) -> bool:
        if isinstance(other, PolynomialFpElement):
            return self._ring == other._ring and self._coeffs == other._coeffs
        if isinstance(other, int):
            return self == self._ring.from_int(other)
        return False

    def __hash__(self) -> int:
        return hash((self._ring, self._coeffs))

    def __repr__(self) -> str:
        if not self._coeffs:
            return f"0 (𝔽_{self._ring.characteristic}[t])"
        parts = []
        for i, c in enumerate(self._coeffs):
            if c == 0:
                continue
            mono = "" if i == 0 else ("t" if i == 1 else f"t^{i}")
            parts.append(f"{c}{mono}" if (c != 1 or i == 0) else mono)
        return " + ".join(parts) + f" (𝔽_{self._ring.characteristic}[t])"


class PolynomialRingFp(BaseRing):
    """
    多项式环 𝔽_p[t]

    Frobenius f(t) ↦ f(t)^p = f(t^p) 单射但不满射（t 不在像中），
    因此本环刻意 *不* 继承 PerfectRing。
    """

    def __init__(self, p: int):
        if not isinstance(p, int) or not is_prime(p):
            raise BaseRingInputError(f"p必须是素数, got {p!r}")
        self._p = p

    @property
    def characteristic(self) -> int:
        return self._p

    def zero(self) -> PolynomialFpElement:
        return PolynomialFpElement(self, [])

    def one(self) -> PolynomialFpElement:
        return PolynomialFpElement(self, [1])

    def from_int(self, n: int) -> PolynomialFpElement:
        return PolynomialFpElement(self, [int(n)])

    def variable(self) -> PolynomialFpElement:
        return PolynomialFpElement(self, [0, 1])

    def element(self, coeffs: Sequence[int]) -> PolynomialFpElement:
        return PolynomialFpElement(self, coeffs)

    def frobenius(self, a: RingElement) -> PolynomialFpElement:
        self.check_element(a)
        p = self._p
        out = [0] * (p * a.degree + 1) if not a.is_zero() else []
        for i, c in enumerate(a.coeffs):
            out[i * p] = c
        return PolynomialFpElement(self, out)

    def is_pth_power(self, a: RingElement) -> bool:
        """a 在 Frobenius 像中 ⟺ 只含 t^{pj} 项"""
        self.check_element(a)
        return all(c == 0 for i, c in enumerate(a.coeffs) if i % self._p)

    def __eq__(self, other) -> bool:
        return isinstance(other, PolynomialRingFp) and self._p == other._p

    def __hash__(self) -> int:
        return hash(("Fp[t]", self._p))

    def __repr__(self) -> str:
        return f"GF({self._p})[t]"

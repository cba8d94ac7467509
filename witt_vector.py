#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
================================================================================
Witt 向量环 W(k)：惰性分量、截断与结构算子
Witt vectors W(k) over a ring k of characteristic p

工程红线：
  - 无限序列绝不物化：分量 coeff(i) 按需计算并逐向量缓存
  - 输入缺失/不合法 -> 必须抛异常，禁止静默降级
  - 完善性是构造期能力：frobenius_inverse 只存在于 PerfectWittRing

核心结构：
  1. WittRing / PerfectWittRing - 环容器（通用多项式加法、乘法、取负）
  2. WittVector                 - 惰性 Witt 向量 (x_0, x_1, ...)
  3. TruncatedWittVector        - W_n(k) 的元素（截断同态的像）
  4. 结构算子                    - Frobenius F、Verschiebung V、shift

结构算子的公理（由本模块保证，由上层模块依赖）：
  - 交换律：F(V(x)) = p·x
  - 重构引理：若 x_0 = ... = x_{n-1} = 0，则 V^n(shift(n, x)) = x
================================================================================
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from perfect_ring import BaseRing, BaseRingError, PerfectRing, RingElement
from witt_polynomials import integer_witt_components, witt_polynomial_generator

_logger = logging.getLogger(__name__)


__all__ = [
    "WittError",
    "WittInputError",
    "WittPreconditionError",
    "IncompatibleSequenceError",
    "NotPerfectRingError",
    "WittContractViolation",
    "VerificationSpec",
    "WittRing",
    "PerfectWittRing",
    "WittVector",
    "TruncatedWittVector",
    "coeff",
    "truncate",
    "frobenius",
    "frobenius_inverse",
    "verschiebung",
    "shift",
    "iterate_frobenius",
    "iterate_frobenius_inverse",
    "iterate_verschiebung",
]


# ===========================================================
# Section 0: 严格错误模型 (禁止静默降级)
# ===========================================================

class WittError(RuntimeError):
    """Witt 层基础异常"""


class WittInputError(WittError):
    """输入格式/类型错误（负下标、环不匹配等）"""


class WittPreconditionError(WittError):
    """
    契约前置条件不满足（调用方错误，不是可恢复失败）

    index: 违反条件的分量下标或理想指数
    """
    def __init__(self, message: str, *, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class IncompatibleSequenceError(WittPreconditionError):
    """序列在某一层 n 上不满足 x(n+1) ≡ x(n) (mod p^n)"""
    def __init__(self, message: str, *, level: int, index: Optional[int] = None):
        super().__init__(message, index=index)
        self.level = level


class NotPerfectRingError(WittError):
    """只对完善环成立的构造被用在了非完善系数环上"""


class WittContractViolation(WittError):
    """协作方的代数恒等式失败（交换律、重构引理、多项式整性）"""


def check_index(i: Any, *, name: str = "index") -> int:
    # bool is subclass of int; reject it explicitly.
    if isinstance(i, bool) or not isinstance(i, int):
        raise WittInputError(f"{name} must be int, got {type(i).__name__}")
    if i < 0:
        raise WittInputError(f"{name} must be >= 0, got {i}")
    return i


# ===========================================================
# Section 1: 配置（环境变量严格解析）
# ===========================================================

def _env_int(name: str, *, default: int) -> int:
    """
    Read an env var as int (base-10), strict.
    """
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return int(default)
    try:
        return int(str(raw).strip(), 10)
    except ValueError as e:
        raise WittInputError(f"{name} must be an integer (base-10), got {raw!r}") from e


@dataclass(frozen=True)
class VerificationSpec:
    """
    有限深度验证规格

    所有关于无限 Witt 向量的相等/整除断言都在有限前缀上检验：
        depth: 检查的分量个数（也是最高理想指数 p^depth）
    环境变量 WITT_CHECK_DEPTH 覆盖默认值。
    """
    depth: int = 4

    def __post_init__(self):
        if isinstance(self.depth, bool) or not isinstance(self.depth, int) or self.depth < 1:
            raise WittInputError(f"depth必须是>=1的整数, got {self.depth!r}")

    @classmethod
    def from_env(cls) -> 'VerificationSpec':
        return cls(depth=_env_int("WITT_CHECK_DEPTH", default=4))


# ===========================================================
# Section 2: Witt 环
# ===========================================================

class WittRing:
    """
    Witt 向量环 W(k)

    数学定义：
        k 是特征 p 的交换环；W(k) 的元素是分量序列 (x_0, x_1, ...)
        加法/乘法/取负由通用多项式 S_n / P_n / N_n 给出（不是逐分量运算）
        第 n 个分量只依赖于下标 ≤ n 的分量

    结构算子（特征 p 下）：
        F(x)_i = x_i^p,  V(x) = (0, x_0, x_1, ...),  shift(n, x)_i = x_{i+n}
    """

    def __init__(self, base: BaseRing):
        if not isinstance(base, BaseRing):
            raise WittInputError(f"base must be a BaseRing, got {type(base).__name__}")
        self._base = base
        self._generator = witt_polynomial_generator(base.characteristic)

    @classmethod
    def over(cls, base: BaseRing) -> 'WittRing':
        """按系数环能力选择 WittRing 或 PerfectWittRing"""
        if isinstance(base, PerfectRing):
            return PerfectWittRing(base)
        return WittRing(base)

    @property
    def base(self) -> BaseRing:
        return self._base

    @property
    def p(self) -> int:
        return int(self._base.characteristic)

    @property
    def is_perfect(self) -> bool:
        return False

    def check_vector(self, x: Any) -> 'WittVector':
        if not isinstance(x, WittVector):
            raise WittInputError(f"expected WittVector, got {type(x).__name__}")
        if x.ring != self:
            raise WittInputError(f"Witt环不匹配: {x.ring!r} vs {self!r}")
        return x

    def _element(self, value: Any) -> RingElement:
        if isinstance(value, int) and not isinstance(value, bool):
            return self._base.from_int(value)
        try:
            return self._base.check_element(value)
        except BaseRingError as e:
            raise WittInputError(str(e)) from e

    # ---------------------------------------------------------------
    # 构造
    # ---------------------------------------------------------------

    def vector(self, rule: Callable[[int], Any], label: Optional[str] = None) -> 'WittVector':
        """由分量规则 i ↦ x_i 构造惰性向量"""
        return WittVector(self, rule, label=label)

    def from_coefficients(self, coeffs: Union[Sequence[Any], Callable[[int], Any]],
                          label: Optional[str] = None) -> 'WittVector':
        """
        由分量构造：
          - 可调用对象：i ↦ x_i（惰性）
          - 有限序列：(x_0, ..., x_{m-1}, 0, 0, ...)
        int 分量经 ℤ → k 映射。
        """
        if callable(coeffs):
            return WittVector(self, coeffs, label=label)
        fixed = tuple(self._element(c) for c in coeffs)
        zero = self._base.zero()
        return WittVector(self, lambda i: fixed[i] if i < len(fixed) else zero, label=label)

    def zero(self) -> 'WittVector':
        zero = self._base.zero()
        return WittVector(self, lambda i: zero, label="0")

    def one(self) -> 'WittVector':
        return self.teichmuller(self._base.one())

    def teichmuller(self, a: Any) -> 'WittVector':
        """Teichmüller 提升 [a] = (a, 0, 0, ...)"""
        a = self._element(a)
        zero = self._base.zero()
        return WittVector(self, lambda i: a if i == 0 else zero, label=f"[{a!r}]")

    def from_integer(self, m: int) -> 'WittVector':
        """
        ℤ → W(ℤ) → W(k) 下整数 m 的像

        先在 W(ℤ) 中做 ghost 递推（ghost 向量为 (m, m, ...)），
        再把每个整数分量约化到 k。
        """
        if isinstance(m, bool) or not isinstance(m, int):
            raise WittInputError(f"m must be int, got {type(m).__name__}")
        p = self.p
        base = self._base
        return WittVector(
            self,
            lambda i: base.from_int(integer_witt_components(p, m, i + 1)[i]),
            label=str(m),
        )

    # ---------------------------------------------------------------
    # 环运算（通用多项式）
    # ---------------------------------------------------------------

    def add(self, x: 'WittVector', y: 'WittVector') -> 'WittVector':
        self.check_vector(x)
        self.check_vector(y)
        gen, base = self._generator, self._base
        return WittVector(
            self, lambda n: gen.evaluate("add", n, base, x.coefficients(n + 1), y.coefficients(n + 1))
        )

    def mul(self, x: 'WittVector', y: 'WittVector') -> 'WittVector':
        self.check_vector(x)
        self.check_vector(y)
        gen, base = self._generator, self._base
        return WittVector(
            self, lambda n: gen.evaluate("mul", n, base, x.coefficients(n + 1), y.coefficients(n + 1))
        )

    def neg(self, x: 'WittVector') -> 'WittVector':
        self.check_vector(x)
        gen, base = self._generator, self._base
        return WittVector(self, lambda n: gen.evaluate("neg", n, base, x.coefficients(n + 1)))

    def sub(self, x: 'WittVector', y: 'WittVector') -> 'WittVector':
        return self.add(x, self.neg(y))

    def scale(self, m: int, x: 'WittVector') -> 'WittVector':
        """m·x，m ∈ ℤ，经整数嵌入后做 Witt 乘法"""
        return self.mul(self.from_integer(m), x)

    # ---------------------------------------------------------------
    # 结构算子
    # ---------------------------------------------------------------

    def frobenius(self, x: 'WittVector') -> 'WittVector':
        """Frobenius 算子: F(x_0, x_1, ...) = (x_0^p, x_1^p, ...)"""
        self.check_vector(x)
        base = self._base
        return WittVector(self, lambda i: base.frobenius(x.coeff(i)))

    def verschiebung(self, x: 'WittVector') -> 'WittVector':
        """
        Verschiebung 算子: V(x_0, x_1, ...) = (0, x_0, x_1, ...)

        加法群同态（不是环同态），单射；shift(1, ·) 是它的左逆。
        """
        self.check_vector(x)
        zero = self._base.zero()
        return WittVector(self, lambda i: zero if i == 0 else x.coeff(i - 1))

    def shift(self, n: int, x: 'WittVector') -> 'WittVector':
        """shift(n, x)_i = x_{i+n}：把第 n 个分量对齐到下标 0"""
        n = check_index(n, name="n")
        self.check_vector(x)
        return WittVector(self, lambda i: x.coeff(i + n))

    def iterate_frobenius(self, x: 'WittVector', n: int) -> 'WittVector':
        n = check_index(n, name="n")
        self.check_vector(x)
        if n == 0:
            return x
        e = self.p ** n
        return WittVector(self, lambda i: x.coeff(i) ** e)

    def iterate_verschiebung(self, x: 'WittVector', n: int) -> 'WittVector':
        """V^n(x) = (0, ..., 0, x_0, x_1, ...)，前 n 个分量为 0"""
        n = check_index(n, name="n")
        self.check_vector(x)
        if n == 0:
            return x
        zero = self._base.zero()
        return WittVector(self, lambda i: zero if i < n else x.coeff(i - n))

    def truncate(self, n: int, x: 'WittVector') -> 'TruncatedWittVector':
        """截断同态 W(k) → W_n(k)"""
        n = check_index(n, name="n")
        self.check_vector(x)
        return TruncatedWittVector(self, x.coefficients(n))

    def __eq__(self, other) -> bool:
        return isinstance(other, WittRing) and type(self) is type(other) and self._base == other._base

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._base))

    def __repr__(self) -> str:
        return f"W({self._base!r})"


class PerfectWittRing(WittRing):
    """
    完善系数环上的 Witt 环

    k 完善 ⟹ F 是 W(k) 的环自同构，F^{-1}(x)_i = x_i^{1/p}。
    只有本类提供 frobenius_inverse；挠自由检查器与完备化引擎只接受本类。
    """

    def __init__(self, base: BaseRing):
        if not isinstance(base, PerfectRing):
            raise NotPerfectRingError(
                f"PerfectWittRing requires a perfect coefficient ring, got {base!r}"
            )
        super().__init__(base)

    @property
    def base(self) -> PerfectRing:
        return self._base

    @property
    def is_perfect(self) -> bool:
        return True

    def frobenius_inverse(self, x: 'WittVector') -> 'WittVector':
        """F^{-1}(x_0, x_1, ...) = (x_0^{1/p}, x_1^{1/p}, ...)"""
        self.check_vector(x)
        base = self._base
        return WittVector(self, lambda i: base.pth_root(x.coeff(i)))

    def iterate_frobenius_inverse(self, x: 'WittVector', n: int) -> 'WittVector':
        n = check_index(n, name="n")
        self.check_vector(x)
        for _ in range(n):
            x = self.frobenius_inverse(x)
        return x


def require_perfect(ring: Any, *, purpose: str) -> PerfectWittRing:
    """构造期能力检查：非完善环直接拒绝"""
    if not isinstance(ring, WittRing):
        raise WittInputError(f"{purpose} expects a WittRing, got {type(ring).__name__}")
    if not isinstance(ring, PerfectWittRing):
        raise NotPerfectRingError(
            f"{purpose} requires W(k) with k perfect of characteristic p; {ring.base!r} is not perfect"
        )
    return ring


# ===========================================================
# Section 3: 惰性 Witt 向量
# ===========================================================

class WittVector:
    """
    Witt 向量 x ∈ W(k)

    数据表示：分量规则 i ↦ x_i（惰性），首次访问后缓存。
    不重载 ==：无限序列的相等不可判定；
    相等一律在有限深度上通过截断判断（truncate(n, x) == truncate(n, y)）。
    """

    __slots__ = ('_ring', '_rule', '_cache', '_label')

    def __init__(self, ring: WittRing, rule: Callable[[int], Any], label: Optional[str] = None):
        if not isinstance(ring, WittRing):
            raise WittInputError(f"ring must be a WittRing, got {type(ring).__name__}")
        if not callable(rule):
            raise WittInputError("rule must be callable i -> coefficient")
        self._ring = ring
        self._rule = rule
        self._cache: Dict[int, RingElement] = {}
        self._label = label

    @property
    def ring(self) -> WittRing:
        return self._ring

    @property
    def label(self) -> Optional[str]:
        return self._label

    @property
    def computed(self) -> Tuple[int, ...]:
        """已经计算过的分量下标"""
        return tuple(sorted(self._cache))

    def coeff(self, i: int) -> RingElement:
        """第 i 个 Witt 分量"""
        i = check_index(i)
        value = self._cache.get(i)
        if value is None:
            value = self._ring._element(self._rule(i))
            self._cache[i] = value
        return value

    __getitem__ = coeff

    def coefficients(self, n: int) -> Tuple[RingElement, ...]:
        """前 n 个分量 (x_0, ..., x_{n-1})"""
        n = check_index(n, name="n")
        return tuple(self.coeff(i) for i in range(n))

    def vanishes_below(self, n: int) -> bool:
        return all(self.coeff(i).is_zero() for i in range(check_index(n, name="n")))

    def first_nonzero_below(self, n: int) -> Optional[int]:
        for i in range(check_index(n, name="n")):
            if not self.coeff(i).is_zero():
                return i
        return None

    def _coerce(self, other: Any) -> 'WittVector':
        if isinstance(other, int) and not isinstance(other, bool):
            return self._ring.from_integer(other)
        return self._ring.check_vector(other)

    def __add__(self, other) -> 'WittVector':
        return self._ring.add(self, self._coerce(other))

    def __radd__(self, other) -> 'WittVector':
        return self._ring.add(self._coerce(other), self)

    def __neg__(self) -> 'WittVector':
        return self._ring.neg(self)

    def __sub__(self, other) -> 'WittVector':
        return self._ring.sub(self, self._coerce(other))

    def __rsub__(self, other) -> 'WittVector':
        return self._ring.sub(self._coerce(other), self)

    def __mul__(self, other) -> 'WittVector':
        return self._ring.mul(self, self._coerce(other))

    def __rmul__(self, other) -> 'WittVector':
        return self._ring.mul(self._coerce(other), self)

    def frobenius(self) -> 'WittVector':
        return self._ring.frobenius(self)

    def verschiebung(self) -> 'WittVector':
        return self._ring.verschiebung(self)

    def shift(self, n: int) -> 'WittVector':
        return self._ring.shift(n, self)

    def truncate(self, n: int) -> 'TruncatedWittVector':
        return self._ring.truncate(n, self)

    def __repr__(self) -> str:
        prefix = []
        i = 0
        while i in self._cache:
            prefix.append(repr(self._cache[i]))
            i += 1
        body = ", ".join(prefix + ["…"])
        if self._label is not None:
            return f"WittVector<{self._label}>({body})"
        return f"WittVector({body})"


# ===========================================================
# Section 4: 截断 Witt 向量 W_n(k)
# ===========================================================

@dataclass(frozen=True)
class TruncatedWittVector:
    """
    截断 Witt 向量 - W(k) → W_n(k) 的像

    数学定义：
        W_n(k) 上的元素 (x_0, ..., x_{n-1})，运算用同一组通用多项式
        ker(W(k) → W_n(k)) = V^n W(k)（k 完善时 = p^n W(k)）

    关键性质：
        truncate(n, x) == truncate(n, y) ⟺ ∀ i<n: x_i = y_i
    """
    ring: WittRing
    components: Tuple[RingElement, ...]

    def __post_init__(self):
        if not isinstance(self.ring, WittRing):
            raise WittInputError(f"ring must be a WittRing, got {type(self.ring).__name__}")
        normalized = tuple(self.ring._element(c) for c in self.components)
        object.__setattr__(self, "components", normalized)

    @property
    def length(self) -> int:
        return len(self.components)

    def coeff(self, i: int) -> RingElement:
        i = check_index(i)
        if i >= self.length:
            raise WittInputError(f"截断分量下标越界: {i} >= {self.length}")
        return self.components[i]

    __getitem__ = coeff

    def is_zero(self) -> bool:
        return all(c.is_zero() for c in self.components)

    def restrict(self, m: int) -> 'TruncatedWittVector':
        """限制映射 W_n(k) → W_m(k)，m ≤ n"""
        m = check_index(m, name="m")
        if m > self.length:
            raise WittInputError(f"不能扩展：{m} > {self.length}")
        return TruncatedWittVector(self.ring, self.components[:m])

    def _check_peer(self, other: Any) -> 'TruncatedWittVector':
        if not isinstance(other, TruncatedWittVector):
            raise WittInputError(f"expected TruncatedWittVector, got {type(other).__name__}")
        if other.ring != self.ring or other.length != self.length:
            raise WittInputError(
                f"截断不匹配: {self.ring!r}/W_{self.length} vs {other.ring!r}/W_{other.length}"
            )
        return other

    def _apply(self, kind: str, other: Optional['TruncatedWittVector']) -> 'TruncatedWittVector':
        gen = witt_polynomial_generator(self.ring.p)
        base = self.ring.base
        ys = other.components if other is not None else None
        return TruncatedWittVector(
            self.ring,
            tuple(gen.evaluate(kind, n, base, self.components, ys) for n in range(self.length)),
        )

    def __add__(self, other) -> 'TruncatedWittVector':
        return self._apply("add", self._check_peer(other))

    def __mul__(self, other) -> 'TruncatedWittVector':
        return self._apply("mul", self._check_peer(other))

    def __neg__(self) -> 'TruncatedWittVector':
        return self._apply("neg", None)

    def __sub__(self, other) -> 'TruncatedWittVector':
        return self + (-self._check_peer(other))

    def __repr__(self) -> str:
        comp_str = ", ".join(repr(c) for c in self.components)
        return f"W_{self.length}({comp_str})"


# ===========================================================
# Section 5: 协作接口（自由函数形式）
# ===========================================================

def coeff(x: WittVector, i: int) -> RingElement:
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return x.coeff(i)


def truncate(n: int, x: WittVector) -> TruncatedWittVector:
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return x.ring.truncate(n, x)


def frobenius(x: WittVector) -> WittVector:
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return x.ring.frobenius(x)


def frobenius_inverse(x: WittVector) -> WittVector:
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return require_perfect(x.ring, purpose="frobenius_inverse").frobenius_inverse(x)


def verschiebung(x: WittVector) -> WittVector:
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return x.ring.verschiebung(x)


def shift(n: int, x: WittVector) -> WittVector:
    if not isinstance(x, WittVector):
        raise WittInputError(f"expected WittVector, got {type(x).__name__}")
    return x.ring.shift(n, x)


def iterate_frobenius(x: WittVector, n: int) -> WittVector:
    return x.ring.iterate_frobenius(x, n)


def iterate_frobenius_inverse(x: WittVector, n: int) -> WittVector:
    return require_perfect(x.ring, purpose="iterate_frobenius_inverse").iterate_frobenius_inverse(x, n)


def iterate_verschiebung(x: WittVector, n: int) -> WittVector:
    return x.ring.iterate_verschiebung(x, n)
